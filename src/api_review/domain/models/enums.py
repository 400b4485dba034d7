"""Enumerations for interface snapshots, rules and compatibility deltas."""

from enum import Enum


class ItemKind(str, Enum):
    """Kinds of interface items."""

    MODULE = "module"
    FUNCTION = "function"
    TYPE = "type"
    INTERFACE_CAPABILITY = "interface_capability"  # trait / protocol
    CONSTANT = "constant"
    ALIAS = "alias"
    MACRO = "macro"

    @property
    def is_container(self) -> bool:
        return self in (ItemKind.MODULE, ItemKind.TYPE)


class Visibility(str, Enum):
    """Declared visibility of an item."""

    PUBLIC = "public"
    PACKAGE_INTERNAL = "package_internal"
    PRIVATE = "private"


class Severity(str, Enum):
    """Severity of a finding."""

    ERROR = "error"  # Blocks the verdict
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Sort rank, lower sorts first (error before warning before info)."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.ERROR: 0, Severity.WARNING: 1, Severity.INFO: 2}


class RuleCategory(str, Enum):
    """Broad category a finding belongs to."""

    SURFACE_MINIMALITY = "surface-minimality"
    NAMING = "naming"
    ERROR_HANDLING = "error-handling"
    ESCAPE_HATCH_JUSTIFICATION = "escape-hatch-justification"
    FEATURE_HYGIENE = "feature-hygiene"
    DOCUMENTATION = "documentation"
    # Synthetic categories produced by the engine itself
    ENGINE = "engine"
    COMPATIBILITY = "compatibility"


class ChangeKind(str, Enum):
    """Kind of change between two snapshots of the same path."""

    ADDED = "added"
    REMOVED = "removed"
    SIGNATURE_CHANGED = "signature_changed"
    VISIBILITY_NARROWED = "visibility_narrowed"
    VISIBILITY_WIDENED = "visibility_widened"
    DEPRECATED_ADDED = "deprecated_added"
    DEPRECATED_REMOVED = "deprecated_removed"
    FEATURE_GATE_CHANGED = "feature_gate_changed"

    @property
    def inverse(self) -> "ChangeKind":
        """The change kind observed when the diff direction is reversed."""
        return _INVERSE_CHANGE[self]


_INVERSE_CHANGE = {
    ChangeKind.ADDED: ChangeKind.REMOVED,
    ChangeKind.REMOVED: ChangeKind.ADDED,
    ChangeKind.SIGNATURE_CHANGED: ChangeKind.SIGNATURE_CHANGED,
    ChangeKind.VISIBILITY_NARROWED: ChangeKind.VISIBILITY_WIDENED,
    ChangeKind.VISIBILITY_WIDENED: ChangeKind.VISIBILITY_NARROWED,
    ChangeKind.DEPRECATED_ADDED: ChangeKind.DEPRECATED_REMOVED,
    ChangeKind.DEPRECATED_REMOVED: ChangeKind.DEPRECATED_ADDED,
    ChangeKind.FEATURE_GATE_CHANGED: ChangeKind.FEATURE_GATE_CHANGED,
}


class Impact(str, Enum):
    """Semantic-versioning impact of a change on existing consumers."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    NONE = "none"

    @property
    def weight(self) -> int:
        """Ordering weight, higher is more disruptive."""
        return _IMPACT_WEIGHT[self]

    @property
    def severity(self) -> Severity:
        """Severity of the compatibility finding for this impact."""
        if self is Impact.MAJOR:
            return Severity.ERROR
        if self is Impact.MINOR:
            return Severity.WARNING
        return Severity.INFO

    @classmethod
    def worst(cls, impacts) -> "Impact":
        """Return the most disruptive impact in *impacts* (``NONE`` if empty)."""
        result = cls.NONE
        for impact in impacts:
            if impact.weight > result.weight:
                result = impact
        return result


_IMPACT_WEIGHT = {Impact.NONE: 0, Impact.PATCH: 1, Impact.MINOR: 2, Impact.MAJOR: 3}
