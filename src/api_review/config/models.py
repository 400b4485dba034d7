"""Pydantic models for review configuration.

These models validate and type the JSON configuration that drives a
review run: suppressions, per-rule severity overrides, the work budget,
diff mode and the caller-tunable rule thresholds.
"""

from __future__ import annotations

import re
from fnmatch import fnmatchcase
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from api_review.domain.models.enums import ItemKind, Severity
from api_review.domain.models.snapshot import InterfaceItem


# ---------------------------------------------------------------------------
# Rule thresholds
# ---------------------------------------------------------------------------


class InternalPattern(BaseModel):
    """Describes items that should stay internal.

    An item matches when every given criterion matches; a pattern with no
    criteria matches nothing.
    """

    path_glob: Optional[str] = Field(None, description="fnmatch pattern over the item path")
    kind: Optional[ItemKind] = None

    def matches(self, item: InterfaceItem) -> bool:
        if self.path_glob is None and self.kind is None:
            return False
        if self.path_glob is not None and not fnmatchcase(item.path, self.path_glob):
            return False
        if self.kind is not None and item.kind is not self.kind:
            return False
        return True

    def describe(self) -> str:
        parts = []
        if self.path_glob is not None:
            parts.append(f"path '{self.path_glob}'")
        if self.kind is not None:
            parts.append(f"kind {self.kind.value}")
        return " and ".join(parts)


class RuleSettings(BaseModel):
    """Caller-configurable inputs of the built-in rules.

    Numeric thresholds default to ``None``; the rules that depend on them
    apply to nothing until a threshold is configured.
    """

    internal_patterns: list[InternalPattern] = Field(default_factory=list)
    two_valued_types: list[str] = Field(default_factory=lambda: ["bool", "boolean"])
    text_error_types: list[str] = Field(
        default_factory=lambda: ["str", "&str", "String", "string", "text"]
    )
    max_parameters: Optional[int] = Field(None, ge=0)
    max_generic_bounds: Optional[int] = Field(None, ge=0)
    naming_patterns: dict[ItemKind, str] = Field(
        default_factory=dict,
        description="Regex the leaf name of each kind must fully match",
    )
    flag_default_on_gates: bool = Field(
        False,
        description="Also flag public items whose gate holds in every default build",
    )
    detect_renames: bool = True

    @field_validator("naming_patterns")
    @classmethod
    def _compile_patterns(cls, v: dict[ItemKind, str]) -> dict[ItemKind, str]:
        for kind, pattern in v.items():
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ValueError(f"Invalid naming pattern for {kind.value}: {exc}") from exc
        return v


# ---------------------------------------------------------------------------
# Run configuration
# ---------------------------------------------------------------------------


class Suppression(BaseModel):
    """Suppress findings of one rule at one path."""

    rule_id: str
    path: str
    reason: str = ""


class WorkBudget(BaseModel):
    """Limits after which the engines stop scheduling new work."""

    max_units: Optional[int] = Field(None, ge=0, description="Max (rule, item) or path units")
    time_limit_seconds: Optional[float] = Field(None, gt=0)

    @property
    def unlimited(self) -> bool:
        return self.max_units is None and self.time_limit_seconds is None


class ReviewConfig(BaseModel):
    """Complete configuration for one review run."""

    suppressions: list[Suppression] = Field(default_factory=list)
    severity_overrides: dict[str, Severity] = Field(default_factory=dict)
    disabled_rules: list[str] = Field(default_factory=list)
    select: Optional[list[str]] = Field(
        None,
        description="Run only these rule ids (None = every enabled rule)",
    )
    budget: WorkBudget = Field(default_factory=WorkBudget)
    diff_mode: bool = False
    workers: int = Field(1, ge=1)
    rules: RuleSettings = Field(default_factory=RuleSettings)

    @property
    def suppressed_keys(self) -> frozenset[tuple[str, str]]:
        return frozenset((s.rule_id, s.path) for s in self.suppressions)

    def is_suppressed(self, rule_id: str, path: str) -> bool:
        return (rule_id, path) in self.suppressed_keys
