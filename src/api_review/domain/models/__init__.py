"""Domain models — public API.

Provides convenient imports for the most commonly used domain entities.
"""

from api_review.domain.models.enums import (
    ChangeKind,
    Impact,
    ItemKind,
    RuleCategory,
    Severity,
    Visibility,
)
from api_review.domain.models.findings import (
    CompatibilityDelta,
    Finding,
    UnresolvedPath,
)
from api_review.domain.models.snapshot import (
    Deprecation,
    GenericParameter,
    InterfaceItem,
    Parameter,
    Signature,
    Snapshot,
    effective_visibility_closure,
)

__all__ = [
    # Enums
    "ChangeKind",
    "Impact",
    "ItemKind",
    "RuleCategory",
    "Severity",
    "Visibility",
    # Findings
    "CompatibilityDelta",
    "Finding",
    "UnresolvedPath",
    # Snapshot
    "Deprecation",
    "GenericParameter",
    "InterfaceItem",
    "Parameter",
    "Signature",
    "Snapshot",
    "effective_visibility_closure",
]
