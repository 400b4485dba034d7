"""Findings and compatibility deltas produced by the engines."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from api_review.domain.models.enums import (
    ChangeKind,
    Impact,
    ItemKind,
    RuleCategory,
    Severity,
)

# Synthetic rule ids emitted by the engine itself
RULE_FAULT_ID = "rule-fault"
UNRESOLVED_PATH_ID = "unresolved-path"


@dataclass(frozen=True)
class Finding:
    """One rule violation tied to a specific interface item."""

    rule_id: str
    item_path: str
    severity: Severity
    message: str
    category: RuleCategory
    fix: Optional[str] = None

    @property
    def key(self) -> tuple[str, str, str]:
        """Identity for de-duplication: (rule_id, item_path, message)."""
        return (self.rule_id, self.item_path, self.message)

    @property
    def sort_key(self) -> tuple[int, str, str, str]:
        return (self.severity.rank, self.item_path, self.rule_id, self.message)

    def to_dict(self) -> dict:
        return {
            "rule_id": self.rule_id,
            "item_path": self.item_path,
            "severity": self.severity.value,
            "category": self.category.value,
            "message": self.message,
            "fix": self.fix,
        }


@dataclass(frozen=True)
class CompatibilityDelta:
    """A classified change of one path between baseline and candidate."""

    item_path: str
    change_kind: ChangeKind
    impact: Impact
    detail: str = ""

    @property
    def sort_key(self) -> tuple[str, int]:
        return (self.item_path, list(ChangeKind).index(self.change_kind))

    def to_finding(self) -> Finding:
        """Map to a ``compatibility`` Finding; severity derives from impact."""
        message = f"{self.change_kind.value} ({self.impact.value})"
        if self.detail:
            message = f"{message}: {self.detail}"
        return Finding(
            rule_id=self.change_kind.value,
            item_path=self.item_path,
            severity=self.impact.severity,
            message=message,
            category=RuleCategory.COMPATIBILITY,
        )

    def to_dict(self) -> dict:
        return {
            "item_path": self.item_path,
            "change_kind": self.change_kind.value,
            "impact": self.impact.value,
            "detail": self.detail,
        }


@dataclass(frozen=True)
class UnresolvedPath:
    """A path that vanished while a structurally similar one appeared.

    Likely a rename; the caller decides. The literal removed/added pair
    is still reported alongside.
    """

    old_path: str
    new_path: str
    kind: ItemKind

    def to_finding(self) -> Finding:
        return Finding(
            rule_id=UNRESOLVED_PATH_ID,
            item_path=self.old_path,
            severity=Severity.INFO,
            message=f"possibly renamed to '{self.new_path}' ({self.kind.value})",
            category=RuleCategory.COMPATIBILITY,
            fix="Confirm the rename and keep a deprecated alias at the old path",
        )

    def to_dict(self) -> dict:
        return {"old_path": self.old_path, "new_path": self.new_path, "kind": self.kind.value}
