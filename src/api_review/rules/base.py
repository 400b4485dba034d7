"""Rule definitions and the context they are evaluated in.

Every rule follows the same contract:
  1. ``applies(item, ctx)`` decides whether the rule is relevant to an item
  2. ``check(item, ctx)`` yields zero or more violation messages

Both are pure functions of the item and the snapshot-wide context. A rule
never reads mutable external state and never depends on the results of
another rule, so (rule, item) units can run in any order or in parallel.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, Mapping, Optional

from api_review.config.models import RuleSettings
from api_review.domain.models.enums import RuleCategory, Severity
from api_review.domain.models.findings import Finding
from api_review.domain.models.snapshot import InterfaceItem, Snapshot


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RuleContext:
    """Snapshot-wide, read-only inputs shared by every rule of a run."""

    snapshot: Snapshot
    visibility: Mapping[str, bool]
    settings: RuleSettings = field(default_factory=RuleSettings)

    @classmethod
    def for_snapshot(
        cls, snapshot: Snapshot, settings: Optional[RuleSettings] = None
    ) -> "RuleContext":
        return cls(
            snapshot=snapshot,
            visibility=snapshot.effective_visibility,
            settings=settings or RuleSettings(),
        )

    @property
    def features(self) -> Mapping[str, bool]:
        return self.snapshot.features

    def is_public(self, item: InterfaceItem) -> bool:
        return self.visibility.get(item.path, False)


Predicate = Callable[[InterfaceItem, RuleContext], bool]
Check = Callable[[InterfaceItem, RuleContext], Iterable[str]]


def always(_item: InterfaceItem, _ctx: RuleContext) -> bool:
    return True


def public_only(item: InterfaceItem, ctx: RuleContext) -> bool:
    return ctx.is_public(item)


# ---------------------------------------------------------------------------
# Rule
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Rule:
    """A single check over interface items.

    ``id`` is stable and never reused: suppression lists refer to it.
    """

    id: str
    category: RuleCategory
    severity: Severity
    rationale: str
    check: Check
    applies: Predicate = public_only
    fix: Optional[str] = None

    def with_severity(self, severity: Severity) -> "Rule":
        """Copy of this rule with a different severity."""
        return replace(self, severity=severity)

    def finding(self, item: InterfaceItem, message: str) -> Finding:
        return Finding(
            rule_id=self.id,
            item_path=item.path,
            severity=self.severity,
            message=message,
            category=self.category,
            fix=self.fix,
        )
