"""Report Aggregator — merge, de-duplicate, suppress and order findings.

Evaluator findings and Diff Engine deltas (mapped to ``compatibility``
findings) are combined into one ``Report``. Ordering is a total order
(severity, item path, rule id, message), so identical inputs always yield
an identical report no matter how the work was scheduled.

Suppressions are applied here, after evaluation: a suppressed finding is
moved out of the default view but kept for the audit view.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Optional

from api_review.config.models import ReviewConfig
from api_review.domain.errors import InvalidSuppressionError
from api_review.domain.models.enums import ChangeKind, Impact, RuleCategory, Severity
from api_review.domain.models.findings import (
    UNRESOLVED_PATH_ID,
    CompatibilityDelta,
    Finding,
    UnresolvedPath,
)
from api_review.domain.models.snapshot import Snapshot

if TYPE_CHECKING:
    from api_review.engine.diff import DiffResult
    from api_review.rules.registry import RuleRegistry

logger = logging.getLogger(__name__)

# Rule ids that exist without being registered rules
COMPATIBILITY_RULE_IDS = frozenset([k.value for k in ChangeKind] + [UNRESOLVED_PATH_ID])


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Report:
    """Aggregated, ordered result of a review run.

    Attributes:
        findings: Default view, suppressed findings removed, ordered.
        suppressed: Findings removed by suppressions, ordered.
        deltas: Compatibility deltas (diff mode only), ordered by path.
        unresolved: Rename candidates reported by the Diff Engine.
        truncated: ``True`` if a work budget stopped either engine early;
            the report is then not exhaustive.
    """

    library: str
    version: str
    findings: tuple[Finding, ...] = ()
    suppressed: tuple[Finding, ...] = ()
    deltas: tuple[CompatibilityDelta, ...] = ()
    unresolved: tuple[UnresolvedPath, ...] = ()
    truncated: bool = False
    baseline_version: Optional[str] = None

    @property
    def counts(self) -> dict[Severity, int]:
        """Finding counts per severity in the default view."""
        counts = {severity: 0 for severity in Severity}
        for f in self.findings:
            counts[f.severity] += 1
        return counts

    @property
    def has_blocking_findings(self) -> bool:
        """True iff an unsuppressed error-severity finding exists."""
        return any(f.severity is Severity.ERROR for f in self.findings)

    @property
    def errors(self) -> list[Finding]:
        return [f for f in self.findings if f.severity is Severity.ERROR]

    @property
    def warnings(self) -> list[Finding]:
        return [f for f in self.findings if f.severity is Severity.WARNING]

    @property
    def is_clean(self) -> bool:
        return len(self.findings) == 0

    @property
    def item_impacts(self) -> dict[str, Impact]:
        """Most disruptive impact per changed path."""
        impacts: dict[str, list[Impact]] = {}
        for delta in self.deltas:
            impacts.setdefault(delta.item_path, []).append(delta.impact)
        return {path: Impact.worst(values) for path, values in sorted(impacts.items())}

    @property
    def release_impact(self) -> Impact:
        """Most disruptive impact over all deltas (version bump to make)."""
        return Impact.worst(d.impact for d in self.deltas)

    def audit_view(self) -> list[Finding]:
        """Every finding, suppressed ones included, in report order."""
        return sorted([*self.findings, *self.suppressed], key=lambda f: f.sort_key)

    def view(
        self,
        categories: Optional[Iterable[RuleCategory]] = None,
        severities: Optional[Iterable[Severity]] = None,
        include_suppressed: bool = False,
    ) -> list[Finding]:
        """Filtered view for presentation collaborators."""
        source = self.audit_view() if include_suppressed else list(self.findings)
        cats = set(categories) if categories is not None else None
        sevs = set(severities) if severities is not None else None
        return [
            f
            for f in source
            if (cats is None or f.category in cats) and (sevs is None or f.severity in sevs)
        ]

    def to_dict(self) -> dict:
        """Machine-readable form of the report."""
        return {
            "library": self.library,
            "version": self.version,
            "baseline_version": self.baseline_version,
            "truncated": self.truncated,
            "has_blocking_findings": self.has_blocking_findings,
            "counts": {s.value: n for s, n in self.counts.items()},
            "findings": [f.to_dict() for f in self.findings],
            "suppressed": [f.to_dict() for f in self.suppressed],
            "deltas": [d.to_dict() for d in self.deltas],
            "unresolved": [u.to_dict() for u in self.unresolved],
            "item_impacts": {p: i.value for p, i in self.item_impacts.items()},
        }


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def deduplicate(findings: Iterable[Finding]) -> list[Finding]:
    """Collapse findings with identical (rule_id, item_path, message).

    When duplicates disagree on severity or fix, the most severe one is
    kept, so the survivor does not depend on arrival order.
    """
    unique: dict[tuple[str, str, str], Finding] = {}
    for f in findings:
        seen = unique.get(f.key)
        if seen is None or _preference(f) < _preference(seen):
            unique[f.key] = f
    return list(unique.values())


def _preference(f: Finding) -> tuple[int, str]:
    return (f.severity.rank, f.fix or "")


def build_report(
    snapshot: Snapshot,
    findings: Iterable[Finding],
    config: Optional[ReviewConfig] = None,
    *,
    diff_result: Optional["DiffResult"] = None,
    truncated: bool = False,
) -> Report:
    """Merge engine outputs into one ordered ``Report``."""
    config = config or ReviewConfig()
    merged = list(findings)
    deltas: tuple[CompatibilityDelta, ...] = ()
    unresolved: tuple[UnresolvedPath, ...] = ()
    baseline_version = None

    if diff_result is not None:
        deltas = tuple(diff_result.deltas)
        unresolved = tuple(diff_result.unresolved)
        baseline_version = diff_result.baseline_version
        truncated = truncated or diff_result.truncated
        merged.extend(d.to_finding() for d in deltas)
        merged.extend(u.to_finding() for u in unresolved)

    suppressed_keys = config.suppressed_keys
    kept: list[Finding] = []
    suppressed: list[Finding] = []
    for f in deduplicate(merged):
        if (f.rule_id, f.item_path) in suppressed_keys:
            suppressed.append(f)
        else:
            kept.append(f)

    kept.sort(key=lambda f: f.sort_key)
    suppressed.sort(key=lambda f: f.sort_key)
    if truncated:
        logger.warning(
            "Review of %s %s was truncated by the work budget; report is not exhaustive",
            snapshot.library,
            snapshot.version,
        )

    return Report(
        library=snapshot.library,
        version=snapshot.version,
        findings=tuple(kept),
        suppressed=tuple(suppressed),
        deltas=deltas,
        unresolved=unresolved,
        truncated=truncated,
        baseline_version=baseline_version,
    )


def check_suppressions(
    config: ReviewConfig,
    registry: "RuleRegistry",
    snapshots: Iterable[Optional[Snapshot]],
) -> None:
    """Reject suppressions that target a non-existent rule or path.

    Raises
    ------
    InvalidSuppressionError
        Naming the first offending (rule_id, path) pair.
    """
    known = [s for s in snapshots if s is not None]
    for s in config.suppressions:
        if s.rule_id not in registry and s.rule_id not in COMPATIBILITY_RULE_IDS:
            raise InvalidSuppressionError(
                f"Suppression targets unknown rule '{s.rule_id}'", s.rule_id, s.path
            )
        if not any(s.path in snap for snap in known):
            raise InvalidSuppressionError(
                f"Suppression of '{s.rule_id}' targets unknown path '{s.path}'",
                s.rule_id,
                s.path,
            )
