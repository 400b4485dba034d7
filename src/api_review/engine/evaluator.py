"""Evaluator — apply every enabled rule to every relevant item.

One unit of work is a (rule, item) pair whose applicability predicate
holds. Units are independent, so with ``config.workers > 1`` they run on a
thread pool; the only shared state is the findings sink, which appends
under a lock. Output order never depends on execution order because the
aggregator sorts after collection.

A rule that raises is contained: the unit produces one synthetic
``rule-fault`` finding (category ``engine``, severity error) and every
other unit still runs.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, Optional

from api_review.config.models import ReviewConfig, WorkBudget
from api_review.domain.errors import RuleFault
from api_review.domain.models.enums import RuleCategory, Severity
from api_review.domain.models.findings import RULE_FAULT_ID, Finding
from api_review.domain.models.snapshot import InterfaceItem, Snapshot
from api_review.engine.aggregator import Report, build_report, check_suppressions
from api_review.rules.base import Rule, RuleContext
from api_review.rules.registry import RuleRegistry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass
class EvaluationResult:
    """Raw evaluator output, before de-duplication and ordering."""

    findings: list[Finding] = field(default_factory=list)
    units_scheduled: int = 0
    truncated: bool = False


class _FindingSink:
    """Thread-safe append-only collection."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: list[Finding] = []

    def extend(self, findings: Iterable[Finding]) -> None:
        batch = list(findings)
        if batch:
            with self._lock:
                self._items.extend(batch)

    def drain(self) -> list[Finding]:
        with self._lock:
            return list(self._items)


class BudgetTracker:
    """Decides whether another unit of work may be scheduled."""

    def __init__(self, budget: WorkBudget) -> None:
        self._max_units = budget.max_units
        self._deadline = (
            time.monotonic() + budget.time_limit_seconds
            if budget.time_limit_seconds is not None
            else None
        )
        self.scheduled = 0
        self.exhausted = False

    def allow(self) -> bool:
        if self._max_units is not None and self.scheduled >= self._max_units:
            self.exhausted = True
        elif self._deadline is not None and time.monotonic() >= self._deadline:
            self.exhausted = True
        if self.exhausted:
            return False
        self.scheduled += 1
        return True


# ---------------------------------------------------------------------------
# Units
# ---------------------------------------------------------------------------


def _fault_finding(fault: RuleFault) -> Finding:
    logger.warning("Rule fault contained: %s", fault)
    return Finding(
        rule_id=RULE_FAULT_ID,
        item_path=fault.path,
        severity=Severity.ERROR,
        message=str(fault),
        category=RuleCategory.ENGINE,
    )


def _run_unit(rule: Rule, item: InterfaceItem, ctx: RuleContext) -> list[Finding]:
    try:
        messages = list(rule.check(item, ctx))
    except Exception as exc:  # noqa: BLE001 - any rule failure becomes a finding
        return [_fault_finding(RuleFault(rule.id, item.path, exc))]
    for message in messages:
        if not isinstance(message, str):
            cause = TypeError(f"check produced {type(message).__name__} {message!r}, not a message")
            return [_fault_finding(RuleFault(rule.id, item.path, cause))]
    return [rule.finding(item, message) for message in messages]


def _applicable_units(
    rules: list[Rule], snapshot: Snapshot, ctx: RuleContext, sink: _FindingSink
) -> list[tuple[Rule, InterfaceItem]]:
    units: list[tuple[Rule, InterfaceItem]] = []
    for rule in rules:
        for item in snapshot.items:
            try:
                applies = rule.applies(item, ctx)
            except Exception as exc:  # noqa: BLE001
                sink.extend([_fault_finding(RuleFault(rule.id, item.path, exc))])
                continue
            if applies:
                units.append((rule, item))
    return units


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def run_rules(
    snapshot: Snapshot,
    registry: RuleRegistry,
    config: Optional[ReviewConfig] = None,
) -> EvaluationResult:
    """Run the enabled rules of *registry* over *snapshot*.

    Returns raw findings; use ``evaluate`` for an ordered ``Report``.
    """
    config = config or ReviewConfig()
    rules = registry.resolve(config)
    ctx = RuleContext.for_snapshot(snapshot, config.rules)
    sink = _FindingSink()
    units = _applicable_units(rules, snapshot, ctx, sink)
    budget = BudgetTracker(config.budget)

    logger.debug(
        "Evaluating %s %s: %d rules, %d items, %d units",
        snapshot.library,
        snapshot.version,
        len(rules),
        len(snapshot),
        len(units),
    )

    if config.workers == 1:
        for rule, item in units:
            if not budget.allow():
                break
            sink.extend(_run_unit(rule, item, ctx))
    else:
        with ThreadPoolExecutor(max_workers=config.workers) as pool:
            futures = []
            for rule, item in units:
                if not budget.allow():
                    break
                futures.append(pool.submit(_run_unit, rule, item, ctx))
            for future in futures:
                sink.extend(future.result())

    truncated = budget.exhausted and budget.scheduled < len(units)
    return EvaluationResult(
        findings=sink.drain(),
        units_scheduled=budget.scheduled,
        truncated=truncated,
    )


def evaluate(
    snapshot: Snapshot,
    registry: RuleRegistry,
    config: Optional[ReviewConfig] = None,
) -> Report:
    """Evaluate *snapshot* against *registry* and return an ordered report.

    Raises
    ------
    ConfigError
        If the config selects, overrides or suppresses unknown rules or
        suppresses unknown paths. Raised before any rule runs.
    """
    config = config or ReviewConfig()
    check_suppressions(config, registry, [snapshot])
    result = run_rules(snapshot, registry, config)
    return build_report(snapshot, result.findings, config, truncated=result.truncated)
