"""Use Case: Review a library's public interface.

Runs the Evaluator on the candidate snapshot and, in diff mode, the Diff
Engine against a baseline, then merges both into one Report.
"""

from __future__ import annotations

import logging
from typing import Optional

from api_review.config.models import ReviewConfig
from api_review.domain.errors import ConfigError
from api_review.domain.models.snapshot import Snapshot
from api_review.engine.aggregator import Report, build_report, check_suppressions
from api_review.engine.diff import diff_snapshots
from api_review.engine.evaluator import run_rules
from api_review.rules.registry import RuleRegistry

logger = logging.getLogger(__name__)


class ReviewInterfaceUseCase:
    """Orchestrate a full review run."""

    def __init__(self, registry: RuleRegistry, config: Optional[ReviewConfig] = None) -> None:
        self._registry = registry
        self._config = config or ReviewConfig()

    def execute(
        self,
        snapshot: Snapshot,
        baseline: Optional[Snapshot] = None,
        config: Optional[ReviewConfig] = None,
    ) -> Report:
        """Review *snapshot*, diffing against *baseline* when given.

        Args:
            snapshot: The candidate interface snapshot.
            baseline: Previous version's snapshot; required in diff mode.
            config: Overrides the config the use case was built with.

        Returns:
            The aggregated Report.

        Raises:
            ConfigError: Invalid selection/suppression, or diff mode
                without a baseline. Raised before any rule runs.
        """
        config = config or self._config
        if config.diff_mode and baseline is None:
            raise ConfigError("Diff mode requires a baseline snapshot")
        check_suppressions(config, self._registry, [snapshot, baseline])

        evaluation = run_rules(snapshot, self._registry, config)
        diff_result = diff_snapshots(baseline, snapshot, config) if baseline is not None else None

        report = build_report(
            snapshot,
            evaluation.findings,
            config,
            diff_result=diff_result,
            truncated=evaluation.truncated,
        )
        logger.info(
            "Reviewed %s %s: %d findings (%d suppressed), blocking=%s",
            snapshot.library,
            snapshot.version,
            len(report.findings),
            len(report.suppressed),
            report.has_blocking_findings,
        )
        return report


def review(
    snapshot: Snapshot,
    registry: RuleRegistry,
    config: Optional[ReviewConfig] = None,
    baseline: Optional[Snapshot] = None,
) -> Report:
    """Functional shortcut for ``ReviewInterfaceUseCase(...).execute``."""
    return ReviewInterfaceUseCase(registry, config).execute(snapshot, baseline)
