"""Policy and compatibility engines.

* ``evaluate`` — rule evaluation of one snapshot
* ``diff`` / ``diff_snapshots`` — compatibility deltas between two snapshots
* ``build_report`` — merge both into one ordered ``Report``
"""

from api_review.engine.aggregator import Report, build_report
from api_review.engine.diff import DiffResult, diff, diff_snapshots
from api_review.engine.evaluator import EvaluationResult, evaluate, run_rules

__all__ = [
    "DiffResult",
    "EvaluationResult",
    "Report",
    "build_report",
    "diff",
    "diff_snapshots",
    "evaluate",
    "run_rules",
]
