"""Thin CLI wrapper — Typer commands that delegate to Use Cases.

All engine access goes through the Container (bootstrap.py).

Exit codes: 0 pass, 1 blocking findings, 2 invalid input or configuration.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.logging import RichHandler
from rich.markup import escape

from api_review.bootstrap import Container
from api_review.domain.errors import APIReviewError
from api_review.domain.models.enums import Impact, RuleCategory, Severity
from api_review.engine.diff import diff_snapshots
from api_review.presentation.cli.formatters import (
    console,
    deltas_table,
    error_message,
    findings_table,
    json_output,
    report_summary,
    rules_table,
)

app = typer.Typer(
    name="api-review",
    help="Review a library's public interface and its compatibility impact.",
    rich_markup_mode="rich",
    no_args_is_help=True,
)

EXIT_BLOCKING = 1
EXIT_INPUT_ERROR = 2


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


ConfigOption = Annotated[
    Optional[Path], typer.Option("--config", "-c", help="JSON review configuration")
]
JsonOption = Annotated[bool, typer.Option("--json", help="Machine-readable output")]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")]


# ---------------------------------------------------------------------------
# api-review check
# ---------------------------------------------------------------------------


@app.command()
def check(
    snapshot: Annotated[Path, typer.Argument(help="Candidate snapshot (.json)")],
    baseline: Annotated[
        Optional[Path], typer.Option("--baseline", "-b", help="Baseline snapshot for diff mode")
    ] = None,
    config: ConfigOption = None,
    audit: Annotated[
        bool, typer.Option("--audit", help="Include suppressed findings")
    ] = False,
    category: Annotated[
        Optional[list[RuleCategory]], typer.Option("--category", help="Only these categories")
    ] = None,
    severity: Annotated[
        Optional[list[Severity]], typer.Option("--severity", help="Only these severities")
    ] = None,
    workers: Annotated[
        Optional[int], typer.Option("--workers", min=1, help="Parallel workers")
    ] = None,
    as_json: JsonOption = False,
    verbose: VerboseOption = False,
) -> None:
    """Evaluate a snapshot and, with --baseline, its compatibility impact."""
    _setup_logging(verbose)
    try:
        container = Container(config_path=config)
        run_config = container.config
        updates: dict = {}
        if baseline is not None:
            updates["diff_mode"] = True
        if workers is not None:
            updates["workers"] = workers
        if updates:
            run_config = run_config.model_copy(update=updates)

        candidate = container.load_snapshot(snapshot)
        previous = container.load_snapshot(baseline) if baseline is not None else None
        report = container.review_interface().execute(candidate, previous, run_config)
    except (APIReviewError, FileNotFoundError) as exc:
        error_message(str(exc))
        raise typer.Exit(code=EXIT_INPUT_ERROR)

    if as_json:
        json_output(report.to_dict())
    else:
        shown = report.view(category, severity, include_suppressed=audit)
        findings_table(shown, title="Findings (audit)" if audit else "Findings")
        if report.deltas:
            deltas_table(report.deltas)
        report_summary(report)

    if report.has_blocking_findings:
        raise typer.Exit(code=EXIT_BLOCKING)


# ---------------------------------------------------------------------------
# api-review diff
# ---------------------------------------------------------------------------


@app.command()
def diff(
    old: Annotated[Path, typer.Argument(help="Baseline snapshot (.json)")],
    new: Annotated[Path, typer.Argument(help="Candidate snapshot (.json)")],
    config: ConfigOption = None,
    as_json: JsonOption = False,
    verbose: VerboseOption = False,
) -> None:
    """Classify the compatibility impact between two snapshots."""
    _setup_logging(verbose)
    try:
        container = Container(config_path=config)
        result = diff_snapshots(
            container.load_snapshot(old), container.load_snapshot(new), container.config
        )
    except (APIReviewError, FileNotFoundError) as exc:
        error_message(str(exc))
        raise typer.Exit(code=EXIT_INPUT_ERROR)

    impact = Impact.worst(result.item_impacts.values())
    if as_json:
        json_output(
            {
                "baseline_version": result.baseline_version,
                "candidate_version": result.candidate_version,
                "impact": impact.value,
                "truncated": result.truncated,
                "deltas": [d.to_dict() for d in result.deltas],
                "unresolved": [u.to_dict() for u in result.unresolved],
            }
        )
    else:
        deltas_table(result.deltas)
        for u in result.unresolved:
            console.print(
                f"[yellow]?[/] {escape(u.old_path)} may have been renamed to {escape(u.new_path)}"
            )
        console.print(f"Required version bump: [bold]{impact.value}[/]")

    if impact is Impact.MAJOR:
        raise typer.Exit(code=EXIT_BLOCKING)


# ---------------------------------------------------------------------------
# api-review rules
# ---------------------------------------------------------------------------


@app.command()
def rules() -> None:
    """List the built-in rules."""
    rules_table(Container().registry)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
