"""Rich formatting utilities for the CLI.

Knows how to draw reports, deltas and rule listings; knows nothing about
how they were produced.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Iterable

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from api_review.domain.models.enums import Impact, Severity

if TYPE_CHECKING:
    from api_review.domain.models.findings import CompatibilityDelta, Finding
    from api_review.engine.aggregator import Report
    from api_review.rules.registry import RuleRegistry

console = Console()

_SEVERITY_STYLE = {
    Severity.ERROR: "bold red",
    Severity.WARNING: "yellow",
    Severity.INFO: "cyan",
}

_IMPACT_STYLE = {
    Impact.MAJOR: "bold red",
    Impact.MINOR: "yellow",
    Impact.PATCH: "green",
    Impact.NONE: "dim",
}


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


def error_message(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]Error:[/] {escape(message)}")


def json_output(data: dict) -> None:
    """Print machine-readable JSON, unwrapped and without markup."""
    typer.echo(json.dumps(data, indent=2))


# ---------------------------------------------------------------------------
# Findings
# ---------------------------------------------------------------------------


def findings_table(findings: Iterable["Finding"], title: str = "Findings") -> None:
    """Print findings in report order."""
    table = Table(title=title, show_header=True, border_style="blue")
    table.add_column("Severity", width=9)
    table.add_column("Path", style="cyan")
    table.add_column("Rule", style="magenta")
    table.add_column("Message")
    table.add_column("Fix", style="dim")

    for f in findings:
        style = _SEVERITY_STYLE[f.severity]
        table.add_row(
            f"[{style}]{f.severity.value}[/]",
            escape(f.item_path),
            f.rule_id,
            escape(f.message),
            escape(f.fix or ""),
        )

    console.print(table)


def report_summary(report: "Report") -> None:
    """Print the verdict panel."""
    counts = report.counts
    blocking = report.has_blocking_findings
    color = "red" if blocking else "green"
    status = "BLOCKED" if blocking else "PASS"
    lines = [
        f"Library: [bold]{report.library}[/] {report.version}",
        f"Verdict: [bold {color}]{status}[/]",
        f"Errors: {counts[Severity.ERROR]}  |  Warnings: {counts[Severity.WARNING]}"
        f"  |  Info: {counts[Severity.INFO]}  |  Suppressed: {len(report.suppressed)}",
    ]
    if report.baseline_version is not None:
        impact = report.release_impact
        lines.insert(
            1,
            f"Baseline: {report.baseline_version}  ->  required bump: "
            f"[{_IMPACT_STYLE[impact]}]{impact.value}[/]",
        )
    if report.truncated:
        lines.append("[yellow]Truncated by work budget; not exhaustive[/]")

    console.print(Panel("\n".join(lines), title="Review summary", border_style=color))


# ---------------------------------------------------------------------------
# Compatibility deltas
# ---------------------------------------------------------------------------


def deltas_table(deltas: Iterable["CompatibilityDelta"]) -> None:
    """Print compatibility deltas ordered by path."""
    table = Table(title="Compatibility changes", show_header=True, border_style="blue")
    table.add_column("Path", style="cyan")
    table.add_column("Change")
    table.add_column("Impact", width=7)
    table.add_column("Detail", style="dim")

    for d in deltas:
        style = _IMPACT_STYLE[d.impact]
        table.add_row(
            escape(d.item_path), d.change_kind.value, f"[{style}]{d.impact.value}[/]", escape(d.detail)
        )

    console.print(table)


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def rules_table(registry: "RuleRegistry") -> None:
    """Print every registered rule."""
    table = Table(title="Registered rules", show_header=True, border_style="blue")
    table.add_column("Id", style="cyan")
    table.add_column("Category")
    table.add_column("Severity", width=9)
    table.add_column("Enabled", width=7)
    table.add_column("Rationale", style="dim")

    for rule in registry:
        style = _SEVERITY_STYLE[rule.severity]
        enabled = "yes" if registry.is_enabled(rule.id) else "no"
        table.add_row(
            rule.id, rule.category.value, f"[{style}]{rule.severity.value}[/]", enabled, rule.rationale
        )

    console.print(table)
