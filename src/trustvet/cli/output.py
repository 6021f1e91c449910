"""Rich output formatting helpers for the trustvet CLI.

Provides consistent terminal output for vet reports, suggestions and the
criteria table.

Status Color Mapping:
    passing = green, exemption-backed = yellow, failing = bold red
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from trustvet.core.criteria import BUILTIN_CRITERIA, CriteriaModel
from trustvet.core.report import AggregateVerdict, Conclusion, Verdict, VettingStatus
from trustvet.core.suggest import SuggestionSet

_STATUS_STYLES: dict[VettingStatus, str] = {
    VettingStatus.FULLY: "green",
    VettingStatus.PARTIALLY: "yellow",
    VettingStatus.WITH_EXEMPTIONS: "yellow",
    VettingStatus.UNVETTED: "bold red",
}

_CONCLUSION_STYLES: dict[Conclusion, str] = {
    Conclusion.SUCCESS: "bold green",
    Conclusion.FAIL_VIOLATION: "bold red",
    Conclusion.FAIL_VETTING: "bold red",
}

console = Console()


def status_style(status: VettingStatus) -> str:
    """Return the Rich style string for a vetting status."""
    return _STATUS_STYLES.get(status, "white")


def _failure_text(verdict: Verdict) -> str:
    parts = []
    for failure in verdict.failures:
        text = f"{failure.criterion}: {failure.reason.message}"
        notes = [v.notes for v in failure.violations if v.notes]
        if notes:
            text += f" ({'; '.join(notes)})"
        parts.append(text)
    return "\n".join(parts)


def print_report(report: AggregateVerdict) -> None:
    """Print the per-package verdict table and the conclusion.

    Args:
        report: The aggregate verdict of a vet.
    """
    style = _CONCLUSION_STYLES[report.conclusion]
    console.print(Panel(Text(report.conclusion.value, style=style), title="Vet Result"))

    if report.failing:
        table = Table(title="Failing Packages", show_header=True, header_style="bold")
        table.add_column("Package", style="bold")
        table.add_column("Version")
        table.add_column("Missing")
        table.add_column("Reason")
        for verdict in report.failing:
            table.add_row(
                verdict.node.package,
                str(verdict.node.version),
                ", ".join(sorted(verdict.unmet)),
                _failure_text(verdict),
            )
        console.print(table)

    if report.conflicts:
        console.print("[bold red]Audits contradicting violations:[/bold red]")
        for conflict in report.conflicts:
            console.print(f"  {conflict.describe()}")

    if report.rejected:
        console.print("[yellow]Rejected records:[/yellow]")
        for rejected in report.rejected:
            console.print(f"  {rejected.package}: {rejected.reason}")

    _print_report_summary(report)


def _print_report_summary(report: AggregateVerdict) -> None:
    """Print a one-line summary after the report."""
    total = len(report.verdicts)
    parts = [f"[bold]{total}[/bold] packages vetted"]
    fully = report.count(VettingStatus.FULLY)
    partially = report.count(VettingStatus.PARTIALLY)
    exempted = report.count(VettingStatus.WITH_EXEMPTIONS)
    failing = len(report.failing)
    if fully:
        parts.append(f"[green]{fully} fully audited[/green]")
    if partially:
        parts.append(f"[yellow]{partially} partially audited[/yellow]")
    if exempted:
        parts.append(f"[yellow]{exempted} exempted[/yellow]")
    if failing:
        parts.append(f"[red]{failing} failing[/red]")
    console.print(" | ".join(parts))


def print_suggestions(suggestions: SuggestionSet) -> None:
    """Print suggested audits grouped by criteria, cheapest first.

    Args:
        suggestions: Merged suggestions for a report.
    """
    if not suggestions.audits and not suggestions.blocked and not suggestions.unresolved:
        console.print("[dim]Nothing to suggest.[/dim]")
        return

    for label, audits in suggestions.by_criteria().items():
        table = Table(title=f"Recommended audits for {label}", show_header=True)
        table.add_column("Command", style="bold")
        table.add_column("Cost", justify="right")
        for audit in audits:
            command = f"trustvet certify {audit.package} {audit.to_version}"
            if audit.from_version is not None:
                command += f" --from {audit.from_version}"
            table.add_row(command, str(audit.cost))
        console.print(table)

    for result in suggestions.blocked:
        console.print(
            f"[red]Blocked:[/red] {result.node} cannot satisfy {result.criterion}: "
            f"{result.reason}"
        )
    for result in suggestions.unresolved:
        console.print(
            f"[yellow]No candidate:[/yellow] {result.node} for {result.criterion}: "
            f"{result.reason}"
        )
    if suggestions.audits:
        console.print(f"Estimated total cost: [bold]{suggestions.total_cost}[/bold]")


def print_criteria(criteria: CriteriaModel) -> None:
    """Print every criterion with its implication closure."""
    table = Table(title="Criteria", show_header=True, header_style="bold")
    table.add_column("Name", style="bold")
    table.add_column("Implies")
    table.add_column("Description")
    for name in criteria.names:
        criterion = criteria.get(name)
        implied = sorted(criteria.closure(name) - {name})
        description = criterion.description or criterion.description_url or ""
        label = f"{name} (built-in)" if name in BUILTIN_CRITERIA else name
        table.add_row(label, ", ".join(implied) or "-", description)
    console.print(table)
