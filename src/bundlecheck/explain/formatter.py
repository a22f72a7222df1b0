"""Rich console formatting for findings, explanations and suggestions."""

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..models.finding import Confidence, Explanation, Finding, Severity

_SEVERITY_COLORS = {
    Severity.ERROR: "red",
    Severity.WARNING: "yellow",
    Severity.INFO: "cyan",
}

_CONFIDENCE_COLORS = {
    Confidence.HIGH: "green",
    Confidence.MEDIUM: "yellow",
    Confidence.LOW: "dim",
}

_STATUS_COLORS = {"pass": "green", "warn": "yellow", "fail": "red"}


class FindingFormatter:
    """Formats validation results for rich console display."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def format_result(self, result) -> None:
        """Display status, counters, findings and suggestions of a run."""
        self._format_status(result)

        if result.fatal_errors:
            self.console.print("\n[red]Document could not be validated:[/red]")
            self.format_findings(result.fatal_errors)
            return

        if result.counters:
            self._format_counters(result.counters)

        if result.findings:
            self.console.print("\n[blue]Findings:[/blue]")
            self.format_findings(result.findings)
        else:
            self.console.print("\n[green]No findings![/green]")

        if result.suggestions:
            self.console.print("\n[blue]Rule suggestions:[/blue]")
            self.format_suggestions(result.suggestions)

        if result.timed_out:
            skipped = ", ".join(result.skipped_stages)
            self.console.print(f"\n[yellow]Timed out; skipped stages: {skipped}[/yellow]")

    def _format_status(self, result) -> None:
        status = result.status.value
        color = _STATUS_COLORS.get(status, "white")
        self.console.print(f"[{color}]Validation Status: {status.upper()}[/{color}]")
        self.console.print(f"Exit Code: {result.exit_code}")

    def _format_counters(self, counters: dict[str, int]) -> None:
        table = Table(box=box.SIMPLE)
        table.add_column("Metric", style="cyan")
        table.add_column("Count", style="white", justify="right")
        for key, value in sorted(counters.items()):
            table.add_row(key.replace("_", " ").title(), str(value))
        self.console.print(table)

    def format_findings(self, findings: list[Finding]) -> None:
        table = Table()
        table.add_column("Severity", style="white")
        table.add_column("Authority", style="cyan")
        table.add_column("Code", style="white")
        table.add_column("Pointer", style="dim")
        table.add_column("Explanation", style="white")

        for finding in findings:
            color = _SEVERITY_COLORS[finding.severity]
            table.add_row(
                f"[{color}]{finding.severity.value.upper()}[/{color}]",
                finding.authority.value,
                finding.code,
                escape(finding.pointer or "/"),
                self._explanation_text(finding.explanation),
            )
        self.console.print(table)

    def format_explanation(self, title: str, explanation: Explanation) -> None:
        color = _CONFIDENCE_COLORS[explanation.confidence]
        body = f"[bold]What:[/bold] {escape(explanation.what)}"
        if explanation.how:
            body += f"\n[bold]How:[/bold] {escape(explanation.how)}"
        body += f"\n[{color}]Confidence: {explanation.confidence.value}[/{color}]"
        self.console.print(Panel(body, title=title, expand=False))

    def format_suggestions(self, suggestions: list) -> None:
        table = Table()
        table.add_column("Resource", style="cyan")
        table.add_column("Field", style="white")
        table.add_column("Rule", style="white")
        table.add_column("Confidence", style="white")
        table.add_column("Evidence", style="dim")

        for suggestion in suggestions:
            color = _CONFIDENCE_COLORS[suggestion.confidence]
            examples = escape(", ".join(str(v) for v in suggestion.evidence.examples))
            table.add_row(
                suggestion.rule.resource_type,
                escape(suggestion.rule.field_path),
                suggestion.rule.type,
                f"[{color}]{suggestion.confidence.value}[/{color}]",
                f"{suggestion.evidence.sample_count} sample(s): {examples}",
            )
        self.console.print(table)

    @staticmethod
    def _explanation_text(explanation: Explanation | None) -> str:
        if explanation is None:
            return ""
        if explanation.how:
            return f"{escape(explanation.what)}\n[dim]{escape(explanation.how)}[/dim]"
        return escape(explanation.what)
