"""Output formatting for dmt CLI commands."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from docmeta import DiagnosticReport, FindingKind, Severity
from docmeta.findings import KIND_DESCRIPTIONS

logger = logging.getLogger(__name__)
console = Console()


class OutputFormatter:
    """Handles formatting CLI output for different commands."""

    SEVERITY_STYLES: Mapping[Severity, str] = {
        Severity.ERROR: "bold red",
        Severity.WARNING: "yellow",
        Severity.INFO: "blue",
    }

    def __init__(self, output: Console | None = None) -> None:
        """Initialise the formatter.

        Args:
            output: Console to print to (stdout by default)

        """
        self._console = output or console

    def format_report(self, report: DiagnosticReport) -> None:
        """Print diagnostics as a table followed by a summary.

        Args:
            report: Report to print

        """
        summary = report.summary
        if not report.diagnostics:
            self._console.print(
                Panel(
                    f"[green]No diagnostics in {summary.files_analysed} files[/green]",
                    title="✅ docmeta check",
                    border_style="green",
                )
            )
            return

        table = Table(
            title="📋 Documentation Metadata Diagnostics",
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("Location", style="cyan", no_wrap=True)
        table.add_column("Severity")
        table.add_column("Kind", style="dim")
        table.add_column("Target", style="white")
        table.add_column("Message")

        for diagnostic in report.diagnostics:
            style = self.SEVERITY_STYLES[diagnostic.severity]
            table.add_row(
                escape(str(diagnostic.location)),
                f"[{style}]{diagnostic.severity}[/{style}]",
                diagnostic.kind.value,
                escape(diagnostic.target),
                escape(diagnostic.message),
            )

        self._console.print(table)
        self._console.print(
            f"[bold]{summary.files_analysed}[/bold] files: "
            f"[red]{summary.errors} errors[/red], "
            f"[yellow]{summary.warnings} warnings[/yellow], "
            f"[blue]{summary.infos} infos[/blue]"
        )

    def format_kinds(self) -> None:
        """Print every finding kind with its severity and description."""
        table = Table(
            title="🔧 Finding Kinds",
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("Kind", style="cyan", no_wrap=True)
        table.add_column("Severity")
        table.add_column("Description", style="white")

        for kind in FindingKind:
            severity = kind.default_severity
            style = self.SEVERITY_STYLES[severity]
            table.add_row(
                kind.value,
                f"[{style}]{severity}[/{style}]",
                KIND_DESCRIPTIONS[kind],
            )
            logger.debug("Finding kind %s: %s", kind, severity)

        self._console.print(table)
