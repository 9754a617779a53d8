"""CLI command implementation for checking documentation metadata."""

from __future__ import annotations

import logging
from enum import StrEnum
from pathlib import Path

import typer
from rich.console import Console

from docmeta import DocMetaAnalyser, Severity, ValidationMode, load_config
from dmt.cli.errors import cli_error_handler
from dmt.cli.formatting import OutputFormatter
from dmt.logging import setup_logging

logger = logging.getLogger(__name__)
console = Console()


class OutputFormat(StrEnum):
    """Report formats printed to stdout."""

    TABLE = "table"
    JSON = "json"


class FailOn(StrEnum):
    """Lowest severity that makes the check fail."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    NEVER = "never"

    @property
    def threshold(self) -> Severity | None:
        """Return the severity threshold, None when the check never fails."""
        if self == FailOn.NEVER:
            return None
        return Severity(self.value)


def check_command(  # noqa: PLR0913 - mirrors the CLI options
    paths: list[Path],
    config_path: Path | None = None,
    strict: bool | None = None,
    cross_check_raises: bool | None = None,
    output_format: OutputFormat = OutputFormat.TABLE,
    output: Path | None = None,
    fail_on: FailOn = FailOn.ERROR,
    log_level: str = "WARNING",
) -> None:
    """CLI command implementation for checking files and directories.

    Args:
        paths: Files or directories to analyse
        config_path: Optional YAML configuration file
        strict: Override the validation mode (None keeps the configured mode)
        cross_check_raises: Override the raises cross-check
        output_format: Format printed to stdout
        output: Optional file the JSON report is written to
        fail_on: Lowest severity that makes the command exit with code 1
        log_level: Logging level

    Raises:
        typer.Exit: With code 1 when a diagnostic reaches ``fail_on``

    """
    setup_logging(level=log_level)

    with cli_error_handler("check", "Documentation metadata check failed"):
        mode = None
        if strict is not None:
            mode = ValidationMode.STRICT if strict else ValidationMode.LENIENT
        config = load_config(config_path).with_overrides(
            mode=mode, cross_check_raises=cross_check_raises
        )
        logger.debug("Validator configuration: %s", config.validator)

        result = DocMetaAnalyser(config).analyse_paths(paths)
        report = result.to_report()

        if output is not None:
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(report.to_json() + "\n", encoding="utf-8")
            logger.info("Report saved to %s", output)

        if output_format == OutputFormat.JSON:
            typer.echo(report.to_json())
        else:
            OutputFormatter().format_report(report)
            if output is not None:
                console.print(f"[green]✅ Report saved to {output}[/green]")

        threshold = fail_on.threshold
        if threshold is not None and report.has_at_least(threshold):
            raise typer.Exit(1)
