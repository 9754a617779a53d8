"""Main entry point for the docmeta checker (dmt).

This module provides the command-line interface for validating documentation
metadata, including commands for:
- Checking files and directories
- Generating the JSON schema of the report
- Listing finding kinds and their severities
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv

from dmt.cli import (
    FailOn,
    OutputFormat,
    check_command,
    generate_schema_command,
    list_kinds_command,
)

# Load environment variables (e.g. DMT_ENV) from a .env file if it exists
_ = load_dotenv()

app = typer.Typer(name="dmt", no_args_is_help=True)

LogLevelOption = Annotated[
    str,
    typer.Option(
        "--log-level",
        help="Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        case_sensitive=False,
    ),
]


@app.command()
def check(  # noqa: PLR0913 - CLI entry point with many options
    paths: Annotated[
        list[Path],
        typer.Argument(
            help="Python files or directories to check",
            exists=True,
            file_okay=True,
            dir_okay=True,
            readable=True,
        ),
    ],
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="YAML configuration file with 'validator' and 'analysis' sections",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    strict: Annotated[
        bool | None,
        typer.Option(
            "--strict/--lenient",
            help="Report unknown extension keywords (overrides the config file)",
            show_default=False,
        ),
    ] = None,
    cross_check_raises: Annotated[
        bool | None,
        typer.Option(
            "--cross-check-raises/--no-cross-check-raises",
            help="Compare documented exceptions against documented callees",
            show_default=False,
        ),
    ] = None,
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Report format printed to stdout",
            case_sensitive=False,
            rich_help_panel="Output",
        ),
    ] = OutputFormat.TABLE,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Also save the report as JSON to this file",
            file_okay=True,
            dir_okay=False,
            writable=True,
            rich_help_panel="Output",
        ),
    ] = None,
    fail_on: Annotated[
        FailOn,
        typer.Option(
            "--fail-on",
            help="Exit with code 1 when a diagnostic reaches this severity",
            case_sensitive=False,
        ),
    ] = FailOn.ERROR,
    log_level: LogLevelOption = "WARNING",
) -> None:
    """Check documentation metadata in Python sources.

    Example:
        dmt check src/ --strict --format json -o report.json

    """
    check_command(
        paths,
        config_path=config,
        strict=strict,
        cross_check_raises=cross_check_raises,
        output_format=output_format,
        output=output,
        fail_on=fail_on,
        log_level=log_level,
    )


@app.command()
def schema(
    output: Annotated[
        Path,
        typer.Argument(
            help="Output file path for the generated schema",
            file_okay=True,
            dir_okay=False,
            writable=True,
        ),
    ],
    log_level: LogLevelOption = "WARNING",
) -> None:
    """Generate JSON schema for dmt reports."""
    generate_schema_command(output, log_level)


@app.command(name="ls-kinds")
def list_kinds(log_level: LogLevelOption = "WARNING") -> None:
    """List finding kinds and their severities."""
    list_kinds_command(log_level)


if __name__ == "__main__":
    app()
