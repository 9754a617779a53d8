"""CLI command implementations for report schema generation and listings."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console

from docmeta import DiagnosticReport
from dmt.cli.errors import cli_error_handler
from dmt.cli.formatting import OutputFormatter
from dmt.logging import setup_logging

logger = logging.getLogger(__name__)
console = Console()


def generate_schema_command(output_path: Path, log_level: str = "WARNING") -> None:
    """CLI command implementation for generating the report JSON schema.

    Args:
        output_path: Path to save the generated schema
        log_level: Logging level

    """
    setup_logging(level=log_level)

    with cli_error_handler("schema", "Schema generation failed"):
        DiagnosticReport.generate_json_schema(output_path)
        console.print(
            f"[green]✅ Schema generated successfully: {output_path}[/green]"
        )
        logger.info("Schema saved to %s", output_path)


def list_kinds_command(log_level: str = "WARNING") -> None:
    """CLI command implementation for listing finding kinds.

    Args:
        log_level: Logging level

    """
    setup_logging(level=log_level)

    with cli_error_handler("ls-kinds", "Failed to list finding kinds"):
        OutputFormatter().format_kinds()
