"""CLI command implementations for dmt."""

from dmt.cli.check import FailOn, OutputFormat, check_command
from dmt.cli.errors import CLIError
from dmt.cli.schema import generate_schema_command, list_kinds_command

__all__ = [
    "CLIError",
    "FailOn",
    "OutputFormat",
    "check_command",
    "generate_schema_command",
    "list_kinds_command",
]
