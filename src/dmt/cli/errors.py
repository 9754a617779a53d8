"""Error reporting shared by dmt commands."""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from typing import override

import typer
from rich.console import Console
from rich.panel import Panel

from docmeta import DocMetaError

logger = logging.getLogger(__name__)
console = Console(stderr=True)


class CLIError(Exception):
    """A command failure, carrying the command name and its cause."""

    def __init__(
        self,
        message: str,
        command: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """Initialise the error.

        Args:
            message: What went wrong
            command: Command that failed, e.g. "check"
            original_error: Exception that caused the failure

        """
        super().__init__(message)
        self.command = command
        self.original_error = original_error

    @override
    def __str__(self) -> str:
        message = super().__str__()
        if self.command is None:
            return message
        return f"CLI command '{self.command}' failed: {message}"


def _show(title: str, error: CLIError) -> None:
    panel = Panel(f"[red]{error}[/red]", title=f"❌ {title}", border_style="red")
    console.print(panel)


@contextmanager
def cli_error_handler(command: str, title: str) -> Generator[None]:
    """Turn exceptions raised by a command into an error panel and exit code 1.

    ``typer.Exit`` is re-raised untouched so commands can pick their own exit
    code. docmeta errors are expected user errors and are logged without a
    traceback; anything else is logged with one.

    Args:
        command: Command name shown in the message
        title: Title of the error panel

    """
    try:
        yield
    except typer.Exit:
        raise
    except CLIError as e:
        logger.error("%s: %s", title, e)
        _show(title, e)
        raise typer.Exit(1) from e
    except DocMetaError as e:
        error = CLIError(str(e), command=command, original_error=e)
        logger.error("%s: %s", title, error)
        _show(title, error)
        raise typer.Exit(1) from error
    except Exception as e:
        error = CLIError(str(e), command=command, original_error=e)
        logger.exception("%s: unexpected error", title)
        _show(title, error)
        raise typer.Exit(1) from error
