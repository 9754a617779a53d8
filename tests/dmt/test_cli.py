"""Tests for dmt CLI commands.

Commands are exercised through their public functions and through the Typer
application, using real temporary source trees.
"""

import io
import json
from collections.abc import Callable
from pathlib import Path

import pytest
import typer
from rich.console import Console
from typer.testing import CliRunner

from docmeta import Reporter
from dmt.__main__ import app
from dmt.cli import (
    CLIError,
    FailOn,
    OutputFormat,
    check_command,
    generate_schema_command,
    list_kinds_command,
)
from dmt.cli.errors import cli_error_handler
from dmt.cli.formatting import OutputFormatter

WriteModule = Callable[[str, str], Path]

DEPRECATED_MODULE = "@doc(deprecated=True)\ndef old():\n    pass\n"
DUPLICATE_MODULE = "@doc(raises={KeyError: 'a', KeyError: 'b'})\ndef f():\n    pass\n"
EXTENSION_MODULE = "@doc(since='1.2')\ndef f():\n    pass\n"

runner = CliRunner()
ENV = {"COLUMNS": "200", "DMT_ENV": ""}


class TestCheckCommand:
    """Test check_command functionality."""

    def test_clean_tree_succeeds(
        self, tmp_path: Path, write_module: WriteModule
    ) -> None:
        """Test that informational findings do not fail the check."""
        write_module("lib.py", DEPRECATED_MODULE)

        check_command([tmp_path])

    def test_errors_exit_with_code_one(
        self, tmp_path: Path, write_module: WriteModule
    ) -> None:
        """Test that an error diagnostic fails the check."""
        write_module("lib.py", DUPLICATE_MODULE)

        with pytest.raises(typer.Exit) as exc:
            check_command([tmp_path])

        assert exc.value.exit_code == 1

    @pytest.mark.parametrize(
        ("fail_on", "fails"),
        [
            (FailOn.ERROR, False),
            (FailOn.WARNING, False),
            (FailOn.INFO, True),
            (FailOn.NEVER, False),
        ],
    )
    def test_fail_on_threshold(
        self,
        tmp_path: Path,
        write_module: WriteModule,
        fail_on: FailOn,
        fails: bool,
    ) -> None:
        """Test the severity threshold for an info-only report."""
        write_module("lib.py", DEPRECATED_MODULE)

        if fails:
            with pytest.raises(typer.Exit):
                check_command([tmp_path], fail_on=fail_on)
        else:
            check_command([tmp_path], fail_on=fail_on)

    def test_never_ignores_errors(
        self, tmp_path: Path, write_module: WriteModule
    ) -> None:
        """Test that --fail-on never always succeeds."""
        write_module("lib.py", DUPLICATE_MODULE)

        check_command([tmp_path], fail_on=FailOn.NEVER)

    def test_json_output_on_stdout(
        self,
        tmp_path: Path,
        write_module: WriteModule,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Test that the JSON format prints a parseable report."""
        write_module("lib.py", DEPRECATED_MODULE)

        check_command([tmp_path], output_format=OutputFormat.JSON)

        data = json.loads(capsys.readouterr().out)
        (diagnostic,) = data["diagnostics"]
        assert diagnostic["kind"] == "deprecated"
        assert diagnostic["target"] == "lib.old"
        assert data["summary"]["files_analysed"] == 1

    def test_report_saved_to_file(
        self, tmp_path: Path, write_module: WriteModule
    ) -> None:
        """Test that --output writes the JSON report."""
        source = write_module("src/lib.py", DEPRECATED_MODULE)
        output = tmp_path / "reports" / "docmeta.json"

        check_command([source], output=output)

        data = json.loads(output.read_text())
        assert data["summary"]["infos"] == 1

    def test_strict_override(self, tmp_path: Path, write_module: WriteModule) -> None:
        """Test that strict mode reports extension keywords."""
        write_module("lib.py", EXTENSION_MODULE)

        check_command([tmp_path], fail_on=FailOn.WARNING)
        with pytest.raises(typer.Exit):
            check_command([tmp_path], strict=True, fail_on=FailOn.WARNING)

    def test_config_file_and_lenient_override(
        self, tmp_path: Path, write_module: WriteModule
    ) -> None:
        """Test that CLI flags override the configuration file."""
        write_module("src/lib.py", EXTENSION_MODULE)
        config = tmp_path / "docmeta.yaml"
        config.write_text("validator:\n  mode: strict\n")

        with pytest.raises(typer.Exit):
            check_command(
                [tmp_path / "src"], config_path=config, fail_on=FailOn.WARNING
            )
        check_command(
            [tmp_path / "src"],
            config_path=config,
            strict=False,
            fail_on=FailOn.WARNING,
        )

    def test_invalid_config_file(
        self, tmp_path: Path, write_module: WriteModule
    ) -> None:
        """Test that configuration errors exit with code 1."""
        write_module("src/lib.py", DEPRECATED_MODULE)
        config = tmp_path / "docmeta.yaml"
        config.write_text("validator:\n  mode: loud\n")

        with pytest.raises(typer.Exit) as exc:
            check_command([tmp_path / "src"], config_path=config)

        assert exc.value.exit_code == 1


class TestSchemaCommands:
    """Test schema generation and kind listing."""

    def test_generate_schema(self, tmp_path: Path) -> None:
        """Test that the schema file is written."""
        output = tmp_path / "schema.json"

        generate_schema_command(output)

        assert json.loads(output.read_text())["title"] == "DiagnosticReport"

    def test_list_kinds(self) -> None:
        """Test that listing kinds completes without error."""
        list_kinds_command()


class TestOutputFormatter:
    """Test rich rendering of reports."""

    def _console(self) -> tuple[Console, io.StringIO]:
        buffer = io.StringIO()
        return Console(file=buffer, width=200, no_color=True), buffer

    def test_empty_report(self) -> None:
        """Test the message for an empty report."""
        console, buffer = self._console()

        OutputFormatter(console).format_report(
            Reporter().build_report([], files_analysed=4)
        )

        assert "No diagnostics in 4 files" in buffer.getvalue()

    def test_kinds_table(self) -> None:
        """Test that every kind is listed."""
        console, buffer = self._console()

        OutputFormatter(console).format_kinds()

        output = buffer.getvalue()
        assert "missing_delegated_raises" in output
        assert "source_error" in output


class TestErrorHandling:
    """Test the CLI error handler."""

    def test_cli_error_message_includes_command(self) -> None:
        """Test CLIError formatting."""
        assert str(CLIError("boom", command="check")) == (
            "CLI command 'check' failed: boom"
        )
        assert str(CLIError("boom")) == "boom"

    def test_exceptions_become_exit_code_one(self) -> None:
        """Test that unexpected errors are shown and exit with code 1."""
        with pytest.raises(typer.Exit) as exc:
            with cli_error_handler("check", "Failed"):
                raise RuntimeError("unexpected")

        assert exc.value.exit_code == 1
        assert isinstance(exc.value.__cause__, CLIError)

    def test_exit_passes_through(self) -> None:
        """Test that typer.Exit is not wrapped."""
        with pytest.raises(typer.Exit) as exc:
            with cli_error_handler("check", "Failed"):
                raise typer.Exit(3)

        assert exc.value.exit_code == 3


class TestApplication:
    """Test the Typer application end to end."""

    def test_check_json(self, tmp_path: Path, write_module: WriteModule) -> None:
        """Test the check command with JSON output."""
        write_module("lib.py", DEPRECATED_MODULE)

        result = runner.invoke(app, ["check", str(tmp_path), "-f", "json"], env=ENV)

        assert result.exit_code == 0
        assert json.loads(result.stdout)["summary"]["infos"] == 1

    def test_check_fails_on_errors(
        self, tmp_path: Path, write_module: WriteModule
    ) -> None:
        """Test the exit code for error diagnostics."""
        write_module("lib.py", DUPLICATE_MODULE)

        result = runner.invoke(app, ["check", str(tmp_path), "-f", "json"], env=ENV)

        assert result.exit_code == 1
        (diagnostic,) = json.loads(result.stdout)["diagnostics"]
        assert diagnostic["kind"] == "duplicate_raises_key"

    def test_check_strict_flag(
        self, tmp_path: Path, write_module: WriteModule
    ) -> None:
        """Test the --strict and --fail-on options."""
        write_module("lib.py", EXTENSION_MODULE)

        result = runner.invoke(
            app,
            ["check", str(tmp_path), "--strict", "--fail-on", "warning", "-f", "json"],
            env=ENV,
        )

        assert result.exit_code == 1
        (diagnostic,) = json.loads(result.stdout)["diagnostics"]
        assert diagnostic["kind"] == "unknown_extension_key"

    def test_missing_path_is_rejected(self, tmp_path: Path) -> None:
        """Test that Typer validates path existence."""
        result = runner.invoke(app, ["check", str(tmp_path / "missing")], env=ENV)

        assert result.exit_code == 2

    def test_ls_kinds(self) -> None:
        """Test the ls-kinds command."""
        result = runner.invoke(app, ["ls-kinds"], env=ENV)

        assert result.exit_code == 0
        assert "ambiguous_attachment" in result.stdout

    def test_schema(self, tmp_path: Path) -> None:
        """Test the schema command."""
        output = tmp_path / "schema.json"

        result = runner.invoke(app, ["schema", str(output)], env=ENV)

        assert result.exit_code == 0
        assert output.exists()
