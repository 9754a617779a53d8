"""Tests for the DocMetaAnalyser pipeline."""

from collections.abc import Callable
from pathlib import Path

import pytest

from docmeta import (
    AnalysisConfig,
    DocMetaAnalyser,
    DocMetaConfig,
    FindingKind,
    Severity,
    ValidatorConfig,
)

WriteModule = Callable[[str, str], Path]

DEPRECATED_MODULE = "@doc(deprecated=True)\ndef old():\n    pass\n"


def _analyser(**analysis_options) -> DocMetaAnalyser:
    config = DocMetaConfig(analysis=AnalysisConfig(**analysis_options))
    return DocMetaAnalyser(config)


class TestAnalyseSource:
    """Test analysing inline source text."""

    def test_findings_for_source(self) -> None:
        """Test the full pipeline on one module."""
        result = DocMetaAnalyser().analyse_source(
            DEPRECATED_MODULE, path="lib.py", module="lib"
        )

        (finding,) = result.findings
        assert finding.kind == FindingKind.DEPRECATED
        assert finding.target == "lib.old"
        assert finding.location.path == "lib.py"
        assert result.files_analysed == 1

    def test_syntax_errors_still_validate_the_rest(self) -> None:
        """Test that partial parses report a source error and keep going."""
        source = DEPRECATED_MODULE + "\ndef broken(:\n    pass\n"

        result = DocMetaAnalyser().analyse_source(source, path="lib.py", module="lib")

        kinds = [finding.kind for finding in result.findings]
        assert kinds[0] == FindingKind.SOURCE_ERROR
        assert FindingKind.DEPRECATED in kinds

    def test_cross_check_uses_scanned_call_graph(self) -> None:
        """Test that the analyser feeds the module call graph to the validator."""
        source = (
            "@doc(raises={KeyError: None, ValueError: None})\n"
            "def api():\n"
            "    helper()\n"
            "\n"
            "@doc(raises={KeyError: None})\n"
            "def helper():\n"
            "    pass\n"
        )
        config = DocMetaConfig(validator=ValidatorConfig(cross_check_raises=True))

        result = DocMetaAnalyser(config).analyse_source(source, module="lib")

        (finding,) = result.findings
        assert finding.kind == FindingKind.MISSING_DELEGATED_RAISES
        assert finding.key == "ValueError"

    def test_recognised_names_come_from_config(self) -> None:
        """Test that a configured name is treated as the convention."""
        source = "@describe(deprecated=True)\ndef old():\n    pass\n"
        config = DocMetaConfig(
            validator=ValidatorConfig(recognised_names=("describe",))
        )

        result = DocMetaAnalyser(config).analyse_source(source)

        assert [f.kind for f in result.findings] == [FindingKind.DEPRECATED]

    def test_unicode_exception_names_do_not_stop_the_run(self) -> None:
        """Test that non-ASCII identifiers flow through the pipeline."""
        source = (
            "class Fehlerß(Exception):\n"
            "    pass\n"
            "\n"
            "@doc(raises={Fehlerß: 'bad'})\n"
            "def f():\n"
            "    pass\n"
            "\n"
            + DEPRECATED_MODULE
        )

        result = DocMetaAnalyser().analyse_source(source, module="lib")

        (finding,) = result.findings
        assert finding.kind == FindingKind.DEPRECATED
        assert finding.target == "lib.old"


class TestCollectFiles:
    """Test file discovery."""

    def test_default_excludes(self, tmp_path: Path, write_module: WriteModule) -> None:
        """Test that virtual environments and caches are skipped."""
        write_module("pkg/a.py", "")
        write_module("pkg/stubs.pyi", "")
        write_module(".venv/lib/site.py", "")
        write_module("pkg/__pycache__/a.py", "")
        write_module("pkg/notes.txt", "")

        files = DocMetaAnalyser().collect_files(tmp_path)

        assert [f.relative_to(tmp_path).as_posix() for f in files] == [
            "pkg/a.py",
            "pkg/stubs.pyi",
        ]

    def test_include_and_exclude_patterns(
        self, tmp_path: Path, write_module: WriteModule
    ) -> None:
        """Test that include patterns apply before exclude patterns."""
        write_module("src/app.py", "")
        write_module("src/generated/models.py", "")
        write_module("tests/test_app.py", "")

        analyser = _analyser(
            include_patterns=["src/"], exclude_patterns=["generated/"]
        )

        files = analyser.collect_files(tmp_path)

        assert [f.relative_to(tmp_path).as_posix() for f in files] == ["src/app.py"]

    def test_max_files(self, tmp_path: Path, write_module: WriteModule) -> None:
        """Test that collection stops at the file limit."""
        for name in ("a.py", "b.py", "c.py"):
            write_module(name, "")

        files = _analyser(max_files=2).collect_files(tmp_path)

        assert [f.name for f in files] == ["a.py", "b.py"]

    def test_single_file(self, write_module: WriteModule) -> None:
        """Test that a Python file given directly is collected."""
        path = write_module("script.py", "")

        assert DocMetaAnalyser().collect_files(path) == [path]

    def test_unsupported_single_file(self, write_module: WriteModule) -> None:
        """Test that non-Python files are skipped."""
        path = write_module("README.md", "# Readme\n")

        assert DocMetaAnalyser().collect_files(path) == []


@pytest.mark.integration
class TestAnalysePaths:
    """Test analysing source trees on disk."""

    def test_package_targets_and_ordering(
        self, tmp_path: Path, write_module: WriteModule
    ) -> None:
        """Test module names from packages and the final report order."""
        write_module("pkg/__init__.py", "")
        write_module("pkg/b.py", DEPRECATED_MODULE)
        write_module(
            "pkg/a.py",
            "@doc(raises={KeyError: '1', KeyError: '2'})\ndef f():\n    pass\n",
        )

        result = DocMetaAnalyser().analyse_paths([tmp_path])
        report = result.to_report()

        assert result.files_analysed == 3
        assert [d.target for d in report.diagnostics] == ["pkg.a.f", "pkg.b.old"]
        assert report.summary.errors == 1
        assert report.summary.infos == 1
        assert report.has_at_least(Severity.ERROR)

    def test_missing_path(self, tmp_path: Path) -> None:
        """Test that a missing path is a source error."""
        result = DocMetaAnalyser().analyse_paths([tmp_path / "missing"])

        (finding,) = result.findings
        assert finding.kind == FindingKind.SOURCE_ERROR
        assert "does not exist" in finding.message
        assert result.files_analysed == 0

    def test_undecodable_file(self, tmp_path: Path, write_module: WriteModule) -> None:
        """Test that a file in the wrong encoding is reported and skipped."""
        write_module("good.py", DEPRECATED_MODULE)
        (tmp_path / "bad.py").write_bytes(b"x = '\xff\xfe'\n")

        result = DocMetaAnalyser().analyse_paths([tmp_path])

        kinds = sorted(finding.kind for finding in result.findings)
        assert kinds == sorted([FindingKind.SOURCE_ERROR, FindingKind.DEPRECATED])
        assert result.files_analysed == 1

    def test_oversized_files_are_skipped(
        self, tmp_path: Path, write_module: WriteModule
    ) -> None:
        """Test that files above the size limit are not analysed."""
        write_module("big.py", DEPRECATED_MODULE)

        result = _analyser(max_file_size=10).analyse_paths([tmp_path])

        assert result.findings == []
        assert result.files_analysed == 0

    def test_clean_tree(self, tmp_path: Path, write_module: WriteModule) -> None:
        """Test that a tree without metadata gives an empty report."""
        write_module("plain.py", "def f():\n    return 1\n")

        report = DocMetaAnalyser().analyse_paths([tmp_path]).to_report()

        assert report.diagnostics == []
        assert report.summary.files_analysed == 1
