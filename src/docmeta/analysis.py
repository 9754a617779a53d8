"""Analysis pipeline tying the scanner, resolver, validator and reporter together.

File discovery follows gitwildmatch include and exclude patterns. Failures
reading or parsing a single file are logged and reported as ``source_error``
findings; the remaining files are still analysed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

import pathspec

from docmeta.callgraph import StaticCallGraph
from docmeta.config import DocMetaConfig
from docmeta.errors import DocMetaError, ParserError
from docmeta.findings import Finding, FindingKind
from docmeta.models import SourceLocation
from docmeta.parsing.parser import SourceParser
from docmeta.parsing.scanner import DeclarationScanner, module_name_for_path
from docmeta.reporter import DiagnosticReport, Reporter
from docmeta.resolver import AttachmentResolver, SymbolResolution
from docmeta.validator import Validator

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AnalysisResult:
    """Findings of one analysis run."""

    findings: list[Finding] = field(default_factory=list)
    files_analysed: int = 0

    def to_report(self) -> DiagnosticReport:
        """Build the ordered diagnostic report for this run."""
        return Reporter().build_report(self.findings, self.files_analysed)


@dataclass(slots=True)
class _Collected:
    """Per-run accumulator before validation."""

    resolutions: list[SymbolResolution] = field(default_factory=list)
    call_graph: StaticCallGraph = field(default_factory=StaticCallGraph)
    source_errors: list[Finding] = field(default_factory=list)
    files_analysed: int = 0


class DocMetaAnalyser:
    """Analyse Python sources for documentation metadata problems."""

    def __init__(self, config: DocMetaConfig | None = None) -> None:
        """Initialise the analyser.

        Args:
            config: Validator and analysis options (defaults if None)

        """
        self._config = config or DocMetaConfig()
        self._parser = SourceParser()
        self._scanner = DeclarationScanner(self._parser)
        self._resolver = AttachmentResolver(self._config.validator.recognised_names)
        self._validator = Validator(self._config.validator)

    @property
    def config(self) -> DocMetaConfig:
        """Return the analyser configuration."""
        return self._config

    def analyse_source(
        self,
        source_code: str,
        path: str = "<string>",
        module: str | None = None,
    ) -> AnalysisResult:
        """Analyse a single module given as source text.

        Args:
            source_code: Python source code
            path: Path reported in diagnostics
            module: Dotted module name (derived from ``path`` if None)

        Returns:
            AnalysisResult for the module

        """
        collected = _Collected()
        self._analyse_text(collected, source_code, path, module)
        return self._validate(collected)

    def analyse_paths(self, paths: Iterable[Path]) -> AnalysisResult:
        """Analyse files and directories.

        Args:
            paths: Files or directories to analyse

        Returns:
            AnalysisResult covering every collected file

        """
        collected = _Collected()
        for path in paths:
            if not path.exists():
                logger.error(f"Path does not exist: {path}")
                collected.source_errors.append(
                    _source_error(str(path), f"Path does not exist: {path}")
                )
                continue
            for file_path in self.collect_files(path):
                self._analyse_file(collected, file_path)

        logger.info(
            f"Analysed {collected.files_analysed} files, "
            f"{len(collected.resolutions)} symbols"
        )
        return self._validate(collected)

    def collect_files(self, root: Path) -> list[Path]:
        """Collect the Python files to analyse under a path.

        A file given directly is returned as is when it is a Python source.
        Directories are walked recursively, applying include patterns first
        and exclude patterns second, relative to the directory.

        Args:
            root: File or directory

        Returns:
            Sorted list of files, at most ``max_files`` long

        """
        if root.is_file():
            if SourceParser.is_supported_file(root):
                return [root]
            logger.warning(f"Skipping unsupported file: {root}")
            return []

        analysis = self._config.analysis
        include_spec: pathspec.PathSpec | None = None
        if analysis.include_patterns is not None:
            include_spec = pathspec.PathSpec.from_lines(
                "gitwildmatch", analysis.include_patterns
            )
        exclude_spec = pathspec.PathSpec.from_lines(
            "gitwildmatch", analysis.exclude_patterns
        )

        files: list[Path] = []
        for file_path in sorted(root.rglob("*")):
            if not file_path.is_file() or not SourceParser.is_supported_file(
                file_path
            ):
                continue

            relative_path = file_path.relative_to(root).as_posix()
            if include_spec is not None and not include_spec.match_file(
                relative_path
            ):
                logger.debug(f"Filtering file: {file_path}")
                continue
            if exclude_spec.match_file(relative_path):
                logger.debug(f"Filtering file: {file_path}")
                continue

            files.append(file_path)
            if len(files) >= analysis.max_files:
                logger.warning(
                    f"Reached maximum file limit ({analysis.max_files}), "
                    f"stopping collection"
                )
                break

        logger.debug(f"Collected {len(files)} files from {root}")
        return files

    def _analyse_file(self, collected: _Collected, file_path: Path) -> None:
        analysis = self._config.analysis
        try:
            size = file_path.stat().st_size
            if size > analysis.max_file_size:
                logger.info(
                    f"Skipping {file_path}: {size} bytes exceeds "
                    f"{analysis.max_file_size}"
                )
                return
            source_code = file_path.read_text(encoding=analysis.encoding)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Cannot read {file_path}: {e}")
            collected.source_errors.append(
                _source_error(str(file_path), f"Cannot read file: {e}")
            )
            return

        self._analyse_text(
            collected, source_code, str(file_path), module_name_for_path(file_path)
        )

    def _analyse_text(
        self,
        collected: _Collected,
        source_code: str,
        path: str,
        module: str | None,
    ) -> None:
        try:
            declarations = self._scanner.scan(source_code, path=path, module=module)
        except ParserError as e:
            logger.warning(f"Cannot parse {path}: {e}")
            collected.source_errors.append(_source_error(path, str(e)))
            return

        collected.files_analysed += 1
        if declarations.has_syntax_errors:
            collected.source_errors.append(
                _source_error(
                    path, "Source contains syntax errors, results may be incomplete"
                )
            )
        try:
            resolutions = self._resolver.resolve_module(declarations)
        except DocMetaError as e:
            logger.warning(f"Cannot resolve metadata in {path}: {e}")
            collected.source_errors.append(
                _source_error(path, f"Cannot resolve metadata: {e}")
            )
            return
        collected.resolutions.extend(resolutions)
        collected.call_graph.merge(declarations.call_graph)

    def _validate(self, collected: _Collected) -> AnalysisResult:
        findings = list(collected.source_errors)
        findings.extend(
            self._validator.validate(collected.resolutions, collected.call_graph)
        )
        return AnalysisResult(
            findings=findings, files_analysed=collected.files_analysed
        )


def _source_error(path: str, message: str) -> Finding:
    return Finding.create(
        FindingKind.SOURCE_ERROR,
        message,
        location=SourceLocation(path=path, line=1, column=1),
        target=path,
    )
