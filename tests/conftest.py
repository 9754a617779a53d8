"""Shared fixtures for docmeta and dmt tests."""

from collections.abc import Callable
from pathlib import Path

import pytest

from docmeta import AttachmentResolver, SymbolResolution
from docmeta.parsing import DeclarationScanner, ModuleDeclarations


@pytest.fixture
def scanner() -> DeclarationScanner:
    """Provide a declaration scanner backed by the real Python grammar."""
    return DeclarationScanner()


@pytest.fixture
def scan(scanner: DeclarationScanner) -> Callable[..., ModuleDeclarations]:
    """Scan inline source code as module ``example``."""

    def _scan(source: str, path: str = "example.py") -> ModuleDeclarations:
        return scanner.scan(source, path=path, module="example")

    return _scan


@pytest.fixture
def resolve(
    scan: Callable[..., ModuleDeclarations],
) -> Callable[..., list[SymbolResolution]]:
    """Scan and resolve inline source code with the default resolver."""

    def _resolve(source: str) -> list[SymbolResolution]:
        return AttachmentResolver().resolve_module(scan(source))

    return _resolve


@pytest.fixture
def write_module(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write a source file below a temporary directory."""

    def _write(relative_path: str, source: str) -> Path:
        path = tmp_path / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(source, encoding="utf-8")
        return path

    return _write
