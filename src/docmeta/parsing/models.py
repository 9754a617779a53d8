"""Data models for scanned declarations."""

from __future__ import annotations

from dataclasses import dataclass, field

from docmeta.callgraph import StaticCallGraph
from docmeta.models import AttachmentSite, SourceLocation, SymbolKind
from docmeta.values import CallExpr, StaticValue


@dataclass(frozen=True, slots=True)
class AnnotatedSlot:
    """A parameter, return value or variable carrying a type annotation."""

    name: str
    site: AttachmentSite
    annotation: StaticValue
    location: SourceLocation


@dataclass(frozen=True, slots=True)
class SymbolDeclaration:
    """A module, class, function or method with its raw annotation payloads.

    ``target`` is the fully qualified name used in diagnostics and call
    graphs: the module name followed by the symbol's qualified name.
    """

    name: str
    qualname: str
    module: str
    kind: SymbolKind
    location: SourceLocation
    docstring: str | None = None
    decorators: tuple[StaticValue, ...] = ()
    slots: tuple[AnnotatedSlot, ...] = ()
    module_calls: tuple[CallExpr, ...] = ()

    @property
    def target(self) -> str:
        """Return the fully qualified target of the symbol."""
        if self.kind == SymbolKind.MODULE:
            return self.module
        return f"{self.module}.{self.qualname}"

    @property
    def is_callable(self) -> bool:
        """Check whether the symbol is a function or method."""
        return self.kind in (SymbolKind.FUNCTION, SymbolKind.METHOD)


@dataclass(slots=True)
class ModuleDeclarations:
    """Everything the scanner found in one source file."""

    path: str
    module: str
    symbols: list[SymbolDeclaration] = field(default_factory=list)
    fallback_names: frozenset[str] = frozenset()
    call_graph: StaticCallGraph = field(default_factory=StaticCallGraph)
    has_syntax_errors: bool = False
