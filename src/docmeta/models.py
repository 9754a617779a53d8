"""Shared models for symbols, attachment sites and source locations."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class SymbolKind(StrEnum):
    """Kind of a scanned declaration."""

    MODULE = "module"
    CLASS = "class"
    FUNCTION = "function"
    METHOD = "method"


class AttachmentSite(StrEnum):
    """Where a metadata record was declared."""

    MODULE = "module"
    CLASS = "class"
    FUNCTION = "function"
    METHOD = "method"
    PARAMETER = "parameter"
    RETURN_VALUE = "return_value"
    VARIABLE = "variable"

    @classmethod
    def for_symbol(cls, kind: SymbolKind) -> "AttachmentSite":
        """Return the site of a record attached to a whole symbol."""
        return cls(kind.value)

    @property
    def is_symbol(self) -> bool:
        """Check whether the site is a whole symbol rather than a slot."""
        return self in _SYMBOL_SITES


_SYMBOL_SITES = frozenset(
    {
        AttachmentSite.MODULE,
        AttachmentSite.CLASS,
        AttachmentSite.FUNCTION,
        AttachmentSite.METHOD,
    }
)


class SourceLocation(BaseModel):
    """Position of a declaration in a source file (1-based line and column)."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(description="Source file path or pseudo-path such as <string>")
    line: int = Field(default=1, ge=1, description="1-based line number")
    column: int = Field(default=1, ge=1, description="1-based column number")

    def sort_key(self) -> tuple[str, int, int]:
        """Return the key used for deterministic ordering."""
        return (self.path, self.line, self.column)

    def __str__(self) -> str:
        return f"{self.path}:{self.line}:{self.column}"
