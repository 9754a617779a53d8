"""Static value tree produced by the source scanner.

Expressions found in decorators and annotations are reduced to a small tree of
immutable nodes. Anything that cannot be determined without executing code is
kept as ``Unresolved`` so the resolver can degrade gracefully instead of
guessing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from docmeta.models import SourceLocation


@dataclass(frozen=True, slots=True)
class LiteralValue:
    """A literal: str, bytes, int, float, complex, bool or None."""

    value: Any


@dataclass(frozen=True, slots=True)
class MappingValue:
    """A dict display; items keep source order and duplicate keys."""

    items: tuple[tuple[StaticValue, StaticValue], ...] = ()


@dataclass(frozen=True, slots=True)
class SequenceValue:
    """A list, tuple or set display."""

    kind: str
    items: tuple[StaticValue, ...] = ()


@dataclass(frozen=True, slots=True)
class Reference:
    """A name or attribute chain, qualified through the module's imports."""

    dotted: str

    @property
    def name(self) -> str:
        """Return the final component of the dotted name."""
        return self.dotted.rsplit(".", 1)[-1]


@dataclass(frozen=True, slots=True)
class KeywordArgument:
    """A ``name=value`` argument of a call."""

    name: str
    value: StaticValue


@dataclass(frozen=True, slots=True)
class CallExpr:
    """A call expression with its statically reduced arguments."""

    callee: str | None
    location: SourceLocation
    arguments: tuple[StaticValue, ...] = ()
    keywords: tuple[KeywordArgument, ...] = ()
    has_splat: bool = False
    source_text: str = ""

    @property
    def callee_name(self) -> str | None:
        """Return the final component of the callee's dotted name."""
        if self.callee is None:
            return None
        return self.callee.rsplit(".", 1)[-1]


@dataclass(frozen=True, slots=True)
class SubscriptExpr:
    """A subscript such as ``Annotated[int, doc()]``."""

    target: str | None
    items: tuple[StaticValue, ...] = ()


@dataclass(frozen=True, slots=True)
class Unresolved:
    """An expression that needs runtime evaluation."""

    source_text: str = field(default="")


StaticValue = (
    LiteralValue
    | MappingValue
    | SequenceValue
    | Reference
    | CallExpr
    | SubscriptExpr
    | Unresolved
)


class NotStaticError(Exception):
    """Raised when a static value cannot be turned into a Python value."""

    pass


def is_constant(value: StaticValue) -> bool:
    """Check whether a value is built from literals only."""
    match value:
        case LiteralValue():
            return True
        case MappingValue(items=items):
            return all(is_constant(k) and is_constant(v) for k, v in items)
        case SequenceValue(items=items):
            return all(is_constant(item) for item in items)
        case _:
            return False


def to_python(value: StaticValue) -> Any:  # noqa: ANN401
    """Convert a static value made of literals into the equivalent Python value.

    Args:
        value: Static value to convert

    Returns:
        Python value the expression would evaluate to

    Raises:
        NotStaticError: If the value contains references, calls or
            unresolved expressions, or would fail to evaluate

    """
    match value:
        case LiteralValue(value=literal):
            return literal
        case MappingValue(items=items):
            result: dict[Any, Any] = {}
            for key, item in items:
                python_key = to_python(key)
                try:
                    result[python_key] = to_python(item)
                except TypeError as e:
                    raise NotStaticError(f"Unhashable mapping key: {e}") from e
            return result
        case SequenceValue(kind=kind, items=items):
            elements = [to_python(item) for item in items]
            if kind == "tuple":
                return tuple(elements)
            if kind == "set":
                try:
                    return set(elements)
                except TypeError as e:
                    raise NotStaticError(f"Unhashable set element: {e}") from e
            return elements
        case Reference(dotted=dotted):
            raise NotStaticError(f"Reference to '{dotted}' needs runtime evaluation")
        case CallExpr(source_text=text) | Unresolved(source_text=text):
            raise NotStaticError(f"Expression '{text}' needs runtime evaluation")
        case SubscriptExpr(target=target):
            raise NotStaticError(f"Subscript of '{target}' needs runtime evaluation")
    raise NotStaticError(f"Unsupported static value: {value!r}")
