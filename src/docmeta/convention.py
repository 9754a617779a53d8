"""Runtime helpers for writing documentation metadata.

``doc()`` is the shared implementation of the convention. It can decorate a
class or function, or sit inside ``Annotated`` as auxiliary metadata::

    from typing import Annotated

    from docmeta import doc


    @doc(deprecated=True, raises={KeyError: "When the user is unknown"})
    def lookup(user_id: Annotated[int, doc(description="Database id")]) -> str: ...

The convention is analysis-time only: decorating returns the target unchanged
and no attribute is set on it. Projects that cannot depend on this package may
declare their own keyword-compatible ``doc`` function instead; the scanner
treats both forms identically.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from docmeta.record import MetadataRecord


@dataclass(frozen=True, slots=True, eq=False)
class DocInfo:
    """Keyword payload of a single ``doc()`` call."""

    keywords: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "keywords", MappingProxyType(dict(self.keywords)))

    def __call__[T](self, target: T) -> T:
        """Apply the decorator form, returning the target unchanged."""
        return target

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DocInfo):
            return NotImplemented
        return dict(self.keywords) == dict(other.keywords)

    def __hash__(self) -> int:
        return hash(tuple(sorted(self.keywords)))

    def __repr__(self) -> str:
        arguments = ", ".join(
            f"{name}={value!r}" for name, value in self.keywords.items()
        )
        return f"doc({arguments})"

    def to_record(self) -> MetadataRecord:
        """Build the metadata record described by this call.

        Raises:
            ShapeError: If the keywords violate the convention's shape

        """
        return MetadataRecord.from_mapping(self.keywords)


def doc(
    *,
    description: str | None = None,
    deprecated: bool = False,
    discouraged: bool = False,
    raises: Mapping[type[BaseException], str | None] | None = None,
    extra: Mapping[str, Any] | None = None,
    **extensions: Any,  # noqa: ANN401
) -> DocInfo:
    """Describe a symbol, parameter, return value or variable.

    Only keywords that differ from their defaults are recorded, so
    ``doc()`` with no arguments is a valid, empty attachment.

    Args:
        description: Free-form text, overrides the docstring for tools
        deprecated: Whether the symbol is deprecated
        discouraged: Whether use of the symbol is discouraged
        raises: Exception classes mapped to optional descriptions
        extra: Open mapping for tool-specific data
        **extensions: Experimental keywords outside the fixed surface

    Returns:
        DocInfo usable as a decorator or as ``Annotated`` metadata

    """
    keywords: dict[str, Any] = {}
    if description is not None:
        keywords["description"] = description
    if deprecated is not False:
        keywords["deprecated"] = deprecated
    if discouraged is not False:
        keywords["discouraged"] = discouraged
    if raises is not None:
        keywords["raises"] = dict(raises)
    if extra is not None:
        keywords["extra"] = dict(extra)
    keywords.update(extensions)
    return DocInfo(keywords)
