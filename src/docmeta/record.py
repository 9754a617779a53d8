"""Metadata record model.

A metadata record is the structured bundle of description, deprecated,
discouraged, raises and extra fields attached to a symbol or parameter,
together with any extension keywords outside that fixed set.
"""

from __future__ import annotations

import keyword
from collections.abc import Mapping
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from docmeta.errors import ShapeError

# Keyword surface of the convention, in declaration order
FIXED_FIELDS: tuple[str, ...] = (
    "description",
    "deprecated",
    "discouraged",
    "raises",
    "extra",
)

# Fields that only make sense on a whole symbol (class, function, method)
SYMBOL_ONLY_FIELDS = frozenset({"raises"})


def _is_dotted_name(value: object) -> bool:
    return isinstance(value, str) and all(
        part.isidentifier() for part in value.split(".")
    )


class ExceptionRef(str):
    """Reference to an exception type by its dotted name.

    Static analysis produces references from name and attribute expressions
    (``ValueError``, ``errors.ShapeError``); runtime code produces them from
    exception classes. A plain string is deliberately not a reference.
    """

    __slots__ = ()

    def __new__(cls, dotted: str) -> Self:
        """Create a reference, validating the dotted name."""
        if not _is_dotted_name(dotted):
            raise ShapeError(
                f"Invalid exception reference: {dotted!r}", field="raises"
            )
        return super().__new__(cls, dotted)

    @classmethod
    def from_type(cls, exc_type: type[BaseException]) -> Self:
        """Create a reference from an exception class.

        Builtin exceptions keep their bare name so they compare equal to
        references read from source code.
        """
        if exc_type.__module__ == "builtins":
            return cls(exc_type.__qualname__)
        qualname = exc_type.__qualname__
        if "<locals>" in qualname:
            qualname = exc_type.__name__
        return cls(f"{exc_type.__module__}.{qualname}")

    @property
    def name(self) -> str:
        """Return the final component of the dotted name."""
        return self.rsplit(".", 1)[-1]

    def __repr__(self) -> str:
        return f"ExceptionRef({str(self)!r})"


def is_exception_reference(value: object) -> bool:
    """Check whether a value can be used as a ``raises`` key."""
    if isinstance(value, ExceptionRef):
        return True
    return isinstance(value, type) and issubclass(value, BaseException)


class MetadataRecord(BaseModel):
    """Immutable documentation metadata attached to a symbol or parameter.

    Use ``from_mapping`` to build a record from raw keyword arguments; it
    enforces the shape of the convention and raises ``ShapeError`` on
    violations. Direct construction is reserved for already-validated data.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    description: str | None = Field(
        default=None, description="Free-form description, opaque to validation"
    )
    deprecated: bool = Field(default=False, description="Symbol is deprecated")
    discouraged: bool = Field(default=False, description="Symbol is discouraged")
    raises: dict[str, str | None] = Field(
        default_factory=dict,
        description="Exception type references mapped to optional descriptions",
    )
    extra: dict[str, Any] = Field(
        default_factory=dict, description="Open mapping, stored but never interpreted"
    )
    extension_fields: dict[str, Any] = Field(
        default_factory=dict,
        description="Keywords outside the fixed surface (experimental extensions)",
    )

    @model_validator(mode="after")
    def validate_extension_names(self) -> Self:
        """Extension keywords must not shadow the fixed surface."""
        clashing = sorted(set(self.extension_fields) & set(FIXED_FIELDS))
        if clashing:
            raise ValueError(f"extension_fields shadow fixed fields: {clashing}")
        return self

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> Self:
        """Construct a record from a keyword-argument-like mapping.

        Args:
            raw: Keywords as passed to the convention call

        Returns:
            Validated, immutable metadata record

        Raises:
            ShapeError: If any keyword violates the convention's shape

        """
        if not isinstance(raw, Mapping):
            raise ShapeError(
                f"Metadata keywords must be a mapping, got {type(raw).__name__}"
            )

        description = raw.get("description")
        if description is not None and not isinstance(description, str):
            raise ShapeError(
                f"description must be text, got {type(description).__name__}",
                field="description",
            )

        flags: dict[str, bool] = {}
        for flag in ("deprecated", "discouraged"):
            value = raw.get(flag, False)
            if not isinstance(value, bool):
                raise ShapeError(
                    f"{flag} must be a boolean, got {type(value).__name__}",
                    field=flag,
                )
            flags[flag] = value

        extension_fields: dict[str, Any] = {}
        for name, value in raw.items():
            if name in FIXED_FIELDS:
                continue
            if (
                not isinstance(name, str)
                or not name.isidentifier()
                or keyword.iskeyword(name)
            ):
                raise ShapeError(f"Invalid extension keyword: {name!r}", field=name)
            extension_fields[name] = value

        return cls(
            description=description,
            deprecated=flags["deprecated"],
            discouraged=flags["discouraged"],
            raises=_coerce_raises(raw.get("raises")),
            extra=_coerce_extra(raw.get("extra")),
            extension_fields=extension_fields,
        )

    def canonical(self) -> dict[str, Any]:
        """Return the canonical keyword form of this record.

        Defaults are omitted, ``raises`` keys are ``ExceptionRef`` instances
        and extension fields are flattened back to top-level keywords, so
        ``MetadataRecord.from_mapping(record.canonical()) == record``.
        """
        result: dict[str, Any] = {}
        if self.description is not None:
            result["description"] = self.description
        if self.deprecated:
            result["deprecated"] = True
        if self.discouraged:
            result["discouraged"] = True
        if self.raises:
            result["raises"] = {
                ExceptionRef(key): value for key, value in self.raises.items()
            }
        if self.extra:
            result["extra"] = dict(self.extra)
        result.update(self.extension_fields)
        return result

    @property
    def is_empty(self) -> bool:
        """Check whether the record carries no information at all."""
        return not self.canonical()


def _coerce_raises(value: object) -> dict[str, str | None]:
    """Validate a ``raises`` mapping and normalise its keys to dotted names."""
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ShapeError(
            f"raises must be a mapping, got {type(value).__name__}", field="raises"
        )

    result: dict[str, str | None] = {}
    for key, description in value.items():
        if not is_exception_reference(key):
            raise ShapeError(
                f"raises key {key!r} is not an exception type reference",
                field="raises",
            )
        if description is not None and not isinstance(description, str):
            raise ShapeError(
                f"raises value for {key!s} must be text or None, "
                f"got {type(description).__name__}",
                field="raises",
            )
        ref = key if isinstance(key, ExceptionRef) else ExceptionRef.from_type(key)
        result[str(ref)] = description
    return result


def _coerce_extra(value: object) -> dict[str, Any]:
    """Validate the open ``extra`` mapping."""
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ShapeError(
            f"extra must be a mapping, got {type(value).__name__}", field="extra"
        )
    for key in value:
        if not isinstance(key, str):
            raise ShapeError(
                f"extra keys must be strings, got {type(key).__name__}", field="extra"
            )
    return dict(value)
