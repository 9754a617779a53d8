"""Attachment resolver.

Locates metadata attached to a scanned declaration in any of its forms
(decorator, ``Annotated`` wrapper, module-level call) and unifies them into one
payload shape. Values that need runtime evaluation are dropped field by field
and reported through the payload's status instead of raising.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from docmeta.errors import AmbiguousAttachmentError, ShapeError
from docmeta.models import AttachmentSite, SourceLocation
from docmeta.parsing.models import ModuleDeclarations, SymbolDeclaration
from docmeta.record import ExceptionRef, MetadataRecord
from docmeta.values import (
    CallExpr,
    LiteralValue,
    MappingValue,
    NotStaticError,
    Reference,
    StaticValue,
    SubscriptExpr,
    to_python,
)

logger = logging.getLogger(__name__)

DEFAULT_RECOGNISED_NAMES: tuple[str, ...] = ("doc",)

# Fully qualified names of shared implementations of the convention
SHARED_IMPLEMENTATIONS = frozenset(
    {"docmeta.doc", "docmeta.convention.doc", "typing_extensions.doc", "typing.doc"}
)

_ANNOTATED_NAME = "Annotated"
_SPLAT_MARKER = "**"


class FieldStatus(StrEnum):
    """Resolution status of a single keyword."""

    RESOLVED = "resolved"
    UNRESOLVED = "unresolved"


class ResolutionStatus(StrEnum):
    """Overall resolution status of a payload."""

    RESOLVED = "resolved"
    PARTIAL = "partial"


class AttachmentForm(StrEnum):
    """Syntactic form the metadata was declared in."""

    DECORATOR = "decorator"
    ANNOTATED = "annotated"
    MODULE_CALL = "module_call"


@dataclass(frozen=True, slots=True)
class MetadataPayload:
    """Statically resolved keywords of one convention call.

    ``raises_items`` keeps every ``raises`` entry in source order, including
    duplicated keys, so the validator can report them; ``as_mapping`` applies
    Python's last-one-wins semantics.

    ``raises_keys`` names the statically known keys even when a description
    needs runtime evaluation and the field is dropped.
    """

    keywords: Mapping[str, Any] = field(default_factory=dict)
    raises_items: tuple[tuple[Any, Any], ...] | None = None
    raises_keys: tuple[str, ...] = ()
    field_status: Mapping[str, FieldStatus] = field(default_factory=dict)
    positional_count: int = 0
    has_splat: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "keywords", MappingProxyType(dict(self.keywords)))
        object.__setattr__(
            self, "field_status", MappingProxyType(dict(self.field_status))
        )

    @property
    def unresolved(self) -> list[str]:
        """Names of dropped fields (``**`` for an unpacked mapping)."""
        names = [
            name
            for name, status in self.field_status.items()
            if status == FieldStatus.UNRESOLVED
        ]
        if self.has_splat:
            names.append(_SPLAT_MARKER)
        return names

    @property
    def status(self) -> ResolutionStatus:
        """Return ``partial`` when any field was dropped."""
        if self.unresolved:
            return ResolutionStatus.PARTIAL
        return ResolutionStatus.RESOLVED

    def as_mapping(self) -> dict[str, Any]:
        """Return the resolved keywords as passed to ``MetadataRecord``."""
        mapping = dict(self.keywords)
        if self.raises_items is not None:
            mapping["raises"] = dict(self.raises_items)
        return mapping

    def duplicate_raises_keys(self) -> list[str]:
        """Return each ``raises`` key declared more than once, in source order."""
        seen: set[str] = set()
        duplicates: list[str] = []
        for name in self.raises_keys:
            if name in seen and name not in duplicates:
                duplicates.append(name)
            seen.add(name)
        return duplicates

    def to_record(self) -> MetadataRecord:
        """Build the metadata record for this payload.

        Raises:
            ShapeError: If the resolved keywords violate the convention's shape

        """
        return MetadataRecord.from_mapping(self.as_mapping())


@dataclass(frozen=True, slots=True)
class Attachment:
    """A metadata payload found at one attachment site."""

    site: AttachmentSite
    target: str
    location: SourceLocation
    form: AttachmentForm
    payload: MetadataPayload
    docstring: str | None = None


@dataclass(frozen=True, slots=True)
class AttachmentIssue:
    """A slot whose metadata could not be resolved to a single payload."""

    site: AttachmentSite
    target: str
    location: SourceLocation
    error: AmbiguousAttachmentError


@dataclass(frozen=True, slots=True)
class SymbolResolution:
    """Everything resolved for one symbol and its slots."""

    symbol: SymbolDeclaration
    attachments: tuple[Attachment, ...] = ()
    issues: tuple[AttachmentIssue, ...] = ()

    @property
    def is_empty(self) -> bool:
        """Check whether the symbol carries no metadata at all."""
        return not self.attachments and not self.issues

    @property
    def symbol_attachment(self) -> Attachment | None:
        """Return the attachment for the whole symbol, if any."""
        for attachment in self.attachments:
            if attachment.site.is_symbol:
                return attachment
        return None


class AttachmentResolver:
    """Resolve metadata attachments of scanned declarations."""

    def __init__(
        self, recognised_names: Iterable[str] = DEFAULT_RECOGNISED_NAMES
    ) -> None:
        """Initialise the resolver.

        Args:
            recognised_names: Callee names treated as the convention. A plain
                name matches any callee whose final component equals it; a
                dotted name must match the qualified callee exactly.

        """
        self._recognised = frozenset(recognised_names)
        self._plain_names = frozenset(
            name for name in self._recognised if "." not in name
        )

    def resolve_module(self, module: ModuleDeclarations) -> list[SymbolResolution]:
        """Resolve every symbol of a scanned module.

        Args:
            module: Scanner output for one source file

        Returns:
            One resolution per symbol, in scan order

        """
        resolutions = [
            self.resolve(symbol, local_names=module.fallback_names)
            for symbol in module.symbols
        ]
        attached = sum(len(resolution.attachments) for resolution in resolutions)
        logger.debug(f"Resolved {attached} attachments in {module.path}")
        return resolutions

    def resolve(
        self,
        symbol: SymbolDeclaration,
        local_names: Iterable[str] = (),
    ) -> SymbolResolution:
        """Resolve the metadata attached to one symbol.

        Args:
            symbol: Declaration to resolve
            local_names: Names of fallback declarations in the symbol's module

        Returns:
            SymbolResolution with zero or one attachment per slot; slots with
            several records are reported as issues instead

        """
        local = frozenset(local_names)
        attachments: list[Attachment] = []
        issues: list[AttachmentIssue] = []
        site = AttachmentSite.for_symbol(symbol.kind)

        if symbol.module_calls:
            symbol_calls: list[StaticValue] = list(symbol.module_calls)
            form = AttachmentForm.MODULE_CALL
        else:
            symbol_calls = list(symbol.decorators)
            form = AttachmentForm.DECORATOR

        matches = [call for call in symbol_calls if self._is_convention(call, local)]
        if len(matches) > 1:
            issues.append(
                AttachmentIssue(
                    site=site,
                    target=symbol.target,
                    location=symbol.location,
                    error=AmbiguousAttachmentError(symbol.target, len(matches)),
                )
            )
        elif matches:
            attachments.append(
                Attachment(
                    site=site,
                    target=symbol.target,
                    location=_location_of(matches[0], symbol.location),
                    form=form,
                    payload=build_payload(matches[0]),
                    docstring=symbol.docstring,
                )
            )

        for slot in symbol.slots:
            target = f"{symbol.target}.{slot.name}"
            embedded = [
                metadata
                for metadata in self._annotated_metadata(slot.annotation)
                if self._is_convention(metadata, local)
            ]
            if len(embedded) > 1:
                issues.append(
                    AttachmentIssue(
                        site=slot.site,
                        target=target,
                        location=slot.location,
                        error=AmbiguousAttachmentError(target, len(embedded)),
                    )
                )
            elif embedded:
                attachments.append(
                    Attachment(
                        site=slot.site,
                        target=target,
                        location=slot.location,
                        form=AttachmentForm.ANNOTATED,
                        payload=build_payload(embedded[0]),
                    )
                )

        return SymbolResolution(
            symbol=symbol, attachments=tuple(attachments), issues=tuple(issues)
        )

    def is_recognised(
        self, callee: str | None, local_names: Iterable[str] = ()
    ) -> bool:
        """Check whether a callee name refers to the convention.

        Args:
            callee: Qualified dotted callee name
            local_names: Fallback declarations of the calling module

        Returns:
            True if calls to ``callee`` attach documentation metadata

        """
        if callee is None:
            return False
        if callee in SHARED_IMPLEMENTATIONS or callee in self._recognised:
            return True
        if callee in frozenset(local_names):
            return True
        return callee.rsplit(".", 1)[-1] in self._plain_names

    def _is_convention(self, value: StaticValue, local_names: frozenset[str]) -> bool:
        match value:
            case CallExpr(callee=callee):
                return self.is_recognised(callee, local_names)
            case Reference(dotted=dotted):
                # Bare ``@doc`` without a call
                return self.is_recognised(dotted, local_names)
        return False

    def _annotated_metadata(self, annotation: StaticValue) -> list[StaticValue]:
        """Return the metadata arguments of an ``Annotated`` annotation.

        Nested ``Annotated`` in the first argument is flattened the way
        Python flattens it: inner metadata first, then outer metadata.
        """
        if not isinstance(annotation, SubscriptExpr) or not _is_annotated(
            annotation.target
        ):
            return []
        if not annotation.items:
            return []
        origin, *metadata = annotation.items
        return self._annotated_metadata(origin) + metadata


def build_payload(value: StaticValue) -> MetadataPayload:
    """Resolve the keywords of one convention call.

    Args:
        value: A convention call, or a bare reference used as a decorator

    Returns:
        MetadataPayload with unresolvable fields dropped and tagged

    """
    if not isinstance(value, CallExpr):
        # A bare decorator receives the decorated object positionally
        return MetadataPayload(positional_count=1)

    keywords: dict[str, Any] = {}
    field_status: dict[str, FieldStatus] = {}
    raises_items: tuple[tuple[Any, Any], ...] | None = None
    raises_keys: tuple[str, ...] = ()

    for keyword in value.keywords:
        if keyword.name == "raises" and isinstance(keyword.value, MappingValue):
            raises_keys = _raises_key_names(keyword.value)
            raises_items = _raises_items(keyword.value)
            if raises_items is None:
                field_status["raises"] = FieldStatus.UNRESOLVED
                continue
        else:
            try:
                keywords[keyword.name] = to_python(keyword.value)
            except NotStaticError as e:
                logger.debug(f"Dropping '{keyword.name}' of {value.source_text}: {e}")
                keywords.pop(keyword.name, None)
                field_status[keyword.name] = FieldStatus.UNRESOLVED
                continue
        field_status[keyword.name] = FieldStatus.RESOLVED

    return MetadataPayload(
        keywords=keywords,
        raises_items=raises_items,
        raises_keys=raises_keys,
        field_status=field_status,
        positional_count=len(value.arguments),
        has_splat=value.has_splat,
    )


def _raises_items(value: MappingValue) -> tuple[tuple[Any, Any], ...] | None:
    """Resolve a ``raises`` mapping, keeping duplicate keys.

    Keys written as names or attributes become exception references. Returns
    None when any part of the mapping needs runtime evaluation.
    """
    items: list[tuple[Any, Any]] = []
    for key, description in value.items:
        try:
            resolved_description = to_python(description)
            if isinstance(key, Reference):
                resolved_key: Any = _exception_ref(key)
            else:
                resolved_key = to_python(key)
            hash(resolved_key)
        except (NotStaticError, TypeError):
            return None
        items.append((resolved_key, resolved_description))
    return tuple(items)


def _raises_key_names(value: MappingValue) -> tuple[str, ...]:
    """Return the statically known ``raises`` keys in source order."""
    names: list[str] = []
    for key, _ in value.items:
        if isinstance(key, Reference):
            names.append(key.dotted)
        elif isinstance(key, LiteralValue):
            names.append(str(key.value))
    return tuple(names)


def _exception_ref(key: Reference) -> ExceptionRef | str:
    # An invalid name stays plain text so record construction rejects it
    try:
        return ExceptionRef(key.dotted)
    except ShapeError:
        return key.dotted


def _is_annotated(target: str | None) -> bool:
    return target is not None and target.rsplit(".", 1)[-1] == _ANNOTATED_NAME


def _location_of(value: StaticValue, default: SourceLocation) -> SourceLocation:
    if isinstance(value, CallExpr):
        return value.location
    return default
