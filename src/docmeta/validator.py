"""Validator for resolved metadata attachments.

Checks every attachment of a symbol graph against the convention and
accumulates findings. Individual findings never raise; a symbol whose
metadata is malformed does not stop the validation of its siblings.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from docmeta.callgraph import CallGraphProvider
from docmeta.config import ValidatorConfig
from docmeta.errors import DocMetaError, ShapeError
from docmeta.findings import Finding, FindingKind
from docmeta.record import ExceptionRef, MetadataRecord
from docmeta.resolver import (
    Attachment,
    AttachmentForm,
    AttachmentIssue,
    SymbolResolution,
)

logger = logging.getLogger(__name__)

_SPLAT_MARKER = "**"

# Forms whose description competes with the docstring of the same target
_DOCSTRING_FORMS = frozenset({AttachmentForm.DECORATOR, AttachmentForm.MODULE_CALL})


class Validator:
    """Validate resolved metadata and produce findings."""

    def __init__(self, config: ValidatorConfig | None = None) -> None:
        """Initialise the validator.

        Args:
            config: Validator options, defaults to lenient mode without the
                raises cross-check

        """
        self._config = config or ValidatorConfig()

    @property
    def config(self) -> ValidatorConfig:
        """Return the validator configuration."""
        return self._config

    def validate(
        self,
        resolutions: Iterable[SymbolResolution],
        call_graph: CallGraphProvider | None = None,
    ) -> list[Finding]:
        """Validate the resolutions of one symbol graph.

        Args:
            resolutions: Resolved symbols, typically from one or more modules
            call_graph: Optional call graph used by the raises cross-check

        Returns:
            Findings in discovery order (the reporter sorts them)

        """
        resolutions = list(resolutions)
        findings: list[Finding] = []
        records: dict[str, MetadataRecord] = {}

        for resolution in resolutions:
            try:
                symbol_findings, record = self._validate_resolution(resolution)
            except DocMetaError as e:
                logger.warning(f"Failed to validate {resolution.symbol.target}: {e}")
                findings.append(
                    Finding.create(
                        FindingKind.SHAPE_ERROR,
                        str(e),
                        location=resolution.symbol.location,
                        target=resolution.symbol.target,
                        site=None,
                    )
                )
                continue
            findings.extend(symbol_findings)
            if record is not None:
                records[resolution.symbol.target] = record

        if self._config.cross_check_raises and call_graph is not None:
            findings.extend(self._cross_check_raises(resolutions, records, call_graph))

        logger.debug(
            f"Validated {len(resolutions)} symbols, {len(findings)} findings"
        )
        return findings

    def validate_symbol(self, resolution: SymbolResolution) -> list[Finding]:
        """Validate a single symbol and its slots.

        Args:
            resolution: Resolved symbol

        Returns:
            Findings for the symbol, excluding the raises cross-check

        """
        findings, _ = self._validate_resolution(resolution)
        return findings

    def _validate_resolution(
        self, resolution: SymbolResolution
    ) -> tuple[list[Finding], MetadataRecord | None]:
        findings = [self._issue_finding(issue) for issue in resolution.issues]
        symbol_record: MetadataRecord | None = None

        for attachment in resolution.attachments:
            attachment_findings, record = self._validate_attachment(attachment)
            findings.extend(attachment_findings)
            if attachment.site.is_symbol:
                symbol_record = record

        return findings, symbol_record

    def _validate_attachment(
        self, attachment: Attachment
    ) -> tuple[list[Finding], MetadataRecord | None]:
        """Validate one attachment and build its record if the shape allows."""
        payload = attachment.payload
        findings: list[Finding] = []

        def add(kind: FindingKind, message: str, key: str | None = None) -> None:
            findings.append(
                Finding.create(
                    kind,
                    message,
                    location=attachment.location,
                    target=attachment.target,
                    site=attachment.site,
                    key=key,
                )
            )

        if payload.positional_count:
            add(
                FindingKind.SHAPE_ERROR,
                f"Metadata for '{attachment.target}' takes keyword arguments only, "
                f"got {payload.positional_count} positional",
            )

        for name in payload.unresolved:
            if name == _SPLAT_MARKER:
                add(
                    FindingKind.UNRESOLVED_VALUE,
                    "Unpacked keyword mapping needs runtime evaluation, dropped",
                    key=name,
                )
            else:
                add(
                    FindingKind.UNRESOLVED_VALUE,
                    f"Value of '{name}' needs runtime evaluation, dropped",
                    key=name,
                )

        for key in payload.duplicate_raises_keys():
            add(
                FindingKind.DUPLICATE_RAISES_KEY,
                f"Exception '{key}' appears more than once in raises",
                key=key,
            )

        try:
            record = payload.to_record()
        except ShapeError as e:
            add(FindingKind.SHAPE_ERROR, str(e), key=e.field)
            return findings, None

        if self._config.is_strict:
            for name in record.extension_fields:
                if name not in self._config.known_extension_keys:
                    add(
                        FindingKind.UNKNOWN_EXTENSION_KEY,
                        f"Unknown extension keyword '{name}'",
                        key=name,
                    )

        if record.raises and not attachment.site.is_symbol:
            add(
                FindingKind.RAISES_ON_PARAMETER,
                f"raises documents a symbol, not a {attachment.site}",
                key="raises",
            )

        if (
            attachment.form in _DOCSTRING_FORMS
            and record.description is not None
            and attachment.docstring
        ):
            add(
                FindingKind.DESCRIPTION_OVERRIDE,
                f"Metadata description overrides the docstring of "
                f"'{attachment.target}'",
                key="description",
            )

        if record.deprecated:
            add(
                FindingKind.DEPRECATED,
                f"'{attachment.target}' is deprecated",
                key="deprecated",
            )
        if record.discouraged:
            add(
                FindingKind.DISCOURAGED,
                f"'{attachment.target}' is discouraged",
                key="discouraged",
            )

        return findings, record

    def _issue_finding(self, issue: AttachmentIssue) -> Finding:
        return Finding.create(
            FindingKind.AMBIGUOUS_ATTACHMENT,
            str(issue.error),
            location=issue.location,
            target=issue.target,
            site=issue.site,
        )

    def _cross_check_raises(
        self,
        resolutions: list[SymbolResolution],
        records: Mapping[str, MetadataRecord],
        call_graph: CallGraphProvider,
    ) -> list[Finding]:
        """Report documented exceptions no documented callee lists.

        Callees without metadata are skipped. A callable none of whose
        callees carries metadata is skipped entirely.
        """
        findings: list[Finding] = []
        for resolution in resolutions:
            symbol = resolution.symbol
            record = records.get(symbol.target)
            attachment = resolution.symbol_attachment
            if not symbol.is_callable or record is None or attachment is None:
                continue
            if not record.raises:
                continue

            documented = [
                records[callee]
                for callee in call_graph.callees(symbol.target)
                if callee in records
            ]
            if not documented:
                continue

            for exception in record.raises:
                if any(
                    _lists_exception(callee, exception) for callee in documented
                ):
                    continue
                findings.append(
                    Finding.create(
                        FindingKind.MISSING_DELEGATED_RAISES,
                        f"'{symbol.target}' documents {exception} but none of "
                        f"its documented callees does",
                        location=attachment.location,
                        target=symbol.target,
                        site=attachment.site,
                        key=exception,
                    )
                )
        return findings


def _lists_exception(record: MetadataRecord, exception: str) -> bool:
    """Match by full dotted name, or by final component across import styles."""
    name = ExceptionRef(exception).name
    for documented in record.raises:
        if documented == exception or ExceptionRef(documented).name == name:
            return True
    return False
