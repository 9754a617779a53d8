"""Finding types produced by the validator."""

from __future__ import annotations

from enum import StrEnum
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field

from docmeta.models import AttachmentSite, SourceLocation


class Severity(StrEnum):
    """Severity of a finding, most severe first."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Return the sort rank (0 is the most severe)."""
        return _SEVERITY_RANKS[self]

    def is_at_least(self, threshold: Severity) -> bool:
        """Check whether this severity is at or above a threshold."""
        return self.rank <= threshold.rank


_SEVERITY_RANKS = {Severity.ERROR: 0, Severity.WARNING: 1, Severity.INFO: 2}


class FindingKind(StrEnum):
    """Kinds of validation findings."""

    SHAPE_ERROR = "shape_error"
    AMBIGUOUS_ATTACHMENT = "ambiguous_attachment"
    UNRESOLVED_VALUE = "unresolved_value"
    DUPLICATE_RAISES_KEY = "duplicate_raises_key"
    UNKNOWN_EXTENSION_KEY = "unknown_extension_key"
    RAISES_ON_PARAMETER = "raises_on_parameter"
    MISSING_DELEGATED_RAISES = "missing_delegated_raises"
    DESCRIPTION_OVERRIDE = "description_override"
    DEPRECATED = "deprecated"
    DISCOURAGED = "discouraged"
    SOURCE_ERROR = "source_error"

    @property
    def default_severity(self) -> Severity:
        """Return the severity findings of this kind are reported with."""
        return DEFAULT_SEVERITIES[self]


DEFAULT_SEVERITIES = MappingProxyType(
    {
        FindingKind.SHAPE_ERROR: Severity.ERROR,
        FindingKind.AMBIGUOUS_ATTACHMENT: Severity.ERROR,
        FindingKind.UNRESOLVED_VALUE: Severity.INFO,
        FindingKind.DUPLICATE_RAISES_KEY: Severity.ERROR,
        FindingKind.UNKNOWN_EXTENSION_KEY: Severity.WARNING,
        FindingKind.RAISES_ON_PARAMETER: Severity.WARNING,
        FindingKind.MISSING_DELEGATED_RAISES: Severity.WARNING,
        FindingKind.DESCRIPTION_OVERRIDE: Severity.INFO,
        FindingKind.DEPRECATED: Severity.INFO,
        FindingKind.DISCOURAGED: Severity.INFO,
        FindingKind.SOURCE_ERROR: Severity.ERROR,
    }
)

KIND_DESCRIPTIONS = MappingProxyType(
    {
        FindingKind.SHAPE_ERROR: "Metadata keywords violate the convention's shape",
        FindingKind.AMBIGUOUS_ATTACHMENT: "More than one record in a single slot",
        FindingKind.UNRESOLVED_VALUE: "Value needs runtime evaluation and was dropped",
        FindingKind.DUPLICATE_RAISES_KEY: "Exception type repeated as a raises key",
        FindingKind.UNKNOWN_EXTENSION_KEY: "Extension keyword not known (strict mode)",
        FindingKind.RAISES_ON_PARAMETER: "raises attached to a slot, not a symbol",
        FindingKind.MISSING_DELEGATED_RAISES: (
            "Documented exception not documented by any known callee"
        ),
        FindingKind.DESCRIPTION_OVERRIDE: "Decorator description overrides docstring",
        FindingKind.DEPRECATED: "Symbol or slot is marked deprecated",
        FindingKind.DISCOURAGED: "Symbol or slot is marked discouraged",
        FindingKind.SOURCE_ERROR: "Source file could not be read or parsed",
    }
)


class Finding(BaseModel):
    """A single validation result for one attachment or source file."""

    model_config = ConfigDict(frozen=True)

    kind: FindingKind = Field(description="Kind of finding")
    severity: Severity = Field(description="Severity of the finding")
    message: str = Field(description="Human-readable explanation")
    location: SourceLocation = Field(description="Where the finding applies")
    target: str = Field(description="Qualified symbol or slot the finding is about")
    site: AttachmentSite | None = Field(
        default=None, description="Attachment site, None for file-level findings"
    )
    key: str | None = Field(
        default=None, description="Offending keyword or raises key, if any"
    )

    @classmethod
    def create(
        cls,
        kind: FindingKind,
        message: str,
        location: SourceLocation,
        target: str,
        site: AttachmentSite | None = None,
        key: str | None = None,
    ) -> Finding:
        """Create a finding with the kind's default severity."""
        return cls(
            kind=kind,
            severity=kind.default_severity,
            message=message,
            location=location,
            target=target,
            site=site,
            key=key,
        )
