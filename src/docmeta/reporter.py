"""Reporter turning validator findings into ordered diagnostics."""

from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated, ClassVar

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

from docmeta.findings import Finding, FindingKind, Severity
from docmeta.models import AttachmentSite, SourceLocation


class Diagnostic(BaseModel):
    """A user-facing diagnostic for one finding."""

    model_config = ConfigDict(frozen=True)

    location: SourceLocation = Field(description="Source location of the finding")
    site: AttachmentSite | None = Field(
        default=None, description="Attachment site, None for file-level diagnostics"
    )
    target: str = Field(description="Qualified symbol or slot")
    kind: FindingKind = Field(description="Finding kind")
    message: str = Field(description="Human-readable explanation")
    severity: Severity = Field(description="error, warning or info")

    @classmethod
    def from_finding(cls, finding: Finding) -> Diagnostic:
        """Create a diagnostic from a validator finding."""
        return cls(
            location=finding.location,
            site=finding.site,
            target=finding.target,
            kind=finding.kind,
            message=finding.message,
            severity=finding.severity,
        )

    def sort_key(self) -> tuple[str, int, int, int, str, str]:
        """Return the key diagnostics are ordered by."""
        return (
            *self.location.sort_key(),
            self.severity.rank,
            self.kind.value,
            self.message,
        )


class DiagnosticSummary(BaseModel):
    """Diagnostic counts per severity."""

    errors: int = Field(default=0, ge=0, description="Number of errors")
    warnings: int = Field(default=0, ge=0, description="Number of warnings")
    infos: int = Field(default=0, ge=0, description="Number of infos")
    files_analysed: int = Field(default=0, ge=0, description="Files analysed")

    @property
    def total(self) -> int:
        """Return the total number of diagnostics."""
        return self.errors + self.warnings + self.infos


class DiagnosticReport(BaseModel):
    """Complete report of one validation run."""

    __schema_version__: ClassVar[str] = "1.0.0"

    diagnostics: list[Diagnostic] = Field(
        default_factory=list, description="Diagnostics in report order"
    )
    summary: DiagnosticSummary = Field(
        default_factory=DiagnosticSummary, description="Counts per severity"
    )
    generated_at: Annotated[
        datetime,
        PlainSerializer(lambda v: v.isoformat(), return_type=str, when_used="json"),
    ] = Field(
        default_factory=lambda: datetime.now(UTC),
        description="ISO 8601 timestamp when the report was generated",
    )

    def has_at_least(self, severity: Severity) -> bool:
        """Check whether any diagnostic is at or above a severity."""
        return any(d.severity.is_at_least(severity) for d in self.diagnostics)

    def to_json(self) -> str:
        """Serialise the report to JSON text."""
        return self.model_dump_json(indent=2)

    @classmethod
    def generate_json_schema(cls, output_path: Path) -> None:
        """Generate JSON schema file from this Pydantic model.

        Args:
            output_path: Path where the JSON schema file will be written

        """
        schema = cls.model_json_schema(mode="serialization")
        schema["$schema"] = "http://json-schema.org/draft-07/schema#"
        schema["version"] = cls.__schema_version__

        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as f:
            json.dump(schema, f, indent=2)
            f.write("\n")


class Reporter:
    """Order findings into diagnostics."""

    def report(self, findings: Iterable[Finding]) -> list[Diagnostic]:
        """Convert findings into ordered diagnostics.

        Diagnostics are ordered by path, line and column, then by severity
        (errors first), then by kind and message.

        Args:
            findings: Validator findings in any order

        Returns:
            Ordered diagnostics, empty when there are no findings

        """
        diagnostics = [Diagnostic.from_finding(finding) for finding in findings]
        return sorted(diagnostics, key=Diagnostic.sort_key)

    def build_report(
        self, findings: Iterable[Finding], files_analysed: int = 0
    ) -> DiagnosticReport:
        """Build a complete report with per-severity counts.

        Args:
            findings: Validator findings in any order
            files_analysed: Number of source files the findings cover

        Returns:
            DiagnosticReport ready for rendering or serialisation

        """
        diagnostics = self.report(findings)
        counts = {severity: 0 for severity in Severity}
        for diagnostic in diagnostics:
            counts[diagnostic.severity] += 1
        return DiagnosticReport(
            diagnostics=diagnostics,
            summary=DiagnosticSummary(
                errors=counts[Severity.ERROR],
                warnings=counts[Severity.WARNING],
                infos=counts[Severity.INFO],
                files_analysed=files_analysed,
            ),
        )
