"""Configuration for the validator and the analysis pipeline.

Both configurations are immutable pydantic models created through
``from_properties``, which turns validation failures into ``ConfigError``.
``load_config`` reads them from a YAML file with top-level ``validator`` and
``analysis`` sections.
"""

from __future__ import annotations

import keyword
from enum import StrEnum
from pathlib import Path
from typing import Any, Self, override

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from docmeta.errors import ConfigError
from docmeta.record import FIXED_FIELDS

DEFAULT_EXCLUDE_PATTERNS: tuple[str, ...] = (
    ".git/",
    ".venv/",
    "venv/",
    ".tox/",
    ".nox/",
    "__pycache__/",
    ".mypy_cache/",
    ".pytest_cache/",
    ".ruff_cache/",
    "build/",
    "dist/",
    "*.egg-info/",
)


class ValidationMode(StrEnum):
    """How extension keywords are treated."""

    STRICT = "strict"
    LENIENT = "lenient"


class BaseConfiguration(BaseModel):
    """Base class for docmeta configurations.

    Features:
        - Immutable (frozen) once created
        - Strict validation (no extra fields allowed)
        - ``from_properties()`` factory raising ``ConfigError``
    """

    model_config = ConfigDict(frozen=True, extra="forbid", validate_assignment=True)

    @classmethod
    def from_properties(cls, properties: dict[str, Any]) -> Self:
        """Create configuration from a properties dictionary.

        Args:
            properties: Raw configuration values

        Returns:
            Validated configuration instance

        Raises:
            ConfigError: If validation fails

        """
        try:
            return cls.model_validate(properties)
        except (ValidationError, ValueError) as e:
            raise ConfigError(
                f"Invalid {cls._section_name()} configuration: {e}"
            ) from e

    @classmethod
    def _section_name(cls) -> str:
        return cls.__name__.removesuffix("Config").lower() or "docmeta"


class ValidatorConfig(BaseConfiguration):
    """Options controlling which findings the validator produces."""

    mode: ValidationMode = Field(
        default=ValidationMode.LENIENT,
        description="strict reports unknown extension keywords, lenient accepts them",
    )
    cross_check_raises: bool = Field(
        default=False,
        description="Compare documented exceptions against documented callees",
    )
    known_extension_keys: frozenset[str] = Field(
        default=frozenset(),
        description="Extension keywords accepted in strict mode",
    )
    recognised_names: tuple[str, ...] = Field(
        default=("doc",),
        description="Callee names treated as the metadata convention",
    )

    @property
    def is_strict(self) -> bool:
        """Check whether unknown extension keywords are reported."""
        return self.mode == ValidationMode.STRICT

    @field_validator("known_extension_keys")
    @classmethod
    def validate_extension_keys(cls, v: frozenset[str]) -> frozenset[str]:
        """Reject keys that could never be extension keywords."""
        for key in v:
            if not key.isidentifier() or keyword.iskeyword(key):
                raise ValueError(f"'{key}' is not a valid keyword name")
            if key in FIXED_FIELDS:
                raise ValueError(f"'{key}' is a fixed field, not an extension")
        return v

    @field_validator("recognised_names")
    @classmethod
    def validate_recognised_names(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Require at least one dotted identifier."""
        if not v:
            raise ValueError("recognised_names must not be empty")
        for name in v:
            if not all(part.isidentifier() for part in name.split(".")):
                raise ValueError(f"'{name}' is not a dotted name")
        return v


class AnalysisConfig(BaseConfiguration):
    """Options controlling which files are analysed and how they are read."""

    include_patterns: list[str] | None = Field(
        default=None,
        description="Gitwildmatch patterns a file must match. None includes all",
    )
    exclude_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS),
        description="Gitwildmatch patterns excluded from directory walks",
    )
    max_files: int = Field(
        default=5000,
        description="Maximum number of files collected per run",
        gt=0,
    )
    max_file_size: int = Field(
        default=2 * 1024 * 1024,  # 2MB
        description="Skip files larger than this size in bytes",
        gt=0,
    )
    encoding: str = Field(
        default="utf-8",
        description="Text encoding used when reading source files",
    )

    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        """Reject encodings Python does not know."""
        try:
            "".encode(v)
        except LookupError as e:
            raise ValueError(f"Unknown encoding: {v}") from e
        return v


class DocMetaConfig(BaseConfiguration):
    """Complete configuration as loaded from a YAML file."""

    validator: ValidatorConfig = Field(default_factory=ValidatorConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)

    @classmethod
    @override
    def _section_name(cls) -> str:
        return "docmeta"

    def with_overrides(self, **validator_options: Any) -> DocMetaConfig:
        """Return a copy with validator options replaced.

        Options set to None are ignored, so unset CLI flags keep file values.
        """
        options = {k: v for k, v in validator_options.items() if v is not None}
        if not options:
            return self
        merged = self.validator.model_dump() | options
        return self.model_copy(
            update={"validator": ValidatorConfig.from_properties(merged)}
        )


def load_config(path: Path | None = None) -> DocMetaConfig:
    """Load configuration from a YAML file.

    Args:
        path: YAML file to read. None returns the defaults

    Returns:
        Validated configuration

    Raises:
        ConfigError: If the file cannot be read, is not valid YAML or does
            not describe a valid configuration

    """
    if path is None:
        return DocMetaConfig()

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in configuration file {path}: {e}") from e

    if data is None:
        return DocMetaConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {path} must contain a mapping")
    return DocMetaConfig.from_properties(data)
