"""Error classes for the documentation metadata validator.

This module provides:
- DocMetaError: Base exception class for all docmeta errors
- ShapeError: Malformed metadata record construction
- AmbiguousAttachmentError: More than one record in a single attachment slot
- ParserError: Source parsing exception
- ConfigError: Invalid validator or analysis configuration
- UnresolvedValueWarning: Soft warning category for values needing runtime evaluation
"""


class DocMetaError(Exception):
    """Base exception for all docmeta errors."""

    pass


class ShapeError(DocMetaError):
    """Raised when a metadata record cannot be constructed from its keywords."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialise shape error with the offending field.

        Args:
            message: Human-readable description of the violation
            field: Name of the keyword that violated the shape, if known

        """
        super().__init__(message)
        self.field = field


class AmbiguousAttachmentError(DocMetaError):
    """Raised when more than one metadata record is found in a single slot."""

    def __init__(self, slot: str, count: int) -> None:
        """Initialise ambiguity error for an attachment slot.

        Args:
            slot: Dotted target of the slot (e.g. ``module.func.param``)
            count: Number of records found in the slot

        """
        super().__init__(
            f"{count} metadata records attached to '{slot}', expected at most one"
        )
        self.slot = slot
        self.count = count


class ParserError(DocMetaError):
    """Raised when source code cannot be parsed."""

    pass


class ConfigError(DocMetaError):
    """Raised when validator or analysis configuration is invalid."""

    pass


class UnresolvedValueWarning(UserWarning):
    """A metadata value requires runtime evaluation and was dropped."""

    pass
