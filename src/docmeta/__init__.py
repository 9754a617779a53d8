"""Documentation metadata convention and its static validator.

The ``doc`` convention attaches structured documentation (description,
deprecation, discouragement, raised exceptions and extra data) to classes,
functions, parameters and return values. The validator checks those
attachments statically without importing the code under analysis.

Use in pipeline: DeclarationScanner → AttachmentResolver → Validator → Reporter
"""

from .analysis import AnalysisResult, DocMetaAnalyser
from .callgraph import CallGraphProvider, StaticCallGraph
from .config import (
    AnalysisConfig,
    DocMetaConfig,
    ValidationMode,
    ValidatorConfig,
    load_config,
)
from .convention import DocInfo, doc
from .errors import (
    AmbiguousAttachmentError,
    ConfigError,
    DocMetaError,
    ParserError,
    ShapeError,
    UnresolvedValueWarning,
)
from .findings import Finding, FindingKind, Severity
from .models import AttachmentSite, SourceLocation, SymbolKind
from .record import ExceptionRef, MetadataRecord
from .reporter import Diagnostic, DiagnosticReport, Reporter
from .resolver import AttachmentResolver, MetadataPayload, SymbolResolution
from .validator import Validator

__version__ = "0.1.0"

__all__ = [
    "AmbiguousAttachmentError",
    "AnalysisConfig",
    "AnalysisResult",
    "AttachmentResolver",
    "AttachmentSite",
    "CallGraphProvider",
    "ConfigError",
    "Diagnostic",
    "DiagnosticReport",
    "DocInfo",
    "DocMetaAnalyser",
    "DocMetaConfig",
    "DocMetaError",
    "ExceptionRef",
    "Finding",
    "FindingKind",
    "MetadataPayload",
    "MetadataRecord",
    "ParserError",
    "Reporter",
    "Severity",
    "ShapeError",
    "SourceLocation",
    "StaticCallGraph",
    "SymbolKind",
    "SymbolResolution",
    "UnresolvedValueWarning",
    "ValidationMode",
    "Validator",
    "ValidatorConfig",
    "doc",
    "load_config",
    "__version__",
]
