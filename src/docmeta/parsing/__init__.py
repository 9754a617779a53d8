"""Tree-sitter based scanning of Python source for metadata declarations."""

from docmeta.parsing.base import (
    find_child_by_type,
    find_nodes_by_type,
    get_location,
    get_node_text,
    significant_children,
)
from docmeta.parsing.evaluator import ExpressionEvaluator
from docmeta.parsing.models import AnnotatedSlot, ModuleDeclarations, SymbolDeclaration
from docmeta.parsing.parser import PYTHON_EXTENSIONS, SourceParser
from docmeta.parsing.scanner import DeclarationScanner, module_name_for_path

__all__ = [
    # Base utilities
    "find_child_by_type",
    "find_nodes_by_type",
    "get_location",
    "get_node_text",
    "significant_children",
    # Scanning
    "AnnotatedSlot",
    "DeclarationScanner",
    "ExpressionEvaluator",
    "ModuleDeclarations",
    "PYTHON_EXTENSIONS",
    "SourceParser",
    "SymbolDeclaration",
    "module_name_for_path",
]
