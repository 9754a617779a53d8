"""Python source parser using tree-sitter."""

from pathlib import Path

import tree_sitter_python
from tree_sitter import Language, Node, Parser

from docmeta.errors import ParserError

_PYTHON_LANGUAGE = Language(tree_sitter_python.language())

# Constants
_DEFAULT_ENCODING = "utf-8"
PYTHON_EXTENSIONS = [".py", ".pyi"]


class SourceParser:
    """Parser for Python source code using tree-sitter."""

    def __init__(self) -> None:
        """Initialise the parser with the Python grammar."""
        self.parser = Parser()
        self.parser.language = _PYTHON_LANGUAGE

    @staticmethod
    def is_supported_file(file_path: Path) -> bool:
        """Check if file is supported for parsing.

        Args:
            file_path: Path to check

        Returns:
            True if file extension is supported

        """
        return file_path.suffix.lower() in PYTHON_EXTENSIONS

    def parse(self, source_code: str) -> Node:
        """Parse source code string.

        Args:
            source_code: Source code to parse

        Returns:
            AST root node

        Raises:
            ParserError: If the source cannot be encoded or parsed

        """
        try:
            tree = self.parser.parse(bytes(source_code, _DEFAULT_ENCODING))
        except (UnicodeEncodeError, ValueError) as e:
            raise ParserError(f"Failed to parse source: {e}") from e
        return tree.root_node
