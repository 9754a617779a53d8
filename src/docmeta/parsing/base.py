"""Helpers for walking tree-sitter syntax trees of Python source."""

from tree_sitter import Node

from docmeta.models import SourceLocation

_SOURCE_ENCODING = "utf-8"

# Node types that carry no meaning for declarations
_TRIVIA_NODE_TYPES = frozenset({"comment", "line_continuation"})


def get_node_text(node: Node, source_code: str) -> str:
    """Return the source text a node spans.

    Tree-sitter offsets are byte offsets into the UTF-8 encoded source, so
    slicing happens on bytes rather than on the string.

    Args:
        node: Syntax node
        source_code: Source the tree was parsed from

    Returns:
        Text between the node's start and end byte

    """
    encoded = source_code.encode(_SOURCE_ENCODING)
    return encoded[node.start_byte : node.end_byte].decode(_SOURCE_ENCODING)


def get_location(node: Node, path: str) -> SourceLocation:
    """Return the 1-based location of the start of a node."""
    row, column = node.start_point
    return SourceLocation(path=path, line=row + 1, column=column + 1)


def find_nodes_by_type(node: Node, node_type: str) -> list[Node]:
    """Collect a node and its descendants of one type in pre-order.

    Args:
        node: Subtree root
        node_type: Tree-sitter node type, e.g. ``call``

    Returns:
        Matching nodes, parents before their children

    """
    matches: list[Node] = []
    pending = [node]
    while pending:
        current = pending.pop()
        if current.type == node_type:
            matches.append(current)
        pending.extend(reversed(current.children))
    return matches


def find_child_by_type(node: Node, child_type: str) -> Node | None:
    """Return the first direct child of a type, or None."""
    return next((c for c in node.children if c.type == child_type), None)


def significant_children(node: Node) -> list[Node]:
    """Return the named children of a node without comments."""
    return [
        child for child in node.named_children if child.type not in _TRIVIA_NODE_TYPES
    ]
