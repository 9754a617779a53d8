"""Static evaluation of tree-sitter expression nodes.

Reduces Python expressions to the static value tree in ``docmeta.values``
without executing any code. Literal tokens are decoded with
``ast.literal_eval`` so prefixes and escape sequences follow Python's rules.
"""

from __future__ import annotations

import ast
from collections.abc import Mapping

from tree_sitter import Node

from docmeta.parsing.base import (
    find_child_by_type,
    find_nodes_by_type,
    get_location,
    get_node_text,
    significant_children,
)
from docmeta.values import (
    CallExpr,
    KeywordArgument,
    LiteralValue,
    MappingValue,
    Reference,
    SequenceValue,
    StaticValue,
    SubscriptExpr,
    Unresolved,
)

# Node types decoded as literal tokens
_LITERAL_TYPES = frozenset(
    {"string", "concatenated_string", "integer", "float", "unary_operator"}
)
_KEYWORD_LITERALS = {"true": True, "false": False, "none": None, "ellipsis": ...}
_SEQUENCE_TYPES = frozenset({"list", "tuple", "set"})
_SPLAT_TYPES = frozenset(
    {"list_splat", "dictionary_splat", "parenthesized_list_splat"}
)
# Wrapper nodes that hold exactly one meaningful expression
_WRAPPER_TYPES = frozenset({"type", "parenthesized_expression"})


class ExpressionEvaluator:
    """Reduce expression nodes of one module to static values.

    Names are qualified through the module's imports, so ``d`` bound by
    ``from docmeta import doc as d`` becomes ``docmeta.doc``. Names bound to
    module-level literals are replaced by their values.
    """

    def __init__(
        self,
        source_code: str,
        path: str,
        imports: Mapping[str, str] | None = None,
        constants: Mapping[str, StaticValue] | None = None,
    ) -> None:
        """Initialise the evaluator.

        Args:
            source_code: Source code the nodes were parsed from
            path: Path used for call locations
            imports: Local name to fully qualified name bindings
            constants: Module-level names bound to literal values

        """
        self._source_code = source_code
        self._path = path
        self._imports: dict[str, str] = dict(imports or {})
        self._constants: dict[str, StaticValue] = dict(constants or {})

    def bind_constant(self, name: str, value: StaticValue) -> None:
        """Bind a module-level name to a literal value."""
        self._constants[name] = value

    def forget_constant(self, name: str) -> None:
        """Drop a binding, e.g. when a name is reassigned to a non-literal."""
        self._constants.pop(name, None)

    def qualify(self, dotted: str) -> str:
        """Qualify a dotted name through the module's imports."""
        head, _, rest = dotted.partition(".")
        if head not in self._imports:
            return dotted
        base = self._imports[head]
        return f"{base}.{rest}" if rest else base

    def dotted_name(self, node: Node | None) -> str | None:
        """Return the unqualified dotted name of a name or attribute chain."""
        if node is None:
            return None
        match node.type:
            case "identifier":
                return self._text(node)
            case "attribute":
                base = self.dotted_name(node.child_by_field_name("object"))
                attribute = node.child_by_field_name("attribute")
                if base is None or attribute is None:
                    return None
                return f"{base}.{self._text(attribute)}"
            case "member_type":
                parts = significant_children(node)
                if len(parts) != 2:
                    return None
                base = self.dotted_name(parts[0])
                return f"{base}.{self._text(parts[1])}" if base else None
            case "type":
                children = significant_children(node)
                return self.dotted_name(children[0]) if len(children) == 1 else None
        return None

    def evaluate(self, node: Node | None) -> StaticValue:
        """Reduce an expression node to a static value.

        Args:
            node: Expression node (None yields an unresolved value)

        Returns:
            Static value; ``Unresolved`` when runtime evaluation is needed

        """
        if node is None:
            return Unresolved()

        if node.type in _WRAPPER_TYPES:
            children = significant_children(node)
            if len(children) == 1:
                return self.evaluate(children[0])
            return self._unresolved(node)
        if node.type in _KEYWORD_LITERALS:
            return LiteralValue(_KEYWORD_LITERALS[node.type])
        if node.type in _LITERAL_TYPES:
            return self._literal(node)
        if node.type == "dictionary":
            return self._mapping(node)
        if node.type in _SEQUENCE_TYPES:
            return self._sequence(node)
        if node.type == "identifier":
            return self._name(node)
        if node.type in ("attribute", "member_type"):
            dotted = self.dotted_name(node)
            if dotted is None:
                return self._unresolved(node)
            return Reference(self.qualify(dotted))
        if node.type == "call":
            return self.evaluate_call(node)
        if node.type == "subscript":
            return self._subscript(node)
        if node.type == "generic_type":
            return self._generic_type(node)
        return self._unresolved(node)

    def evaluate_call(self, node: Node) -> CallExpr:
        """Reduce a call node, keeping keyword order and duplicates."""
        dotted = self.dotted_name(node.child_by_field_name("function"))
        callee = self.qualify(dotted) if dotted else None

        arguments: list[StaticValue] = []
        keywords: list[KeywordArgument] = []
        has_splat = False

        argument_list = node.child_by_field_name("arguments")
        if argument_list is not None and argument_list.type == "argument_list":
            for child in significant_children(argument_list):
                if child.type == "keyword_argument":
                    name = child.child_by_field_name("name")
                    keywords.append(
                        KeywordArgument(
                            name=self._text(name) if name else "",
                            value=self.evaluate(child.child_by_field_name("value")),
                        )
                    )
                elif child.type in _SPLAT_TYPES:
                    has_splat = True
                else:
                    arguments.append(self.evaluate(child))
        elif argument_list is not None:
            # Generator expression as the sole argument
            arguments.append(self._unresolved(argument_list))

        return CallExpr(
            callee=callee,
            location=get_location(node, self._path),
            arguments=tuple(arguments),
            keywords=tuple(keywords),
            has_splat=has_splat,
            source_text=self._text(node),
        )

    def _literal(self, node: Node) -> StaticValue:
        if find_nodes_by_type(node, "interpolation"):
            return self._unresolved(node)
        try:
            # Parentheses allow implicit concatenation across lines
            value = ast.literal_eval(f"(\n{self._text(node)}\n)")
        except (ValueError, TypeError, SyntaxError, MemoryError, RecursionError):
            return self._unresolved(node)
        return LiteralValue(value)

    def _mapping(self, node: Node) -> StaticValue:
        items: list[tuple[StaticValue, StaticValue]] = []
        for child in significant_children(node):
            if child.type != "pair":
                return self._unresolved(node)
            items.append(
                (
                    self.evaluate(child.child_by_field_name("key")),
                    self.evaluate(child.child_by_field_name("value")),
                )
            )
        return MappingValue(tuple(items))

    def _sequence(self, node: Node) -> StaticValue:
        items: list[StaticValue] = []
        for child in significant_children(node):
            if child.type in _SPLAT_TYPES:
                return self._unresolved(node)
            items.append(self.evaluate(child))
        return SequenceValue(kind=node.type, items=tuple(items))

    def _name(self, node: Node) -> StaticValue:
        name = self._text(node)
        if name in self._constants:
            return self._constants[name]
        return Reference(self.qualify(name))

    def _subscript(self, node: Node) -> StaticValue:
        dotted = self.dotted_name(node.child_by_field_name("value"))
        items = tuple(
            self.evaluate(child) for child in node.children_by_field_name("subscript")
        )
        return SubscriptExpr(
            target=self.qualify(dotted) if dotted else None, items=items
        )

    def _generic_type(self, node: Node) -> StaticValue:
        children = significant_children(node)
        parameters = find_child_by_type(node, "type_parameter")
        if not children or parameters is None:
            return self._unresolved(node)
        dotted = self.dotted_name(children[0])
        items = tuple(
            self.evaluate(child) for child in significant_children(parameters)
        )
        return SubscriptExpr(
            target=self.qualify(dotted) if dotted else None, items=items
        )

    def _unresolved(self, node: Node) -> Unresolved:
        return Unresolved(source_text=self._text(node))

    def _text(self, node: Node) -> str:
        return get_node_text(node, self._source_code)
