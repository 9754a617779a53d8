"""Declaration scanner for Python source code.

Walks a tree-sitter parse of one module and produces the symbol declarations
the resolver consumes: decorators, annotated parameters, return values and
variables, module-level convention calls, docstrings and a call graph of
direct intra-module calls.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Iterator
from pathlib import Path

from tree_sitter import Node

from docmeta.callgraph import StaticCallGraph
from docmeta.models import AttachmentSite, SymbolKind
from docmeta.parsing.base import (
    find_nodes_by_type,
    get_location,
    get_node_text,
    significant_children,
)
from docmeta.parsing.evaluator import ExpressionEvaluator
from docmeta.parsing.models import AnnotatedSlot, ModuleDeclarations, SymbolDeclaration
from docmeta.parsing.parser import SourceParser
from docmeta.record import FIXED_FIELDS
from docmeta.values import CallExpr, LiteralValue, StaticValue, is_constant

logger = logging.getLogger(__name__)

_DEFAULT_PATH = "<string>"
_SCRIPT_MODULE = "__main__"
_LOCALS_SCOPE = "<locals>"
_RETURN_SLOT = "return"
_DOCSTRING_TYPES = frozenset({"string", "concatenated_string"})
_SELF_NAMES = frozenset({"self", "cls"})

# Compound statements whose blocks still belong to the enclosing scope
_COMPOUND_TYPES = frozenset({"if_statement", "try_statement", "with_statement"})
_CLAUSE_TYPES = frozenset(
    {
        "elif_clause",
        "else_clause",
        "except_clause",
        "except_group_clause",
        "finally_clause",
    }
)


def module_name_for_path(path: Path) -> str:
    """Derive a dotted module name from a file path.

    Parent directories are included while they are packages (contain an
    ``__init__.py``), so ``src/pkg/sub/mod.py`` becomes ``pkg.sub.mod``.

    Args:
        path: Path to a Python source file

    Returns:
        Dotted module name; ``__main__`` for pseudo-paths such as ``<string>``

    """
    if str(path).startswith("<"):
        return _SCRIPT_MODULE

    parts = [] if path.stem == "__init__" else [path.stem]
    parent = path.parent
    while (parent / "__init__.py").is_file() and parent.name:
        parts.insert(0, parent.name)
        parent = parent.parent
    return ".".join(parts) or path.parent.name or path.stem


class DeclarationScanner:
    """Scanner producing symbol declarations from Python source."""

    def __init__(self, parser: SourceParser | None = None) -> None:
        """Initialise the scanner.

        Args:
            parser: Parser to use (a new SourceParser by default)

        """
        self._parser = parser or SourceParser()

    def scan(
        self,
        source_code: str,
        path: str = _DEFAULT_PATH,
        module: str | None = None,
    ) -> ModuleDeclarations:
        """Scan one module's source code.

        Args:
            source_code: Python source code
            path: Path reported in source locations
            module: Dotted module name (derived from ``path`` if None)

        Returns:
            ModuleDeclarations with the module symbol first, followed by
            classes, functions and methods in source order

        Raises:
            ParserError: If the source cannot be parsed

        """
        root = self._parser.parse(source_code)
        module_name = module or module_name_for_path(Path(path))

        if root.has_error:
            logger.warning(
                f"Source {path} contains syntax errors, declarations may be incomplete"
            )

        declarations = _ModuleScan(source_code, path, module_name, root).run()
        logger.debug(
            f"Scanned {path}: {len(declarations.symbols)} symbols, "
            f"{len(declarations.call_graph)} call edges"
        )
        return declarations


class _ModuleScan:
    """State for scanning a single module."""

    def __init__(self, source_code: str, path: str, module: str, root: Node) -> None:
        self._source_code = source_code
        self._path = path
        self._module = module
        self._root = root
        self._evaluator = ExpressionEvaluator(
            source_code, path, imports=self._collect_imports()
        )
        self._symbols: list[SymbolDeclaration] = []
        # (caller qualname, enclosing class qualname, body node)
        self._bodies: list[tuple[str, str | None, Node]] = []

    def run(self) -> ModuleDeclarations:
        self._collect_constants()
        self._symbols.append(self._scan_module())
        self._scan_block(self._root, scope=None, in_class=False)

        return ModuleDeclarations(
            path=self._path,
            module=self._module,
            symbols=self._symbols,
            fallback_names=self._collect_fallback_names(),
            call_graph=self._build_call_graph(),
            has_syntax_errors=self._root.has_error,
        )

    def _collect_imports(self) -> dict[str, str]:
        """Map local names bound by import statements to qualified names."""
        imports: dict[str, str] = {}

        for node in find_nodes_by_type(self._root, "import_statement"):
            for child in significant_children(node):
                if child.type == "dotted_name":
                    head = self._text(child).split(".")[0]
                    imports[head] = head
                elif child.type == "aliased_import":
                    name = child.child_by_field_name("name")
                    alias = child.child_by_field_name("alias")
                    if name is not None and alias is not None:
                        imports[self._text(alias)] = self._text(name)

        for node in find_nodes_by_type(self._root, "import_from_statement"):
            module_node = node.child_by_field_name("module_name")
            module = self._text(module_node).lstrip(".") if module_node else ""
            for child in node.children_by_field_name("name"):
                if child.type == "aliased_import":
                    name = child.child_by_field_name("name")
                    alias = child.child_by_field_name("alias")
                    if name is None or alias is None:
                        continue
                    local, imported = self._text(alias), self._text(name)
                else:
                    local = imported = self._text(child)
                imports[local] = f"{module}.{imported}" if module else imported

        return imports

    def _collect_constants(self) -> None:
        """Bind module-level names assigned to literal values, in order."""
        for statement in significant_children(self._root):
            assignment = _assignment_of(statement)
            if assignment is None:
                continue
            left = assignment.child_by_field_name("left")
            right = assignment.child_by_field_name("right")
            if left is None or left.type != "identifier" or right is None:
                continue
            name = self._text(left)
            value = self._evaluator.evaluate(right)
            if is_constant(value):
                self._evaluator.bind_constant(name, value)
            else:
                self._evaluator.forget_constant(name)

    def _collect_fallback_names(self) -> frozenset[str]:
        """Find local function declarations compatible with the convention."""
        names: set[str] = set()
        for statement in scope_statements(self._root):
            definition = _definition_of(statement)
            if definition is None or definition.type != "function_definition":
                continue
            parameters = definition.child_by_field_name("parameters")
            if parameters is None:
                continue
            parameter_names = {
                self._parameter_parts(parameter)[0]
                for parameter in significant_children(parameters)
            }
            if set(FIXED_FIELDS) <= parameter_names:
                name_node = definition.child_by_field_name("name")
                if name_node is not None:
                    names.add(self._text(name_node))
        return frozenset(names)

    def _scan_module(self) -> SymbolDeclaration:
        module_calls: list[CallExpr] = []
        slots: list[AnnotatedSlot] = []

        for statement in scope_statements(self._root):
            if statement.type != "expression_statement":
                continue
            expressions = significant_children(statement)
            if len(expressions) == 1 and expressions[0].type == "call":
                module_calls.append(self._evaluator.evaluate_call(expressions[0]))
            slot = self._variable_slot(statement)
            if slot is not None:
                slots.append(slot)

        return SymbolDeclaration(
            name=self._module.rsplit(".", 1)[-1],
            qualname=self._module,
            module=self._module,
            kind=SymbolKind.MODULE,
            location=get_location(self._root, self._path),
            docstring=self._docstring(self._root),
            slots=tuple(slots),
            module_calls=tuple(module_calls),
        )

    def _scan_block(self, block: Node, scope: str | None, in_class: bool) -> None:
        for statement in scope_statements(block):
            decorators: tuple[StaticValue, ...] = ()
            definition = statement
            if statement.type == "decorated_definition":
                decorators = tuple(
                    self._evaluator.evaluate(expression)
                    for decorator in statement.named_children
                    if decorator.type == "decorator"
                    for expression in significant_children(decorator)[:1]
                )
                definition = statement.child_by_field_name("definition")
                if definition is None:
                    continue

            if definition.type == "function_definition":
                self._scan_function(definition, decorators, scope, in_class)
            elif definition.type == "class_definition":
                self._scan_class(definition, decorators, scope)

    def _scan_function(
        self,
        node: Node,
        decorators: tuple[StaticValue, ...],
        scope: str | None,
        in_class: bool,
    ) -> None:
        name = self._name_of(node)
        qualname = f"{scope}.{name}" if scope else name
        slots: list[AnnotatedSlot] = []

        parameters = node.child_by_field_name("parameters")
        if parameters is not None:
            for parameter in significant_children(parameters):
                parameter_name, annotation = self._parameter_parts(parameter)
                if parameter_name is None or annotation is None:
                    continue
                slots.append(
                    AnnotatedSlot(
                        name=parameter_name,
                        site=AttachmentSite.PARAMETER,
                        annotation=self._evaluator.evaluate(annotation),
                        location=get_location(parameter, self._path),
                    )
                )

        return_type = node.child_by_field_name("return_type")
        if return_type is not None:
            slots.append(
                AnnotatedSlot(
                    name=_RETURN_SLOT,
                    site=AttachmentSite.RETURN_VALUE,
                    annotation=self._evaluator.evaluate(return_type),
                    location=get_location(return_type, self._path),
                )
            )

        body = node.child_by_field_name("body")
        self._symbols.append(
            SymbolDeclaration(
                name=name,
                qualname=qualname,
                module=self._module,
                kind=SymbolKind.METHOD if in_class else SymbolKind.FUNCTION,
                location=get_location(node, self._path),
                docstring=self._docstring(body),
                decorators=decorators,
                slots=tuple(slots),
            )
        )

        if body is not None:
            self._bodies.append((qualname, scope if in_class else None, body))
            self._scan_block(body, scope=f"{qualname}.{_LOCALS_SCOPE}", in_class=False)

    def _scan_class(
        self, node: Node, decorators: tuple[StaticValue, ...], scope: str | None
    ) -> None:
        name = self._name_of(node)
        qualname = f"{scope}.{name}" if scope else name
        body = node.child_by_field_name("body")

        slots: list[AnnotatedSlot] = []
        if body is not None:
            for statement in significant_children(body):
                slot = self._variable_slot(statement)
                if slot is not None:
                    slots.append(slot)

        self._symbols.append(
            SymbolDeclaration(
                name=name,
                qualname=qualname,
                module=self._module,
                kind=SymbolKind.CLASS,
                location=get_location(node, self._path),
                docstring=self._docstring(body),
                decorators=decorators,
                slots=tuple(slots),
            )
        )

        if body is not None:
            self._scan_block(body, scope=qualname, in_class=True)

    def _variable_slot(self, statement: Node) -> AnnotatedSlot | None:
        """Return the slot of an annotated ``name: T [= value]`` statement."""
        assignment = _assignment_of(statement)
        if assignment is None:
            return None
        left = assignment.child_by_field_name("left")
        annotation = assignment.child_by_field_name("type")
        if left is None or left.type != "identifier" or annotation is None:
            return None
        return AnnotatedSlot(
            name=self._text(left),
            site=AttachmentSite.VARIABLE,
            annotation=self._evaluator.evaluate(annotation),
            location=get_location(assignment, self._path),
        )

    def _parameter_parts(self, node: Node) -> tuple[str | None, Node | None]:
        """Return the name and annotation node of a parameter node."""
        match node.type:
            case "identifier":
                return self._text(node), None
            case "list_splat_pattern" | "dictionary_splat_pattern":
                return self._text(node).lstrip("*"), None
            case "default_parameter":
                name = node.child_by_field_name("name")
                return (self._text(name) if name else None), None
            case "typed_default_parameter":
                name = node.child_by_field_name("name")
                return (
                    self._text(name) if name else None,
                    node.child_by_field_name("type"),
                )
            case "typed_parameter":
                children = significant_children(node)
                if not children:
                    return None, None
                return (
                    self._text(children[0]).lstrip("*"),
                    node.child_by_field_name("type"),
                )
        return None, None

    def _docstring(self, block: Node | None) -> str | None:
        """Return the cleaned docstring of a module or block, if any."""
        if block is None:
            return None
        statements = significant_children(block)
        if not statements or statements[0].type != "expression_statement":
            return None
        expressions = significant_children(statements[0])
        if len(expressions) != 1 or expressions[0].type not in _DOCSTRING_TYPES:
            return None
        value = self._evaluator.evaluate(expressions[0])
        if isinstance(value, LiteralValue) and isinstance(value.value, str):
            return inspect.cleandoc(value.value)
        return None

    def _build_call_graph(self) -> StaticCallGraph:
        """Record direct calls between callables defined in this module."""
        callables = {
            symbol.qualname for symbol in self._symbols if symbol.is_callable
        }
        graph = StaticCallGraph()

        for caller, class_qualname, body in self._bodies:
            for call in find_nodes_by_type(body, "call"):
                function = call.child_by_field_name("function")
                dotted = self._evaluator.dotted_name(function)
                if dotted is None:
                    continue
                head, _, rest = dotted.partition(".")
                if head in _SELF_NAMES and class_qualname and rest:
                    dotted = f"{class_qualname}.{rest}"
                if dotted in callables:
                    graph.add_edge(
                        f"{self._module}.{caller}", f"{self._module}.{dotted}"
                    )

        return graph

    def _name_of(self, node: Node) -> str:
        name = node.child_by_field_name("name")
        return self._text(name) if name is not None else "<anonymous>"

    def _text(self, node: Node) -> str:
        return get_node_text(node, self._source_code)


def _assignment_of(statement: Node) -> Node | None:
    """Return the assignment inside an expression statement, if any."""
    if statement.type != "expression_statement":
        return None
    children = significant_children(statement)
    if len(children) == 1 and children[0].type == "assignment":
        return children[0]
    return None


def _definition_of(statement: Node) -> Node | None:
    """Return the function or class definition of a (decorated) statement."""
    if statement.type == "decorated_definition":
        return statement.child_by_field_name("definition")
    if statement.type in ("function_definition", "class_definition"):
        return statement
    return None


def scope_statements(block: Node) -> Iterator[Node]:
    """Yield the statements of a scope, including those in nested branches.

    Definitions under ``if``, ``try`` and ``with`` statements bind names in the
    enclosing scope, so their blocks are flattened into it in source order.
    """
    for statement in significant_children(block):
        if statement.type in _COMPOUND_TYPES:
            yield from _branch_statements(statement)
        else:
            yield statement


def _branch_statements(node: Node) -> Iterator[Node]:
    for child in significant_children(node):
        if child.type == "block":
            yield from scope_statements(child)
        elif child.type in _CLAUSE_TYPES:
            yield from _branch_statements(child)
