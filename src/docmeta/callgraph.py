"""Call graph providers for the ``raises`` cross-check."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Protocol, runtime_checkable


@runtime_checkable
class CallGraphProvider(Protocol):
    """Supplies callee edges between fully qualified symbol targets.

    Targets use the same form as scanned declarations: the module name
    followed by the symbol's qualified name (``pkg.mod.Class.method``).
    """

    def callees(self, target: str) -> Iterable[str]:
        """Return the targets a callable is known to delegate to."""
        ...


class StaticCallGraph:
    """In-memory call graph built from direct calls found in source code.

    Knowledge is approximate: only calls to names defined in the same module
    are recorded, and dynamic dispatch is ignored.
    """

    def __init__(self, edges: Mapping[str, Iterable[str]] | None = None) -> None:
        """Initialise the graph.

        Args:
            edges: Optional initial mapping of caller target to callee targets

        """
        self._edges: dict[str, set[str]] = {}
        for caller, callees in (edges or {}).items():
            for callee in callees:
                self.add_edge(caller, callee)

    def add_edge(self, caller: str, callee: str) -> None:
        """Record that ``caller`` delegates to ``callee``."""
        if caller == callee:
            return
        self._edges.setdefault(caller, set()).add(callee)

    def callees(self, target: str) -> list[str]:
        """Return the known callees of a target in sorted order."""
        return sorted(self._edges.get(target, ()))

    def merge(self, other: StaticCallGraph) -> None:
        """Merge the edges of another graph into this one."""
        for caller, callees in other._edges.items():
            for callee in callees:
                self.add_edge(caller, callee)

    def callers(self) -> list[str]:
        """Return every target with at least one known callee."""
        return sorted(self._edges)

    def __len__(self) -> int:
        return sum(len(callees) for callees in self._edges.values())

    def __contains__(self, target: object) -> bool:
        return target in self._edges
