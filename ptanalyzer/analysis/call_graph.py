from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

from ..intermediate_representation.ast import Invoke, InvokeKind, JMethod


class CallKind(Enum):
    STATIC = "STATIC"
    SPECIAL = "SPECIAL"
    VIRTUAL = "VIRTUAL"
    INTERFACE = "INTERFACE"
    DYNAMIC = "DYNAMIC"
    OTHER = "OTHER"


_KIND_OF_INVOKE = {
    InvokeKind.STATIC: CallKind.STATIC,
    InvokeKind.SPECIAL: CallKind.SPECIAL,
    InvokeKind.VIRTUAL: CallKind.VIRTUAL,
    InvokeKind.INTERFACE: CallKind.INTERFACE,
    InvokeKind.DYNAMIC: CallKind.DYNAMIC,
}


def call_kind_of(call_site: Invoke) -> CallKind:
    return _KIND_OF_INVOKE.get(call_site.kind, CallKind.OTHER)


@dataclass(frozen=True)
class Edge:
    """Call edge; two edges are the same if they join the same site and callee."""

    kind: CallKind = field(compare=False)
    call_site: Invoke
    callee: JMethod

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.call_site.location()} -> {self.callee}"


class CallGraph:
    """Incrementally built call graph with reachable-method tracking."""

    def __init__(self) -> None:
        self._entry_methods: dict[JMethod, None] = {}
        self._reachable: dict[JMethod, None] = {}
        self._edges: dict[Edge, None] = {}
        self._callees: dict[Invoke, dict[JMethod, Edge]] = {}
        self._callers: dict[JMethod, dict[Edge, None]] = {}

    def add_entry_method(self, method: JMethod) -> None:
        self._entry_methods[method] = None

    def entry_methods(self) -> list[JMethod]:
        return list(self._entry_methods)

    def add_reachable_method(self, method: JMethod) -> bool:
        """Mark ``method`` reachable; True iff it was not reachable before."""
        if method in self._reachable:
            return False
        self._reachable[method] = None
        return True

    def contains(self, method: JMethod) -> bool:
        return method in self._reachable

    def reachable_methods(self) -> list[JMethod]:
        return list(self._reachable)

    def add_edge(self, edge: Edge) -> bool:
        """Add ``edge``; True iff no edge joined its call site and callee yet."""
        if edge in self._edges:
            return False
        self._edges[edge] = None
        self._callees.setdefault(edge.call_site, {})[edge.callee] = edge
        self._callers.setdefault(edge.callee, {})[edge] = None
        return True

    def edges(self) -> Iterator[Edge]:
        return iter(list(self._edges))

    def callees_of(self, call_site: Invoke) -> list[JMethod]:
        return list(self._callees.get(call_site, ()))

    def edges_out_of(self, call_site: Invoke) -> list[Edge]:
        return list(self._callees.get(call_site, {}).values())

    def edges_into(self, method: JMethod) -> list[Edge]:
        return list(self._callers.get(method, ()))

    def callers_of(self, method: JMethod) -> list[Invoke]:
        return [edge.call_site for edge in self._callers.get(method, ())]

    def call_sites_in(self, method: JMethod) -> list[Invoke]:
        if method.ir is None:
            return []
        return [stmt for stmt in method.ir.statements if isinstance(stmt, Invoke)]

    @property
    def num_edges(self) -> int:
        return len(self._edges)

    def __len__(self) -> int:
        return len(self._reachable)
