from __future__ import annotations

import logging
from dataclasses import dataclass

from ..errors import EntryMethodError
from ..intermediate_representation.ast import JField, JMethod, Program, Var
from ..intermediate_representation.hierarchy import ClassHierarchy
from .call_graph import CallGraph
from .heap import AbstractObject, HeapModel
from .pointer_flow import Pointer, PointerFlowGraph
from .solver import Solver

logger = logging.getLogger(__name__)


@dataclass
class PointerAnalysisResult:
    """Points-to sets and call graph of a finished run.

    All queries return snapshots; pointers the analysis never created simply
    point to nothing.
    """

    pointer_flow_graph: PointerFlowGraph
    call_graph: CallGraph

    def points_to(self, pointer: Pointer) -> frozenset[AbstractObject]:
        return pointer.points_to.snapshot()

    def var_points_to(self, var: Var) -> frozenset[AbstractObject]:
        ptr = self.pointer_flow_graph.find_var_ptr(var)
        return ptr.points_to.snapshot() if ptr is not None else frozenset()

    def static_field_points_to(self, field: JField) -> frozenset[AbstractObject]:
        ptr = self.pointer_flow_graph.find_static_field(field)
        return ptr.points_to.snapshot() if ptr is not None else frozenset()

    def field_points_to(self, obj: AbstractObject, field: JField) -> frozenset[AbstractObject]:
        ptr = self.pointer_flow_graph.find_instance_field(obj, field)
        return ptr.points_to.snapshot() if ptr is not None else frozenset()

    def array_points_to(self, obj: AbstractObject) -> frozenset[AbstractObject]:
        ptr = self.pointer_flow_graph.find_array_index(obj)
        return ptr.points_to.snapshot() if ptr is not None else frozenset()

    def vars(self) -> list[Var]:
        return [ptr.var for ptr in self.pointer_flow_graph.var_pointers()]

    def objects(self) -> list[AbstractObject]:
        seen: dict[AbstractObject, None] = {}
        for ptr in self.pointer_flow_graph.pointers():
            seen.update(dict.fromkeys(ptr.points_to))
        return sorted(seen)

    def reachable_methods(self) -> list[JMethod]:
        return self.call_graph.reachable_methods()

    def may_alias(self, a: Var, b: Var) -> bool:
        return not self.var_points_to(a).isdisjoint(self.var_points_to(b))

    def alias_sets(self) -> dict[str, set[str]]:
        """Group variables with the same non-empty points-to set."""
        groups: dict[frozenset[AbstractObject], set[str]] = {}
        for ptr in self.pointer_flow_graph.var_pointers():
            pts = ptr.points_to.snapshot()
            if pts:
                groups.setdefault(pts, set()).add(str(ptr.var))
        return {min(names): names for names in groups.values()}

    def points_to_by_name(self) -> dict[str, set[str]]:
        return {
            str(ptr.var): {str(o) for o in ptr.points_to}
            for ptr in self.pointer_flow_graph.var_pointers()
            if ptr.points_to
        }


def compute_pointer_analysis(
    program: Program,
    entry: str | JMethod | None = None,
    hierarchy: ClassHierarchy | None = None,
    heap_model: HeapModel | None = None,
) -> PointerAnalysisResult:
    """Run the context-insensitive pointer analysis from ``entry``.

    ``entry`` may be a method, a signature (``<Main: void main(java.lang.String[])>``)
    or ``Class.method`` shorthand; by default the program's ``main`` is used.
    """
    entry_method = resolve_entry(program, entry)
    logger.debug("analyzing %d classes from %s", len(program.classes), entry_method)
    solver = Solver(program, hierarchy=hierarchy, heap_model=heap_model, entry=entry_method)
    solver.solve()
    return PointerAnalysisResult(solver.pointer_flow_graph, solver.call_graph)


def resolve_entry(program: Program, entry: str | JMethod | None) -> JMethod:
    if isinstance(entry, JMethod):
        return entry
    if entry is None:
        method = program.main_method()
        if method is None:
            raise EntryMethodError("program has no main method; pass an entry method")
        return method
    method = program.method_by_signature(entry)
    if method is None:
        raise EntryMethodError(f"entry method {entry} not found")
    return method
