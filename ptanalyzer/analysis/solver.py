from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field

from ..errors import ArgumentMismatchError, EntryMethodError
from ..intermediate_representation.ast import (
    Copy,
    Invoke,
    JMethod,
    LoadArray,
    LoadField,
    New,
    Nop,
    Program,
    Return,
    Stmt,
    StoreArray,
    StoreField,
    Var,
)
from ..intermediate_representation.hierarchy import ClassHierarchy
from .call_graph import CallGraph, Edge, call_kind_of
from .heap import AbstractObject, HeapModel
from .pointer_flow import Pointer, PointerFlowGraph, PointsToSet, VarPtr
from .worklist import WorkList

logger = logging.getLogger(__name__)


@dataclass
class VarUses:
    """Statements that use a variable as a base or receiver.

    They cannot be turned into PFG edges until the objects the variable points
    to are known, so they are replayed for each new object.
    """

    store_fields: list[StoreField] = field(default_factory=list)
    load_fields: list[LoadField] = field(default_factory=list)
    store_arrays: list[StoreArray] = field(default_factory=list)
    load_arrays: list[LoadArray] = field(default_factory=list)
    invokes: list[Invoke] = field(default_factory=list)


class Solver:
    """Context-insensitive, inclusion-based pointer analysis.

    Builds the call graph on the fly: instance calls are only resolved once the
    receiver variable is known to point to an object.
    """

    def __init__(
        self,
        program: Program,
        hierarchy: ClassHierarchy | None = None,
        heap_model: HeapModel | None = None,
        entry: JMethod | None = None,
    ) -> None:
        self.program = program
        self.hierarchy = hierarchy if hierarchy is not None else ClassHierarchy(program)
        self.heap_model = heap_model if heap_model is not None else HeapModel()
        self._entry = entry
        self.pointer_flow_graph = PointerFlowGraph()
        self.call_graph = CallGraph()
        self.work_list = WorkList()
        self._uses: dict[Var, VarUses] = {}
        self._pending_methods: deque[JMethod] = deque()
        self.iterations = 0

    def solve(self) -> None:
        """Runs the pointer analysis to its fixpoint."""
        self.initialize()
        self.analyze()
        logger.info(
            "pointer analysis finished: %d reachable methods, %d call edges, "
            "%d pointers, %d PFG edges, %d objects, %d iterations",
            len(self.call_graph),
            self.call_graph.num_edges,
            len(self.pointer_flow_graph),
            self.pointer_flow_graph.num_edges,
            len(self.heap_model),
            self.iterations,
        )

    def initialize(self) -> None:
        entry = self._entry if self._entry is not None else self.program.main_method()
        if entry is None:
            raise EntryMethodError("no entry method: program has no main method")
        if entry.ir is None:
            raise EntryMethodError(f"entry method {entry} has no body")
        logger.info("pointer analysis starts from %s", entry)
        self.call_graph.add_entry_method(entry)
        self.add_reachable(entry)
        self._process_pending_methods()

    def add_reachable(self, method: JMethod) -> None:
        """Marks ``method`` reachable; its statements are processed once."""
        if self.call_graph.add_reachable_method(method):
            logger.debug("new reachable method %s", method)
            self._pending_methods.append(method)

    def _process_pending_methods(self) -> None:
        while self._pending_methods:
            method = self._pending_methods.popleft()
            if method.ir is None:
                continue
            for stmt in method.ir.statements:
                self._process_stmt(stmt)

    def _process_stmt(self, stmt: Stmt) -> None:
        """Turns one statement of a newly reachable method into constraints."""
        pfg = self.pointer_flow_graph
        if isinstance(stmt, New):
            obj = self.heap_model.get_obj(stmt)
            self.work_list.push(pfg.get_var_ptr(stmt.lvalue), PointsToSet([obj]))
        elif isinstance(stmt, Copy):
            self.add_pfg_edge(pfg.get_var_ptr(stmt.rvalue), pfg.get_var_ptr(stmt.lvalue))
        elif isinstance(stmt, LoadField):
            if stmt.base is None:
                jfield = self.hierarchy.resolve_field(stmt.field)
                self.add_pfg_edge(pfg.get_static_field(jfield), pfg.get_var_ptr(stmt.lvalue))
            else:
                self._uses_of(stmt.base).load_fields.append(stmt)
        elif isinstance(stmt, StoreField):
            if stmt.base is None:
                jfield = self.hierarchy.resolve_field(stmt.field)
                self.add_pfg_edge(pfg.get_var_ptr(stmt.rvalue), pfg.get_static_field(jfield))
            else:
                self._uses_of(stmt.base).store_fields.append(stmt)
        elif isinstance(stmt, LoadArray):
            self._uses_of(stmt.base).load_arrays.append(stmt)
        elif isinstance(stmt, StoreArray):
            self._uses_of(stmt.base).store_arrays.append(stmt)
        elif isinstance(stmt, Invoke):
            if stmt.is_static or stmt.is_special:
                self._process_resolved_call(stmt)
            elif stmt.is_instance:
                self._uses_of(stmt.receiver).invokes.append(stmt)
            else:
                logger.debug("ignoring receiver-less call %s", stmt.location())
        elif isinstance(stmt, Return):
            self._process_return(stmt)
        elif not isinstance(stmt, Nop):
            raise TypeError(f"unknown statement type {type(stmt).__name__}")

    def _uses_of(self, var: Var) -> VarUses:
        uses = self._uses.get(var)
        if uses is None:
            uses = self._uses[var] = VarUses()
        return uses

    def _process_resolved_call(self, call_site: Invoke) -> None:
        callee = self.hierarchy.resolve_callee(None, call_site)
        if callee is None:
            logger.debug("unresolved call %s at %s", call_site.method_ref, call_site.location())
            return
        edge = Edge(call_kind_of(call_site), call_site, callee)
        if self.call_graph.add_edge(edge):
            logger.debug("new call edge %s", edge)
            self.add_reachable(callee)
            self._bind_call(call_site, callee)
            if call_site.receiver is not None and callee.ir is not None and callee.ir.this is not None:
                pfg = self.pointer_flow_graph
                self.add_pfg_edge(
                    pfg.get_var_ptr(call_site.receiver), pfg.get_var_ptr(callee.ir.this)
                )

    def _process_return(self, stmt: Return) -> None:
        method = stmt.container
        if stmt.value is None or method is None or method.ir is None:
            return
        return_var = method.ir.return_var
        if return_var is None or return_var == stmt.value:
            return
        pfg = self.pointer_flow_graph
        self.add_pfg_edge(pfg.get_var_ptr(stmt.value), pfg.get_var_ptr(return_var))

    def _bind_call(self, call_site: Invoke, callee: JMethod) -> None:
        """Passes arguments to parameters and the return value to the result."""
        ir = callee.ir
        if ir is None:
            return
        if len(call_site.args) != len(ir.params):
            raise ArgumentMismatchError(
                call_site.location(), callee.signature, len(call_site.args), len(ir.params)
            )
        pfg = self.pointer_flow_graph
        for arg, param in zip(call_site.args, ir.params):
            if arg is not None:
                self.add_pfg_edge(pfg.get_var_ptr(arg), pfg.get_var_ptr(param))
        if call_site.result is not None and ir.return_var is not None:
            self.add_pfg_edge(pfg.get_var_ptr(ir.return_var), pfg.get_var_ptr(call_site.result))

    def add_pfg_edge(self, source: Pointer, target: Pointer) -> None:
        """Adds ``source -> target`` and forwards what ``source`` already holds."""
        if self.pointer_flow_graph.add_edge(source, target):
            if not source.points_to.is_empty():
                self.work_list.push(target, source.points_to)

    def analyze(self) -> None:
        """Processes work-list entries until the work-list is empty."""
        pfg = self.pointer_flow_graph
        hierarchy = self.hierarchy
        while not self.work_list.is_empty():
            entry = self.work_list.pop()
            self.iterations += 1
            diff = self.propagate(entry.pointer, entry.points_to)
            if isinstance(entry.pointer, VarPtr) and not diff.is_empty():
                var = entry.pointer.var
                uses = self._uses.get(var)
                if uses is not None:
                    for obj in diff:
                        for store in uses.store_fields:
                            self.add_pfg_edge(
                                pfg.get_var_ptr(store.rvalue),
                                pfg.get_instance_field(obj, hierarchy.resolve_field(store.field)),
                            )
                        for load in uses.load_fields:
                            self.add_pfg_edge(
                                pfg.get_instance_field(obj, hierarchy.resolve_field(load.field)),
                                pfg.get_var_ptr(load.lvalue),
                            )
                        for store in uses.store_arrays:
                            self.add_pfg_edge(
                                pfg.get_var_ptr(store.rvalue), pfg.get_array_index(obj)
                            )
                        for load in uses.load_arrays:
                            self.add_pfg_edge(
                                pfg.get_array_index(obj), pfg.get_var_ptr(load.lvalue)
                            )
                        self.process_call(var, obj)
            self._process_pending_methods()

    def propagate(self, pointer: Pointer, points_to: PointsToSet) -> PointsToSet:
        """Merges ``points_to`` into ``pointer`` and its PFG successors.

        Returns the objects that were not in ``pointer``'s set before.
        """
        diff = points_to.difference(pointer.points_to)
        if not diff.is_empty():
            pointer.points_to.add_all(diff)
            for succ in self.pointer_flow_graph.successors_of(pointer):
                self.work_list.push(succ, diff)
        return diff

    def process_call(self, var: Var, recv: AbstractObject) -> None:
        """Resolves the instance calls on ``var`` for a newly found receiver."""
        uses = self._uses.get(var)
        if uses is None:
            return
        pfg = self.pointer_flow_graph
        for call_site in uses.invokes:
            callee = self.hierarchy.resolve_callee(recv.type, call_site)
            if callee is None:
                continue
            if callee.ir is not None and callee.ir.this is not None:
                self.work_list.push(pfg.get_var_ptr(callee.ir.this), PointsToSet([recv]))
            edge = Edge(call_kind_of(call_site), call_site, callee)
            if self.call_graph.add_edge(edge):
                logger.debug("new call edge %s", edge)
                self.add_reachable(callee)
                self._bind_call(call_site, callee)
