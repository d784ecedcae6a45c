"""Pointers, points-to sets and the pointer flow graph.

The pointer flow graph (PFG) is an arena: every pointer gets an integer handle
when it is first requested, edges are stored between handles, and the four
lookup maps intern pointers by their structural key so that every use of the
same variable, field or array sees the same evolving points-to set.
"""
from __future__ import annotations

from typing import Iterable, Iterator

from ..intermediate_representation.ast import JField, Var
from .heap import AbstractObject


class PointsToSet:
    """A growing set of abstract objects."""

    __slots__ = ("_objects",)

    def __init__(self, objects: Iterable[AbstractObject] = ()) -> None:
        # dict keeps insertion order, which keeps runs deterministic
        self._objects: dict[AbstractObject, None] = dict.fromkeys(objects)

    def add(self, obj: AbstractObject) -> bool:
        if obj in self._objects:
            return False
        self._objects[obj] = None
        return True

    def add_all(self, other: Iterable[AbstractObject]) -> PointsToSet:
        """Union ``other`` into this set; return the objects that were new."""
        added = PointsToSet()
        for obj in other:
            if obj not in self._objects:
                self._objects[obj] = None
                added._objects[obj] = None
        return added

    def difference(self, other: PointsToSet) -> PointsToSet:
        return PointsToSet(o for o in self._objects if o not in other._objects)

    def is_empty(self) -> bool:
        return not self._objects

    def copy(self) -> PointsToSet:
        return PointsToSet(self._objects)

    def snapshot(self) -> frozenset[AbstractObject]:
        return frozenset(self._objects)

    def __contains__(self, obj: object) -> bool:
        return obj in self._objects

    def __iter__(self) -> Iterator[AbstractObject]:
        return iter(self._objects)

    def __len__(self) -> int:
        return len(self._objects)

    def __bool__(self) -> bool:
        return bool(self._objects)

    def __repr__(self) -> str:
        return "{" + ", ".join(str(o) for o in self._objects) + "}"


class Pointer:
    """A node of the PFG; owns the points-to set of what it may reference."""

    def __init__(self, handle: int) -> None:
        self.handle = handle
        self.points_to = PointsToSet()

    def __hash__(self) -> int:
        return self.handle

    def __eq__(self, other: object) -> bool:
        return self is other


class VarPtr(Pointer):
    def __init__(self, handle: int, var: Var) -> None:
        super().__init__(handle)
        self.var = var

    def __str__(self) -> str:
        return str(self.var)


class StaticFieldPtr(Pointer):
    def __init__(self, handle: int, field: JField) -> None:
        super().__init__(handle)
        self.field = field

    def __str__(self) -> str:
        return str(self.field)


class InstanceFieldPtr(Pointer):
    def __init__(self, handle: int, base: AbstractObject, field: JField) -> None:
        super().__init__(handle)
        self.base = base
        self.field = field

    def __str__(self) -> str:
        return f"{self.base}.{self.field.name}"


class ArrayIndexPtr(Pointer):
    """All elements of one array object, index-insensitive."""

    def __init__(self, handle: int, array: AbstractObject) -> None:
        super().__init__(handle)
        self.array = array

    def __str__(self) -> str:
        return f"{self.array}[*]"


class PointerFlowGraph:
    def __init__(self) -> None:
        self._pointers: list[Pointer] = []
        self._succs: dict[int, dict[int, None]] = {}
        self._var_ptrs: dict[Var, VarPtr] = {}
        self._static_fields: dict[JField, StaticFieldPtr] = {}
        self._instance_fields: dict[tuple[AbstractObject, JField], InstanceFieldPtr] = {}
        self._array_indexes: dict[AbstractObject, ArrayIndexPtr] = {}
        self._num_edges = 0

    def _next_handle(self) -> int:
        return len(self._pointers)

    def _register(self, pointer: Pointer) -> None:
        self._pointers.append(pointer)

    def get_var_ptr(self, var: Var) -> VarPtr:
        ptr = self._var_ptrs.get(var)
        if ptr is None:
            ptr = VarPtr(self._next_handle(), var)
            self._register(ptr)
            self._var_ptrs[var] = ptr
        return ptr

    def get_static_field(self, field: JField) -> StaticFieldPtr:
        ptr = self._static_fields.get(field)
        if ptr is None:
            ptr = StaticFieldPtr(self._next_handle(), field)
            self._register(ptr)
            self._static_fields[field] = ptr
        return ptr

    def get_instance_field(self, base: AbstractObject, field: JField) -> InstanceFieldPtr:
        key = (base, field)
        ptr = self._instance_fields.get(key)
        if ptr is None:
            ptr = InstanceFieldPtr(self._next_handle(), base, field)
            self._register(ptr)
            self._instance_fields[key] = ptr
        return ptr

    def get_array_index(self, array: AbstractObject) -> ArrayIndexPtr:
        ptr = self._array_indexes.get(array)
        if ptr is None:
            ptr = ArrayIndexPtr(self._next_handle(), array)
            self._register(ptr)
            self._array_indexes[array] = ptr
        return ptr

    def find_var_ptr(self, var: Var) -> VarPtr | None:
        return self._var_ptrs.get(var)

    def find_static_field(self, field: JField) -> StaticFieldPtr | None:
        return self._static_fields.get(field)

    def find_instance_field(
        self, base: AbstractObject, field: JField
    ) -> InstanceFieldPtr | None:
        return self._instance_fields.get((base, field))

    def find_array_index(self, array: AbstractObject) -> ArrayIndexPtr | None:
        return self._array_indexes.get(array)

    def add_edge(self, source: Pointer, target: Pointer) -> bool:
        """Add ``source -> target``; True iff the edge was not there before."""
        succs = self._succs.setdefault(source.handle, {})
        if target.handle in succs:
            return False
        succs[target.handle] = None
        self._num_edges += 1
        return True

    def successors_of(self, pointer: Pointer) -> list[Pointer]:
        return [self._pointers[h] for h in self._succs.get(pointer.handle, ())]

    def has_edge(self, source: Pointer, target: Pointer) -> bool:
        return target.handle in self._succs.get(source.handle, ())

    def pointer(self, handle: int) -> Pointer:
        return self._pointers[handle]

    def pointers(self) -> list[Pointer]:
        return list(self._pointers)

    def var_pointers(self) -> list[VarPtr]:
        return list(self._var_ptrs.values())

    def static_field_pointers(self) -> list[StaticFieldPtr]:
        return list(self._static_fields.values())

    def instance_field_pointers(self) -> list[InstanceFieldPtr]:
        return list(self._instance_fields.values())

    def array_index_pointers(self) -> list[ArrayIndexPtr]:
        return list(self._array_indexes.values())

    def edges(self) -> Iterator[tuple[Pointer, Pointer]]:
        for source, succs in self._succs.items():
            for target in succs:
                yield self._pointers[source], self._pointers[target]

    @property
    def num_edges(self) -> int:
        return self._num_edges

    def __len__(self) -> int:
        return len(self._pointers)
