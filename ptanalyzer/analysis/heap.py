from __future__ import annotations

from dataclasses import dataclass, field

from ..intermediate_representation.ast import New


@dataclass(frozen=True, eq=False)
class AbstractObject:
    """All runtime objects allocated by one ``new`` site.

    Objects are only created by :class:`HeapModel`, once per site, so identity
    equality is structural equality on the allocation site.
    """

    id: int
    type: str
    site: New = field(repr=False)

    @property
    def is_array(self) -> bool:
        return self.type.endswith("[]")

    def __str__(self) -> str:
        return f"NewObj{{{self.site.location()} new {self.type}}}"

    def __lt__(self, other: AbstractObject) -> bool:
        return self.id < other.id


class HeapModel:
    """Allocation-site abstraction: one :class:`AbstractObject` per ``New``."""

    def __init__(self) -> None:
        self._objects: dict[New, AbstractObject] = {}

    def get_obj(self, site: New) -> AbstractObject:
        obj = self._objects.get(site)
        if obj is None:
            obj = AbstractObject(len(self._objects), site.type, site)
            self._objects[site] = obj
        return obj

    def objects(self) -> list[AbstractObject]:
        return list(self._objects.values())

    def __len__(self) -> int:
        return len(self._objects)
