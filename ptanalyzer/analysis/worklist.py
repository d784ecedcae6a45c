from __future__ import annotations

from collections import deque
from dataclasses import dataclass

from .pointer_flow import Pointer, PointsToSet


@dataclass
class Entry:
    pointer: Pointer
    points_to: PointsToSet


class WorkList:
    """FIFO of pending ``(pointer, delta)`` propagations.

    The same pointer may be queued many times; each entry is processed on its
    own and merged into the pointer's set by the solver.
    """

    def __init__(self) -> None:
        self._entries: deque[Entry] = deque()

    def push(self, pointer: Pointer, points_to: PointsToSet) -> None:
        self._entries.append(Entry(pointer, points_to.copy()))

    def pop(self) -> Entry | None:
        if not self._entries:
            return None
        return self._entries.popleft()

    def is_empty(self) -> bool:
        return not self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)
