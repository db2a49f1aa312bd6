"""In-memory ordered view of one subject's cycles.

Responsibilities:
  - Keep a subject's cycles indexed by id and ordered by onah start.
  - Answer predecessor/successor, overlap and range queries without storage
    round-trips.

Invariants:
  - Order is ascending by (onah_start, id) and is restored by reorder() after
    any onah_start change.
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from datetime import datetime
from typing import Iterable, Iterator, Optional

from ..domain.errors import NotFoundError
from ..domain.models import Cycle


def _order_key(cycle: Cycle) -> tuple[datetime, str]:
    return (cycle.onah_start, cycle.id)


class CycleChain:
    def __init__(self, subject_id: str, cycles: Iterable[Cycle] = ()) -> None:
        self.subject_id = subject_id
        self._by_id: dict[str, Cycle] = {}
        self._ordered: list[Cycle] = []
        for cycle in cycles:
            self._by_id[cycle.id] = cycle
        self.reorder()

    def __iter__(self) -> Iterator[Cycle]:
        return iter(list(self._ordered))

    def __len__(self) -> int:
        return len(self._ordered)

    def __contains__(self, cycle_id: object) -> bool:
        return cycle_id in self._by_id

    def reorder(self) -> None:
        self._ordered = sorted(self._by_id.values(), key=_order_key)

    def _starts(self) -> list[datetime]:
        return [c.onah_start for c in self._ordered]

    def get(self, cycle_id: str) -> Cycle:
        cycle = self._by_id.get(cycle_id)
        if cycle is None:
            raise NotFoundError("cycle", cycle_id)
        return cycle

    def add(self, cycle: Cycle) -> None:
        self._by_id[cycle.id] = cycle
        self.reorder()

    def remove(self, cycle_id: str) -> Cycle:
        cycle = self.get(cycle_id)
        del self._by_id[cycle_id]
        self.reorder()
        return cycle

    def preceding(self, instant: datetime, exclude_id: Optional[str] = None) -> list[Cycle]:
        """Cycles whose onah starts strictly before instant, ascending."""
        idx = bisect_left(self._starts(), instant)
        return [c for c in self._ordered[:idx] if c.id != exclude_id]

    def predecessor_before(self, instant: datetime, exclude_id: Optional[str] = None) -> Optional[Cycle]:
        before = self.preceding(instant, exclude_id=exclude_id)
        return before[-1] if before else None

    def predecessor_of(self, cycle: Cycle) -> Optional[Cycle]:
        return self.predecessor_before(cycle.onah_start, exclude_id=cycle.id)

    def after(self, anchor: datetime, exclude_ids: Iterable[str] = ()) -> list[Cycle]:
        """Cycles whose onah starts strictly after anchor, ascending."""
        excluded = set(exclude_ids)
        idx = bisect_right(self._starts(), anchor)
        return [c for c in self._ordered[idx:] if c.id not in excluded]

    def in_range(self, start: datetime, end: datetime) -> list[Cycle]:
        starts = self._starts()
        return self._ordered[bisect_left(starts, start) : bisect_right(starts, end)]

    def active(self) -> Optional[Cycle]:
        active = [c for c in self._ordered if c.is_active]
        return active[-1] if active else None

    def overlapping(self, start: datetime, end: datetime) -> Optional[Cycle]:
        for existing in self._ordered:
            starts_inside = existing.onah_start <= start <= existing.onah_end
            ends_inside = existing.onah_start <= end <= existing.onah_end
            contains = start <= existing.onah_start and existing.onah_end <= end
            if starts_inside or ends_inside or contains:
                return existing
        return None
