"""Port definitions for app-level dependencies.

Responsibilities:
  - Define interface contracts for cycle storage and subject profiles.
Must not:
  - Implement logic; interfaces only.
"""

from __future__ import annotations

from typing import Optional, Protocol

from onahtrack.core.domain.models import (
    Cycle,
    Examination,
    ForecastCacheEntry,
    StringencyFlags,
    SubjectProfile,
)


class CycleStore(Protocol):
    def load_cycles_for_subject(self, subject_id: str) -> list[Cycle]:
        ...

    def load_cycle(self, cycle_id: str) -> Optional[Cycle]:
        ...

    def load_examinations(self, cycle_id: str) -> list[Examination]:
        ...

    def save_cycle(self, cycle: Cycle) -> None:
        ...

    def save_examination(self, examination: Examination) -> None:
        ...

    def delete_cycle(self, cycle: Cycle) -> None:
        ...

    def load_forecast(self, cycle_id: str) -> Optional[ForecastCacheEntry]:
        ...

    def save_forecast(self, entry: ForecastCacheEntry) -> None:
        ...


class SubjectProfileProvider(Protocol):
    def get_profile(self, subject_id: str) -> Optional[SubjectProfile]:
        ...

    def save_flags(self, subject_id: str, flags: StringencyFlags) -> None:
        ...
