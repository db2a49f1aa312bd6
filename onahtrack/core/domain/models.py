"""Domain models for onah periods, cycles, examinations and forecasts.

Responsibilities:
  - Define value types (Location, StringencyFlags, OnahPeriod, LunarDate).
  - Define the Cycle and Examination entities persisted by the storage port.
  - Define the derived Forecast and its cache entry.

Invariants:
  - Value types are immutable.
  - Cycle.status is changed only by core.lifecycle.transitions.
  - All instants are timezone-aware.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .enums import ACTIVE_STATUSES, CycleStatus, ExaminationResult, TimeOfDay
from .errors import LocationError, TemporalInvariantError, ValidationError


@lru_cache(maxsize=256)
def _zone(timezone_id: str) -> ZoneInfo:
    try:
        return ZoneInfo(timezone_id)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise LocationError(f"Unknown timezone: {timezone_id!r}") from exc


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    timezone_id: str

    def validate(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise LocationError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise LocationError(f"longitude out of range: {self.longitude}")
        if not self.timezone_id:
            raise LocationError("timezone_id must be non-empty")
        _zone(self.timezone_id)

    @property
    def tz(self) -> ZoneInfo:
        return _zone(self.timezone_id)


@dataclass(frozen=True)
class StringencyFlags:
    preceding_onah: bool = False
    opposite_onah: bool = False
    extra_day: bool = False

    def key(self) -> str:
        return "".join("1" if flag else "0" for flag in (self.preceding_onah, self.opposite_onah, self.extra_day))


@dataclass(frozen=True)
class LunarDate:
    year: int
    month: int
    day: int
    month_name: str

    def __str__(self) -> str:
        return f"{self.day} {self.month_name} {self.year}"


@dataclass(frozen=True)
class OnahPeriod:
    start: datetime
    end: datetime
    calendar_label: str
    # Sunday=0 .. Saturday=6, of the civil date the onah was resolved for.
    weekday: int


@dataclass
class VoidInfo:
    original_onah_start: datetime
    original_onah_end: datetime
    voided_at_milestone: Optional[datetime]
    voiding_examination_id: str
    timestamp: datetime
    notes: str = ""


@dataclass
class Cycle:
    id: str
    subject_id: str
    onah_start: datetime
    onah_end: datetime
    status: CycleStatus = CycleStatus.PHASE1
    milestone_date: Optional[datetime] = None
    second_milestone_start: Optional[datetime] = None
    completion_date: Optional[datetime] = None
    measured_interval: Optional[int] = None
    total_length: Optional[int] = None
    void_info: Optional[VoidInfo] = None
    revision: int = 0
    notes: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_voided(self) -> bool:
        return self.void_info is not None


@dataclass
class Examination:
    id: str
    cycle_id: str
    examined_at: datetime
    day_number: int
    time_of_day: TimeOfDay
    result: ExaminationResult
    notes: str = ""

    def validate(self) -> None:
        if not 1 <= self.day_number <= 7:
            raise ValidationError("day_number must be within 1..7")
        if self.examined_at.tzinfo is None:
            raise TemporalInvariantError("examined_at must be timezone-aware")


@dataclass(frozen=True)
class Forecast:
    monthly: OnahPeriod
    interval: Optional[OnahPeriod]
    fixed_count: OnahPeriod
    is_day_onah: bool
    interval_days: Optional[int] = None
    variants: dict[str, OnahPeriod] = field(default_factory=dict)


@dataclass(frozen=True)
class ForecastCacheEntry:
    cycle_id: str
    cycle_revision: int
    flags_key: str
    computed_at: datetime
    forecast: Forecast

    def is_fresh_for(self, cycle: Cycle, flags: StringencyFlags) -> bool:
        return self.cycle_revision == cycle.revision and self.flags_key == flags.key()


@dataclass(frozen=True)
class SubjectProfile:
    subject_id: str
    location: Location
    flags: StringencyFlags = StringencyFlags()
    minimum_gap_days: int = 5
