"""Port for the astronomy/lunar-calendar primitive.

Responsibilities:
  - Define the narrow interface the resolver and forecast engine consume.
Must not:
  - Implement logic; interfaces only.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Protocol

from onahtrack.core.domain.models import Location, LunarDate


class AstronomyCalendar(Protocol):
    def sunrise(self, civil_date: date, location: Location) -> datetime:
        ...

    def sunset(self, civil_date: date, location: Location) -> datetime:
        ...

    def calendar_label(self, instant: datetime, location: Location) -> LunarDate:
        ...

    def add_lunar_months(self, label: LunarDate, months: int) -> LunarDate:
        ...

    def to_civil_date(self, label: LunarDate) -> date:
        ...
