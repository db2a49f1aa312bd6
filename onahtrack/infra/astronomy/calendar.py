"""Concrete AstronomyCalendar: a sun-times source plus the Hebrew calendar.

Responsibilities:
  - Delegate sunrise/sunset to the injected sun-times source.
  - Label instants with the Hebrew date, which begins at local sunset.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Protocol

from onahtrack.core.domain.errors import TemporalInvariantError
from onahtrack.core.domain.models import Location, LunarDate

from . import hebrew


class SunTimes(Protocol):
    def sunrise(self, civil_date: date, location: Location) -> datetime:
        ...

    def sunset(self, civil_date: date, location: Location) -> datetime:
        ...


class HebrewSolarCalendar:
    def __init__(self, sun: SunTimes) -> None:
        self._sun = sun

    def sunrise(self, civil_date: date, location: Location) -> datetime:
        return self._sun.sunrise(civil_date, location)

    def sunset(self, civil_date: date, location: Location) -> datetime:
        return self._sun.sunset(civil_date, location)

    def calendar_label(self, instant: datetime, location: Location) -> LunarDate:
        if instant.tzinfo is None:
            raise TemporalInvariantError("instant must be timezone-aware")
        local = instant.astimezone(location.tz)
        day = local.date()
        if local >= self.sunset(day, location):
            day = day + timedelta(days=1)
        return hebrew.from_civil(day)

    def add_lunar_months(self, label: LunarDate, months: int) -> LunarDate:
        return hebrew.add_months(label, months)

    def to_civil_date(self, label: LunarDate) -> date:
        return hebrew.to_civil(label)
