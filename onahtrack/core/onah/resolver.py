"""Onah time-range resolution.

Responsibilities:
  - Map (civil date, location, day/night) to the onah's exact start/end instants.
  - Classify an existing start/end pair as a day or night onah.

Inputs/Outputs:
  - Inputs: civil date, Location, AstronomyCalendar primitive.
  - Outputs: immutable OnahPeriod.

Invariants:
  - Pure: no state beyond the injected calendar; safe under concurrency.
  - classify(resolve(d, loc, True)) is True and classify(resolve(d, loc, False)) is False.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

from onahtrack.core.domain.models import Location, OnahPeriod

from .ports import AstronomyCalendar


def civil_date(instant: datetime, location: Location) -> date:
    return instant.astimezone(location.tz).date()


def sunday_based_weekday(day: date) -> int:
    return (day.weekday() + 1) % 7


class OnahResolver:
    def __init__(self, calendar: AstronomyCalendar) -> None:
        self._calendar = calendar

    @property
    def calendar(self) -> AstronomyCalendar:
        return self._calendar

    def resolve(self, day: date, location: Location, is_day_onah: bool) -> OnahPeriod:
        location.validate()
        if is_day_onah:
            start = self._calendar.sunrise(day, location)
            end = self._calendar.sunset(day, location)
        else:
            start = self._calendar.sunset(day, location)
            end = self._calendar.sunrise(day + timedelta(days=1), location)
        label = self._calendar.calendar_label(start, location)
        return OnahPeriod(
            start=start,
            end=end,
            calendar_label=str(label),
            weekday=sunday_based_weekday(day),
        )

    def classify(self, start: datetime, end: datetime, location: Location) -> bool:
        """True for a day onah: start and end fall on the same civil date."""
        return civil_date(start, location) == civil_date(end, location)
