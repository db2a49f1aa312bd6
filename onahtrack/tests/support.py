"""Deterministic fixtures shared by the test modules."""

from __future__ import annotations

from datetime import date, datetime, time, timezone

from onahtrack.core.domain.models import Location

JERUSALEM = Location(latitude=31.7683, longitude=35.2137, timezone_id="Asia/Jerusalem")
SUBJECT = "subject-1"
NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class FixedSun:
    """Sunrise 06:00 and sunset 18:00 local on every date."""

    def sunrise(self, civil_date: date, location: Location) -> datetime:
        return datetime.combine(civil_date, time(6, 0), tzinfo=location.tz)

    def sunset(self, civil_date: date, location: Location) -> datetime:
        return datetime.combine(civil_date, time(18, 0), tzinfo=location.tz)


def local(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=JERUSALEM.tz)
