"""Sunrise/sunset via the Swiss Ephemeris.

Responsibilities:
  - Compute the sunrise and sunset instants of a local civil date.

Invariants:
  - Returned instants are timezone-aware in the location's zone.
  - A civil date without the requested event (polar day/night) raises LocationError.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional

import swisseph as swe

from onahtrack.core.domain.errors import LocationError
from onahtrack.core.domain.models import Location

BACKEND_FLAGS = {
    "moseph": swe.FLG_MOSEPH,
    "swieph": swe.FLG_SWIEPH,
}


def _to_jd(moment: datetime) -> float:
    """Convert a timezone-aware datetime into Julian Day (UT)."""
    return moment.astimezone(timezone.utc).timestamp() / 86400.0 + 2440587.5


def _jd_to_datetime(jd: float) -> datetime:
    return datetime.fromtimestamp((jd - 2440587.5) * 86400.0, tz=timezone.utc)


class SwissEphemerisSun:
    def __init__(self, backend: str = "moseph", ephemeris_path: Optional[str] = None, elevation: float = 0.0) -> None:
        if backend not in BACKEND_FLAGS:
            raise ValueError(f"Unknown ephemeris backend: {backend!r}")
        self._flag = BACKEND_FLAGS[backend]
        self._elevation = elevation
        if ephemeris_path:
            swe.set_ephe_path(ephemeris_path)

    def _event(self, civil_date: date, location: Location, rsmi: int, name: str) -> datetime:
        location.validate()
        tz = location.tz
        start_of_day = datetime.combine(civil_date, time.min, tzinfo=tz)
        geopos = (location.longitude, location.latitude, self._elevation)
        try:
            result, times = swe.rise_trans(
                _to_jd(start_of_day), swe.SUN, rsmi | swe.BIT_DISC_CENTER, geopos, 0.0, 0.0, self._flag
            )
        except swe.Error as exc:
            raise LocationError(f"{name} could not be computed for {civil_date}: {exc}") from exc
        if result < 0 or not times:
            raise LocationError(f"No {name} on {civil_date} at ({location.latitude}, {location.longitude})")
        event = _jd_to_datetime(times[0]).astimezone(tz)
        # rise_trans searches forward; an event on a later date means none today.
        if event.date() != civil_date:
            raise LocationError(f"No {name} on {civil_date} at ({location.latitude}, {location.longitude})")
        return event

    def sunrise(self, civil_date: date, location: Location) -> datetime:
        return self._event(civil_date, location, swe.CALC_RISE, "sunrise")

    def sunset(self, civil_date: date, location: Location) -> datetime:
        return self._event(civil_date, location, swe.CALC_SET, "sunset")
