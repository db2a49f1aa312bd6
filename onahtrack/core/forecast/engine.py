"""Vest forecast engine.

Responsibilities:
  - Produce the monthly, interval and fixed-count forecasts for a cycle.
  - Expand them with the stringency variants enabled by the subject's flags.

Inputs/Outputs:
  - Inputs: Cycle, its chronological predecessors, Location, StringencyFlags.
  - Outputs: immutable Forecast.

Invariants:
  - Pure and idempotent: identical inputs give identical OnahPeriod instants.
  - Must not read or write persistence.
  - The fixed-count forecast is always present; the interval forecast needs a
    measured interval and at least one predecessor.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Optional, Sequence

from onahtrack.core.domain.enums import ForecastKind
from onahtrack.core.domain.models import Cycle, Forecast, Location, StringencyFlags
from onahtrack.core.onah.resolver import OnahResolver, civil_date

from .variants import BaseForecast, apply_variants

FIXED_COUNT_DAYS = 29


class ForecastEngine:
    def __init__(self, resolver: OnahResolver, fixed_count_days: int = FIXED_COUNT_DAYS) -> None:
        self._resolver = resolver
        self._fixed_count_days = fixed_count_days

    @property
    def resolver(self) -> OnahResolver:
        return self._resolver

    def forecast(
        self,
        cycle: Cycle,
        preceding_cycles: Sequence[Cycle],
        location: Location,
        flags: StringencyFlags,
    ) -> Forecast:
        location.validate()
        is_day = self._resolver.classify(cycle.onah_start, cycle.onah_end, location)
        start_day = civil_date(cycle.onah_start, location)

        monthly = self._monthly(cycle, location, is_day)
        interval = self._interval(cycle, preceding_cycles, location, is_day)
        fixed_day = start_day + timedelta(days=self._fixed_count_days)
        fixed_count = BaseForecast(
            kind=ForecastKind.FIXED_COUNT,
            civil_date=fixed_day,
            is_day_onah=is_day,
            period=self._resolver.resolve(fixed_day, location, is_day),
        )

        bases = {ForecastKind.MONTHLY: monthly, ForecastKind.FIXED_COUNT: fixed_count}
        if interval is not None:
            bases[ForecastKind.INTERVAL] = interval

        return Forecast(
            monthly=monthly.period,
            interval=interval.period if interval is not None else None,
            fixed_count=fixed_count.period,
            is_day_onah=is_day,
            interval_days=cycle.measured_interval if interval is not None else None,
            variants=apply_variants(self._resolver, bases, location, flags),
        )

    def _monthly(self, cycle: Cycle, location: Location, is_day: bool) -> BaseForecast:
        calendar = self._resolver.calendar
        label = calendar.calendar_label(cycle.onah_start, location)
        target = calendar.add_lunar_months(label, 1)
        day = calendar.to_civil_date(target)
        return BaseForecast(
            kind=ForecastKind.MONTHLY,
            civil_date=day,
            is_day_onah=is_day,
            period=self._resolver.resolve(day, location, is_day),
        )

    def _interval(
        self,
        cycle: Cycle,
        preceding_cycles: Sequence[Cycle],
        location: Location,
        is_day: bool,
    ) -> Optional[BaseForecast]:
        if cycle.measured_interval is None or not preceding_cycles:
            return None
        day = civil_date(cycle.onah_start, location) + timedelta(days=cycle.measured_interval)
        return BaseForecast(
            kind=ForecastKind.INTERVAL,
            civil_date=day,
            is_day_onah=is_day,
            period=self._resolver.resolve(day, location, is_day),
        )
