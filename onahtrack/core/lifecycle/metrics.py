"""Cycle measurements and statistics.

Responsibilities:
  - Compute measured interval and total length in civil days.
  - Summarize a subject's history (mean/median/min/max).

Invariants:
  - Day counts are differences of civil dates in the subject's timezone, so
    daily drift of sunrise/sunset never changes the count.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

import numpy as np

from ..domain.enums import CycleStatus
from ..domain.models import Cycle, Location
from ..onah.resolver import civil_date


def civil_days_between(earlier: datetime, later: datetime, location: Location) -> int:
    return (civil_date(later, location) - civil_date(earlier, location)).days


def measured_interval(cycle: Cycle, predecessor: Optional[Cycle], location: Location) -> Optional[int]:
    if predecessor is None:
        return None
    return civil_days_between(predecessor.onah_start, cycle.onah_start, location)


def total_length(cycle: Cycle, location: Location) -> Optional[int]:
    if cycle.completion_date is None:
        return None
    return civil_days_between(cycle.onah_start, cycle.completion_date, location)


@dataclass(frozen=True)
class SeriesSummary:
    count: int
    mean: Optional[float]
    median: Optional[float]
    minimum: Optional[int]
    maximum: Optional[int]


@dataclass(frozen=True)
class CycleStatistics:
    cycle_count: int
    completed_count: int
    voided_count: int
    intervals: SeriesSummary
    lengths: SeriesSummary


def summarize(values: Sequence[int]) -> SeriesSummary:
    if not values:
        return SeriesSummary(count=0, mean=None, median=None, minimum=None, maximum=None)
    arr = np.asarray(values, dtype=float)
    return SeriesSummary(
        count=int(arr.size),
        mean=round(float(np.mean(arr)), 2),
        median=float(np.median(arr)),
        minimum=int(np.min(arr)),
        maximum=int(np.max(arr)),
    )


def compute_statistics(cycles: Sequence[Cycle]) -> CycleStatistics:
    intervals = [c.measured_interval for c in cycles if c.measured_interval is not None]
    lengths = [c.total_length for c in cycles if c.total_length is not None]
    return CycleStatistics(
        cycle_count=len(cycles),
        completed_count=sum(1 for c in cycles if c.status == CycleStatus.COMPLETED),
        voided_count=sum(1 for c in cycles if c.is_voided),
        intervals=summarize(intervals),
        lengths=summarize(lengths),
    )
