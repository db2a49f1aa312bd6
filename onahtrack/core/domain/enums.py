"""Domain enums for the cycle state machine and examinations.

Responsibilities:
  - Define CycleStatus and examination identifiers persisted in storage.
  - Define the closed set of forecast variant keys.

Invariants:
  - Enum values must remain stable for persistence and audits.
"""

from __future__ import annotations

from enum import Enum


class CycleStatus(Enum):
    PHASE1 = "phase1"
    PHASE2 = "phase2"
    COMPLETED = "completed"


ACTIVE_STATUSES: frozenset[CycleStatus] = frozenset({CycleStatus.PHASE1, CycleStatus.PHASE2})


class TimeOfDay(Enum):
    MORNING = "morning"
    EVENING = "evening"
    BOTH = "both"


class ExaminationResult(Enum):
    CLEAN = "clean"
    QUESTIONABLE = "questionable"
    NOT_CLEAN = "not_clean"


class ForecastKind(Enum):
    MONTHLY = "monthly"
    INTERVAL = "interval"
    FIXED_COUNT = "fixedCount"


# Value is the persisted/serialized variant key.
class VariantKey(Enum):
    MONTHLY_PRECEDING_ONAH = "monthly.precedingOnah"
    INTERVAL_PRECEDING_ONAH = "interval.precedingOnah"
    FIXED_COUNT_PRECEDING_ONAH = "fixedCount.precedingOnah"
    FIXED_COUNT_OPPOSITE_ONAH = "fixedCount.oppositeOnah"
    FIXED_COUNT_EXTRA_DAY = "fixedCount.extraDay"
