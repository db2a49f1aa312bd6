"""Cycle status transition functions.

Responsibilities:
  - Validate and apply every status change of a Cycle.
  - Enforce the minimum-gap and ordering rules for milestone and completion.

Inputs/Outputs:
  - Inputs: Cycle, proposed dates, Location for civil-day arithmetic.
  - Outputs: StatusTransition describing the applied change.

Invariants:
  - These functions are the only code that assigns Cycle.status.
  - Every check runs before the first field is written; a rejected call leaves
    the Cycle untouched.
  - Transitions must respect ALLOWED_TRANSITIONS.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from ..domain.enums import CycleStatus
from ..domain.errors import StateTransitionError, TemporalInvariantError
from ..domain.models import Cycle, Examination, Location, OnahPeriod, VoidInfo
from ..domain.transition_graph import ALLOWED_TRANSITIONS
from .metrics import civil_days_between, total_length
from .result import StatusTransition

FIXED_MINIMUM_GAP_DAYS = 7


def _require_transition(cycle: Cycle, target: CycleStatus) -> None:
    if target not in ALLOWED_TRANSITIONS[cycle.status]:
        raise StateTransitionError(
            f"Cycle {cycle.id} cannot move from {cycle.status.value} to {target.value}"
        )


def _require_aware(value: datetime, name: str) -> None:
    if value.tzinfo is None:
        raise TemporalInvariantError(f"{name} must be timezone-aware")


def begin_phase2(
    cycle: Cycle,
    milestone_date: datetime,
    minimum_gap_days: int,
    location: Location,
    fixed_minimum_gap_days: int = FIXED_MINIMUM_GAP_DAYS,
) -> StatusTransition:
    if cycle.status != CycleStatus.PHASE1:
        raise StateTransitionError(
            f"Milestone can only be recorded in {CycleStatus.PHASE1.value}, cycle {cycle.id} is {cycle.status.value}"
        )
    _require_transition(cycle, CycleStatus.PHASE2)
    _require_aware(milestone_date, "milestone_date")
    if milestone_date < cycle.onah_start:
        raise TemporalInvariantError("Milestone cannot be before the cycle's onah start")
    elapsed = civil_days_between(cycle.onah_start, milestone_date, location)
    if elapsed < minimum_gap_days:
        raise TemporalInvariantError(
            f"Milestone must be at least {minimum_gap_days} days after the onah start, got {elapsed}"
        )

    previous = cycle.status
    cycle.milestone_date = milestone_date
    cycle.second_milestone_start = milestone_date + timedelta(days=1)
    cycle.completion_date = cycle.second_milestone_start + timedelta(days=fixed_minimum_gap_days)
    cycle.status = CycleStatus.PHASE2
    return StatusTransition(cycle.id, previous, cycle.status, "milestone_recorded")


def complete(
    cycle: Cycle,
    completion_date: datetime,
    location: Location,
    fixed_minimum_gap_days: int = FIXED_MINIMUM_GAP_DAYS,
) -> StatusTransition:
    if cycle.status != CycleStatus.PHASE2 or cycle.second_milestone_start is None:
        raise StateTransitionError(
            f"Completion requires {CycleStatus.PHASE2.value}, cycle {cycle.id} is {cycle.status.value}"
        )
    _require_transition(cycle, CycleStatus.COMPLETED)
    _require_aware(completion_date, "completion_date")
    gap = civil_days_between(cycle.second_milestone_start, completion_date, location)
    if gap < fixed_minimum_gap_days:
        raise TemporalInvariantError(
            f"Completion must be at least {fixed_minimum_gap_days} days after the second milestone start, got {gap}"
        )

    previous = cycle.status
    cycle.completion_date = completion_date
    cycle.total_length = total_length(cycle, location)
    cycle.status = CycleStatus.COMPLETED
    return StatusTransition(cycle.id, previous, cycle.status, "completion_recorded")


def void(
    cycle: Cycle,
    new_onah: OnahPeriod,
    examination: Examination,
    voided_at: datetime,
) -> StatusTransition:
    if not cycle.is_active:
        raise StateTransitionError(f"Cycle {cycle.id} is {cycle.status.value} and cannot be voided")
    _require_transition(cycle, CycleStatus.PHASE1)

    previous = cycle.status
    cycle.void_info = VoidInfo(
        original_onah_start=cycle.onah_start,
        original_onah_end=cycle.onah_end,
        voided_at_milestone=cycle.milestone_date,
        voiding_examination_id=examination.id,
        timestamp=voided_at,
        notes=f"Voided by not_clean examination on day {examination.day_number}",
    )
    cycle.onah_start = new_onah.start
    cycle.onah_end = new_onah.end
    cycle.milestone_date = None
    cycle.second_milestone_start = None
    cycle.completion_date = None
    cycle.total_length = None
    cycle.status = CycleStatus.PHASE1
    return StatusTransition(cycle.id, previous, cycle.status, "voided")
