"""Cycle lifecycle manager.

Responsibilities:
  - Own each subject's ordered cycle chain and every mutation of it.
  - Drive the status state machine through core.lifecycle.transitions.
  - Keep measured intervals and cached forecasts consistent via the cascade.

Inputs/Outputs:
  - Inputs: CycleStore and SubjectProfileProvider ports, ForecastEngine.
  - Outputs: Cycles, Forecasts and cascade/examination outcomes.

Invariants:
  - Mutating operations hold the subject's lock for their whole duration.
  - Validation errors are raised before anything is written.
  - A cached forecast is served only while its revision and flags key match.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional, Union

from onahtrack.core.domain.enums import ExaminationResult, ForecastKind, TimeOfDay
from onahtrack.core.domain.errors import (
    NotFoundError,
    StateTransitionError,
    TemporalInvariantError,
    ValidationError,
)
from onahtrack.core.domain.models import (
    Cycle,
    Examination,
    Forecast,
    ForecastCacheEntry,
    OnahPeriod,
    StringencyFlags,
    SubjectProfile,
)
from onahtrack.core.forecast.engine import ForecastEngine
from onahtrack.core.lifecycle import transitions
from onahtrack.core.lifecycle.cascade import RecomputeStep, run_cascade
from onahtrack.core.lifecycle.chain import CycleChain
from onahtrack.core.lifecycle.metrics import (
    CycleStatistics,
    civil_days_between,
    compute_statistics,
    measured_interval,
)
from onahtrack.core.lifecycle.result import CascadeResult, ExaminationOutcome, StartOutcome
from onahtrack.core.onah.resolver import civil_date

from .locks import SubjectLockRegistry
from .ports import CycleStore, SubjectProfileProvider

logger = logging.getLogger(__name__)

LATE_MILESTONE_WARNING_DAYS = 30
_EPOCH = datetime(1, 1, 1, tzinfo=timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class UpcomingForecast:
    cycle_id: str
    kind: ForecastKind
    period: OnahPeriod


def _enum_field(enum_type, value, name: str):
    try:
        return enum_type(value)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_type)
        raise ValidationError(f"{name} must be one of: {allowed}") from exc


def _anchor_of(cycle: Cycle) -> datetime:
    # A voided cycle keeps its place in history relative to its original onah.
    if cycle.void_info is not None:
        return cycle.void_info.original_onah_start
    return cycle.onah_start


class CycleLifecycleManager:
    def __init__(
        self,
        store: CycleStore,
        profiles: SubjectProfileProvider,
        engine: ForecastEngine,
        locks: Optional[SubjectLockRegistry] = None,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_id,
        fixed_minimum_gap_days: int = transitions.FIXED_MINIMUM_GAP_DAYS,
    ) -> None:
        self._store = store
        self._profiles = profiles
        self._engine = engine
        self._resolver = engine.resolver
        self._locks = locks or SubjectLockRegistry()
        self._clock = clock
        self._id_factory = id_factory
        self._fixed_minimum_gap_days = fixed_minimum_gap_days

    # -- loading helpers

    def _profile(self, subject_id: str) -> SubjectProfile:
        profile = self._profiles.get_profile(subject_id)
        if profile is None:
            raise NotFoundError("subject", subject_id)
        profile.location.validate()
        return profile

    def _load_cycle(self, cycle_id: str) -> Cycle:
        cycle = self._store.load_cycle(cycle_id)
        if cycle is None:
            raise NotFoundError("cycle", cycle_id)
        return cycle

    def _load_chain(self, subject_id: str) -> CycleChain:
        return CycleChain(subject_id, self._store.load_cycles_for_subject(subject_id))

    def _touch(self, cycle: Cycle) -> None:
        cycle.revision += 1
        cycle.updated_at = self._clock()

    # -- derived state

    def _preceding_for(self, chain: CycleChain, cycle: Cycle) -> list[Cycle]:
        return chain.preceding(_anchor_of(cycle), exclude_id=cycle.id)

    def _interval_for(self, chain: CycleChain, cycle: Cycle, profile: SubjectProfile) -> Optional[int]:
        predecessor = chain.predecessor_before(_anchor_of(cycle), exclude_id=cycle.id)
        return measured_interval(cycle, predecessor, profile.location)

    def _compute_forecast(self, chain: CycleChain, cycle: Cycle, profile: SubjectProfile) -> ForecastCacheEntry:
        forecast = self._engine.forecast(
            cycle,
            self._preceding_for(chain, cycle),
            profile.location,
            profile.flags,
        )
        return ForecastCacheEntry(
            cycle_id=cycle.id,
            cycle_revision=cycle.revision,
            flags_key=profile.flags.key(),
            computed_at=self._clock(),
            forecast=forecast,
        )

    def _persist(self, cycle: Cycle, entry: Optional[ForecastCacheEntry]) -> None:
        self._store.save_cycle(cycle)
        if entry is not None:
            self._store.save_forecast(entry)

    def _recompute_step(self, chain: CycleChain, profile: SubjectProfile) -> RecomputeStep:
        def step(cycle: Cycle) -> None:
            cycle.measured_interval = self._interval_for(chain, cycle, profile)
            self._touch(cycle)
            entry = self._compute_forecast(chain, cycle, profile)
            self._persist(cycle, entry)

        return step

    def _forecast_step(self, chain: CycleChain, profile: SubjectProfile) -> RecomputeStep:
        def step(cycle: Cycle) -> None:
            self._store.save_forecast(self._compute_forecast(chain, cycle, profile))

        return step

    # -- operations

    def start_cycle(
        self,
        subject_id: str,
        onah_start: datetime,
        onah_end: datetime,
        notes: str = "",
    ) -> Cycle:
        return self.open_cycle(subject_id, onah_start, onah_end, notes=notes).cycle

    def open_cycle(
        self,
        subject_id: str,
        onah_start: datetime,
        onah_end: datetime,
        notes: str = "",
    ) -> StartOutcome:
        """Start a cycle and report the cascade over any later cycles it precedes."""
        with self._locks.hold(subject_id):
            profile = self._profile(subject_id)
            if onah_start.tzinfo is None or onah_end.tzinfo is None:
                raise TemporalInvariantError("onah_start and onah_end must be timezone-aware")
            if onah_end <= onah_start:
                raise TemporalInvariantError("onah_end must be after onah_start")
            now = self._clock()
            if onah_start > now:
                raise TemporalInvariantError("Cycle cannot start in the future")

            chain = self._load_chain(subject_id)
            existing = chain.overlapping(onah_start, onah_end)
            if existing is not None:
                raise TemporalInvariantError(
                    f"A cycle already exists for this time (cycle {existing.id} started {existing.onah_start.isoformat()})"
                )
            active = chain.active()
            if active is not None:
                raise StateTransitionError(f"Subject {subject_id} already has an active cycle {active.id}")

            cycle = Cycle(
                id=self._id_factory(),
                subject_id=subject_id,
                onah_start=onah_start,
                onah_end=onah_end,
                notes=notes,
                created_at=now,
                updated_at=now,
            )
            chain.add(cycle)
            cycle.measured_interval = self._interval_for(chain, cycle, profile)
            entry = self._compute_forecast(chain, cycle, profile)
            self._persist(cycle, entry)

            logger.info(
                "cycle_started",
                extra={
                    "subject_id": subject_id,
                    "cycle_id": cycle.id,
                    "measured_interval": cycle.measured_interval,
                    "has_preceding": cycle.measured_interval is not None,
                },
            )

            if not chain.after(cycle.onah_start, exclude_ids=[cycle.id]):
                return StartOutcome(cycle=cycle)
            cascade = run_cascade(chain, cycle.onah_start, self._recompute_step(chain, profile), exclude_ids=[cycle.id])
            return StartOutcome(
                cycle=cycle,
                cascaded=cascade.cascaded,
                cascade_failures=cascade.cascade_failures,
            )

    def start_cycle_on(
        self,
        subject_id: str,
        day: date,
        is_day_onah: bool,
        notes: str = "",
    ) -> Cycle:
        return self.open_cycle_on(subject_id, day, is_day_onah, notes=notes).cycle

    def open_cycle_on(
        self,
        subject_id: str,
        day: date,
        is_day_onah: bool,
        notes: str = "",
    ) -> StartOutcome:
        profile = self._profile(subject_id)
        onah = self._resolver.resolve(day, profile.location, is_day_onah)
        return self.open_cycle(subject_id, onah.start, onah.end, notes=notes)

    def record_milestone(self, cycle_id: str, milestone_date: datetime) -> Cycle:
        subject_id = self._load_cycle(cycle_id).subject_id
        with self._locks.hold(subject_id):
            profile = self._profile(subject_id)
            chain = self._load_chain(subject_id)
            cycle = chain.get(cycle_id)
            transition = transitions.begin_phase2(
                cycle,
                milestone_date,
                profile.minimum_gap_days,
                profile.location,
                self._fixed_minimum_gap_days,
            )
            elapsed = civil_days_between(cycle.onah_start, milestone_date, profile.location)
            if elapsed > LATE_MILESTONE_WARNING_DAYS:
                logger.warning(
                    "milestone unusually late",
                    extra={"subject_id": subject_id, "cycle_id": cycle_id, "elapsed_days": elapsed},
                )
            self._touch(cycle)
            self._store.save_cycle(cycle)
            logger.info(
                "cycle_transition",
                extra={
                    "cycle_id": cycle_id,
                    "from_status": transition.from_status.value,
                    "to_status": transition.to_status.value,
                },
            )
            return cycle

    def record_completion(self, cycle_id: str, completion_date: datetime) -> Cycle:
        subject_id = self._load_cycle(cycle_id).subject_id
        with self._locks.hold(subject_id):
            profile = self._profile(subject_id)
            chain = self._load_chain(subject_id)
            cycle = chain.get(cycle_id)
            transition = transitions.complete(
                cycle,
                completion_date,
                profile.location,
                self._fixed_minimum_gap_days,
            )
            cycle.measured_interval = self._interval_for(chain, cycle, profile)
            self._touch(cycle)
            entry = self._compute_forecast(chain, cycle, profile)
            self._persist(cycle, entry)
            logger.info(
                "cycle_transition",
                extra={
                    "cycle_id": cycle_id,
                    "from_status": transition.from_status.value,
                    "to_status": transition.to_status.value,
                    "total_length": cycle.total_length,
                },
            )
            return cycle

    def record_examination(
        self,
        cycle_id: str,
        examined_at: datetime,
        day_number: int,
        time_of_day: Union[TimeOfDay, str],
        result: Union[ExaminationResult, str],
        notes: str = "",
    ) -> ExaminationOutcome:
        subject_id = self._load_cycle(cycle_id).subject_id
        with self._locks.hold(subject_id):
            profile = self._profile(subject_id)
            chain = self._load_chain(subject_id)
            cycle = chain.get(cycle_id)
            examination = Examination(
                id=self._id_factory(),
                cycle_id=cycle_id,
                examined_at=examined_at,
                day_number=day_number,
                time_of_day=_enum_field(TimeOfDay, time_of_day, "time_of_day"),
                result=_enum_field(ExaminationResult, result, "result"),
                notes=notes,
            )
            examination.validate()
            if examined_at < cycle.onah_start:
                raise TemporalInvariantError("Examination cannot be before the cycle's onah start")
            if cycle.second_milestone_start is not None and cycle.completion_date is not None:
                if not cycle.second_milestone_start <= examined_at <= cycle.completion_date:
                    raise TemporalInvariantError(
                        "Examination must fall within the second phase "
                        f"({cycle.second_milestone_start.isoformat()} - {cycle.completion_date.isoformat()})"
                    )

            voids = examination.result == ExaminationResult.NOT_CLEAN and cycle.is_active
            new_onah: Optional[OnahPeriod] = None
            if voids:
                is_day = self._resolver.classify(cycle.onah_start, cycle.onah_end, profile.location)
                new_onah = self._resolver.resolve(civil_date(examined_at, profile.location), profile.location, is_day)

            self._store.save_examination(examination)
            if new_onah is None:
                if examination.result == ExaminationResult.NOT_CLEAN:
                    logger.info(
                        "not_clean examination on completed cycle; cycle left unchanged",
                        extra={"cycle_id": cycle_id, "examination_id": examination.id},
                    )
                return ExaminationOutcome(examination=examination, voided=False)

            original_start = cycle.onah_start
            transition = transitions.void(cycle, new_onah, examination, self._clock())
            chain.reorder()
            cycle.measured_interval = self._interval_for(chain, cycle, profile)
            self._touch(cycle)
            entry = self._compute_forecast(chain, cycle, profile)
            self._persist(cycle, entry)
            logger.info(
                "cycle_voided",
                extra={
                    "subject_id": subject_id,
                    "cycle_id": cycle_id,
                    "examination_id": examination.id,
                    "original_onah_start": original_start.isoformat(),
                    "new_onah_start": cycle.onah_start.isoformat(),
                },
            )

            cascade = run_cascade(
                chain,
                original_start,
                self._recompute_step(chain, profile),
                exclude_ids=[cycle.id],
            )
            return ExaminationOutcome(
                examination=examination,
                voided=True,
                cascaded=cascade.cascaded,
                cascade_failures=cascade.cascade_failures,
                transition=transition,
            )

    def delete_cycle(self, cycle_id: str) -> CascadeResult:
        subject_id = self._load_cycle(cycle_id).subject_id
        with self._locks.hold(subject_id):
            profile = self._profile(subject_id)
            chain = self._load_chain(subject_id)
            cycle = chain.get(cycle_id)
            anchor = min(cycle.onah_start, _anchor_of(cycle))
            self._store.delete_cycle(cycle)
            chain.remove(cycle_id)
            logger.info(
                "cycle_deleted",
                extra={
                    "subject_id": subject_id,
                    "cycle_id": cycle_id,
                    "successors": len(chain.after(anchor)),
                },
            )
            return run_cascade(chain, anchor, self._recompute_step(chain, profile))

    def recalculate_all_for_subject(self, subject_id: str, new_flags: StringencyFlags) -> CascadeResult:
        with self._locks.hold(subject_id):
            profile = self._profile(subject_id)
            self._profiles.save_flags(subject_id, new_flags)
            profile = replace(profile, flags=new_flags)
            chain = self._load_chain(subject_id)
            return run_cascade(chain, _EPOCH, self._forecast_step(chain, profile))

    # -- queries

    def get_cycle(self, cycle_id: str) -> Cycle:
        return self._load_cycle(cycle_id)

    def get_examinations(self, cycle_id: str) -> list[Examination]:
        self._load_cycle(cycle_id)
        return self._store.load_examinations(cycle_id)

    def list_cycles(self, subject_id: str) -> list[Cycle]:
        return list(self._load_chain(subject_id))

    def get_active_cycle(self, subject_id: str) -> Optional[Cycle]:
        return self._load_chain(subject_id).active()

    def get_cycles_in_range(self, subject_id: str, start: datetime, end: datetime) -> list[Cycle]:
        if end < start:
            raise TemporalInvariantError("Range end must not be before range start")
        return self._load_chain(subject_id).in_range(start, end)

    def _cached_or_fresh(self, chain: CycleChain, cycle: Cycle, profile: SubjectProfile) -> Forecast:
        entry = self._store.load_forecast(cycle.id)
        if entry is not None and entry.is_fresh_for(cycle, profile.flags):
            return entry.forecast
        entry = self._compute_forecast(chain, cycle, profile)
        self._store.save_forecast(entry)
        return entry.forecast

    def get_forecast(self, cycle_id: str) -> Forecast:
        subject_id = self._load_cycle(cycle_id).subject_id
        with self._locks.hold(subject_id):
            profile = self._profile(subject_id)
            chain = self._load_chain(subject_id)
            return self._cached_or_fresh(chain, chain.get(cycle_id), profile)

    def get_upcoming_forecasts(
        self,
        subject_id: str,
        now: Optional[datetime] = None,
        days_ahead: int = 30,
    ) -> list[UpcomingForecast]:
        window_start = now or self._clock()
        window_end = window_start + timedelta(days=days_ahead)
        upcoming: list[UpcomingForecast] = []
        with self._locks.hold(subject_id):
            profile = self._profile(subject_id)
            chain = self._load_chain(subject_id)
            for cycle in chain:
                forecast = self._cached_or_fresh(chain, cycle, profile)
                bases = (
                    (ForecastKind.MONTHLY, forecast.monthly),
                    (ForecastKind.INTERVAL, forecast.interval),
                    (ForecastKind.FIXED_COUNT, forecast.fixed_count),
                )
                for kind, period in bases:
                    if period is not None and window_start <= period.start <= window_end:
                        upcoming.append(UpcomingForecast(cycle_id=cycle.id, kind=kind, period=period))
        upcoming.sort(key=lambda item: item.period.start)
        return upcoming

    def get_cycle_statistics(self, subject_id: str) -> CycleStatistics:
        return compute_statistics(list(self._load_chain(subject_id)))
