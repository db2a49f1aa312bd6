"""SQLite-backed storage collaborator and subject profile provider.

Responsibilities:
  - Implement the CycleStore and SubjectProfileProvider ports over the repos.
  - Commit after every call; each call is atomic on its own.
  - Serialize use of the shared connection across threads.

Must not:
  - Order cascades or recompute derived fields; the lifecycle manager does.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import datetime, timezone
from typing import Optional

from onahtrack.core.domain.errors import NotFoundError, ValidationError
from onahtrack.core.domain.models import (
    Cycle,
    Examination,
    ForecastCacheEntry,
    StringencyFlags,
    SubjectProfile,
)

from .repos.cycle_repo import CycleRepo
from .repos.examination_repo import ExaminationRepo
from .repos.forecast_cache_repo import ForecastCacheRepo
from .repos.subject_repo import SubjectRepo

logger = logging.getLogger(__name__)


class SQLiteCycleStore:
    """
    Ports over one connection. Pass the same ``lock`` to every object that
    shares ``conn`` so that one caller's transaction is never committed or
    rolled back by another thread.
    """

    def __init__(self, conn: sqlite3.Connection, lock: Optional[threading.RLock] = None) -> None:
        self._conn = conn
        self._lock = lock or threading.RLock()
        self._cycles = CycleRepo(conn)
        self._examinations = ExaminationRepo(conn)
        self._forecasts = ForecastCacheRepo(conn)

    def load_cycles_for_subject(self, subject_id: str) -> list[Cycle]:
        with self._lock:
            return self._cycles.list_for_subject(subject_id)

    def load_cycle(self, cycle_id: str) -> Optional[Cycle]:
        with self._lock:
            return self._cycles.get(cycle_id)

    def load_examinations(self, cycle_id: str) -> list[Examination]:
        with self._lock:
            return self._examinations.list_for_cycle(cycle_id)

    def save_cycle(self, cycle: Cycle) -> None:
        with self._lock, self._conn:
            self._cycles.upsert(cycle)

    def save_examination(self, examination: Examination) -> None:
        with self._lock, self._conn:
            self._examinations.insert(examination)

    def delete_cycle(self, cycle: Cycle) -> None:
        with self._lock, self._conn:
            removed = self._examinations.delete_for_cycle(cycle.id)
            self._forecasts.delete(cycle.id)
            self._cycles.delete(cycle.id)
        logger.debug(
            "cycle rows deleted",
            extra={"cycle_id": cycle.id, "examinations_deleted": removed},
        )

    def load_forecast(self, cycle_id: str) -> Optional[ForecastCacheEntry]:
        with self._lock:
            return self._forecasts.get(cycle_id)

    def save_forecast(self, entry: ForecastCacheEntry) -> None:
        with self._lock, self._conn:
            self._forecasts.upsert(entry)


class SQLiteSubjectProfileProvider:
    def __init__(self, conn: sqlite3.Connection, lock: Optional[threading.RLock] = None) -> None:
        self._conn = conn
        self._lock = lock or threading.RLock()
        self._subjects = SubjectRepo(conn)

    def add_subject(self, profile: SubjectProfile, created_at: Optional[datetime] = None) -> None:
        profile.location.validate()
        if not 4 <= profile.minimum_gap_days <= 10:
            raise ValidationError("minimum_gap_days must be within [4, 10]")
        with self._lock, self._conn:
            self._subjects.upsert(profile, created_at or datetime.now(timezone.utc))
        logger.info("subject_saved", extra={"subject_id": profile.subject_id})

    def get_profile(self, subject_id: str) -> Optional[SubjectProfile]:
        with self._lock:
            return self._subjects.get(subject_id)

    def save_flags(self, subject_id: str, flags: StringencyFlags) -> None:
        with self._lock, self._conn:
            updated = self._subjects.update_flags(subject_id, flags)
        if updated == 0:
            raise NotFoundError("subject", subject_id)
