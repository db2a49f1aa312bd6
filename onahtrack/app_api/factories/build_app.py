"""Construct a fully wired lifecycle manager.

Responsibilities:
  - Assemble the astronomy calendar, forecast engine and SQLite ports from config.
Must not:
  - Implement lifecycle or forecast logic; composition only.
"""

from __future__ import annotations

import sqlite3
import threading
from dataclasses import dataclass
from typing import Optional

from onahtrack.app_api.facade import CycleLifecycleManager
from onahtrack.app_api.locks import SubjectLockRegistry
from onahtrack.config import EngineConfig
from onahtrack.core.forecast.engine import ForecastEngine
from onahtrack.core.onah.resolver import OnahResolver
from onahtrack.infra.astronomy.calendar import HebrewSolarCalendar, SunTimes
from onahtrack.infra.astronomy.sun import SwissEphemerisSun
from onahtrack.infra.sqlite.store import SQLiteCycleStore, SQLiteSubjectProfileProvider


@dataclass(frozen=True)
class OnahTrackApp:
    manager: CycleLifecycleManager
    profiles: SQLiteSubjectProfileProvider
    store: SQLiteCycleStore


def build_onahtrack_app(
    conn: sqlite3.Connection,
    config: EngineConfig,
    sun: Optional[SunTimes] = None,
    locks: Optional[SubjectLockRegistry] = None,
) -> OnahTrackApp:
    """
    Composition root: build and wire all runtime components and return the
    lifecycle manager together with the ports it was built on.
    """
    if sun is None:
        sun = SwissEphemerisSun(backend=config.ephemeris_backend, ephemeris_path=config.ephemeris_path)
    resolver = OnahResolver(HebrewSolarCalendar(sun))
    engine = ForecastEngine(resolver, fixed_count_days=config.fixed_count_days)
    conn_lock = threading.RLock()
    store = SQLiteCycleStore(conn, lock=conn_lock)
    profiles = SQLiteSubjectProfileProvider(conn, lock=conn_lock)
    manager = CycleLifecycleManager(
        store=store,
        profiles=profiles,
        engine=engine,
        locks=locks,
        fixed_minimum_gap_days=config.fixed_minimum_gap_days,
    )
    return OnahTrackApp(manager=manager, profiles=profiles, store=store)
