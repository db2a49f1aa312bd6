from __future__ import annotations

import itertools
import sqlite3
import threading
from typing import Iterator

import pytest

from onahtrack.app_api.facade import CycleLifecycleManager
from onahtrack.core.domain.models import StringencyFlags, SubjectProfile
from onahtrack.core.forecast.engine import ForecastEngine
from onahtrack.core.onah.resolver import OnahResolver
from onahtrack.infra.astronomy.calendar import HebrewSolarCalendar
from onahtrack.infra.sqlite.db import get_connection
from onahtrack.infra.sqlite.migrator import apply_migrations
from onahtrack.infra.sqlite.store import SQLiteCycleStore, SQLiteSubjectProfileProvider
from onahtrack.tests.support import JERUSALEM, NOW, SUBJECT, FixedSun


@pytest.fixture
def calendar() -> HebrewSolarCalendar:
    return HebrewSolarCalendar(FixedSun())


@pytest.fixture
def resolver(calendar: HebrewSolarCalendar) -> OnahResolver:
    return OnahResolver(calendar)


@pytest.fixture
def engine(resolver: OnahResolver) -> ForecastEngine:
    return ForecastEngine(resolver)


@pytest.fixture
def conn() -> Iterator[sqlite3.Connection]:
    connection = get_connection(":memory:")
    apply_migrations(connection)
    yield connection
    connection.close()


@pytest.fixture
def conn_lock() -> threading.RLock:
    return threading.RLock()


@pytest.fixture
def store(conn: sqlite3.Connection, conn_lock: threading.RLock) -> SQLiteCycleStore:
    return SQLiteCycleStore(conn, lock=conn_lock)


@pytest.fixture
def profiles(conn: sqlite3.Connection, conn_lock: threading.RLock) -> SQLiteSubjectProfileProvider:
    provider = SQLiteSubjectProfileProvider(conn, lock=conn_lock)
    provider.add_subject(
        SubjectProfile(subject_id=SUBJECT, location=JERUSALEM, flags=StringencyFlags(), minimum_gap_days=5),
        created_at=NOW,
    )
    return provider


@pytest.fixture
def manager(
    store: SQLiteCycleStore,
    profiles: SQLiteSubjectProfileProvider,
    engine: ForecastEngine,
) -> CycleLifecycleManager:
    ids = itertools.count(1)
    return CycleLifecycleManager(
        store=store,
        profiles=profiles,
        engine=engine,
        clock=lambda: NOW,
        id_factory=lambda: f"id-{next(ids)}",
    )
