"""Tests for the SQLite storage collaborator."""

from __future__ import annotations

import json
import sqlite3
import threading
from datetime import date, datetime, timezone
from pathlib import Path

import pytest

from onahtrack.core.domain.enums import CycleStatus, ExaminationResult, TimeOfDay
from onahtrack.core.domain.errors import NotFoundError
from onahtrack.core.domain.models import (
    Cycle,
    Examination,
    ForecastCacheEntry,
    StringencyFlags,
    VoidInfo,
)
from onahtrack.core.forecast.engine import ForecastEngine
from onahtrack.core.onah.resolver import OnahResolver
from onahtrack.infra.sqlite.db import get_connection
from onahtrack.infra.sqlite.migrator import apply_migrations, applied_versions
from onahtrack.infra.sqlite.store import SQLiteCycleStore, SQLiteSubjectProfileProvider
from onahtrack.tests.support import JERUSALEM, NOW, SUBJECT, local


def _cycle(cycle_id: str = "c1", day: int = 1) -> Cycle:
    return Cycle(
        id=cycle_id,
        subject_id=SUBJECT,
        onah_start=local(2025, 1, day, 6),
        onah_end=local(2025, 1, day, 18),
        created_at=NOW,
        updated_at=NOW,
    )


@pytest.mark.usefixtures("profiles")
def test_cycle_round_trip_preserves_fields(store: SQLiteCycleStore) -> None:
    cycle = _cycle()
    cycle.status = CycleStatus.PHASE1
    cycle.measured_interval = 27
    cycle.revision = 4
    cycle.notes = "after travel"
    cycle.void_info = VoidInfo(
        original_onah_start=local(2024, 12, 20, 6),
        original_onah_end=local(2024, 12, 20, 18),
        voided_at_milestone=local(2024, 12, 26, 17),
        voiding_examination_id="e9",
        timestamp=NOW,
        notes="Voided by not_clean examination on day 3",
    )

    store.save_cycle(cycle)
    loaded = store.load_cycle("c1")

    assert loaded == cycle
    assert loaded.onah_start.utcoffset().total_seconds() == 0


@pytest.mark.usefixtures("profiles")
def test_cycles_load_in_chronological_order(store: SQLiteCycleStore) -> None:
    for cycle_id, day in (("b", 20), ("a", 1), ("c", 25)):
        store.save_cycle(_cycle(cycle_id, day))

    assert [c.id for c in store.load_cycles_for_subject(SUBJECT)] == ["a", "b", "c"]
    assert store.load_cycles_for_subject("other") == []
    assert store.load_cycle("missing") is None


@pytest.mark.usefixtures("profiles")
def test_delete_removes_examinations_and_forecast(
    store: SQLiteCycleStore,
    engine: ForecastEngine,
    conn: sqlite3.Connection,
) -> None:
    cycle = _cycle()
    store.save_cycle(cycle)
    store.save_examination(
        Examination(
            id="e1",
            cycle_id="c1",
            examined_at=local(2025, 1, 8, 8),
            day_number=1,
            time_of_day=TimeOfDay.MORNING,
            result=ExaminationResult.CLEAN,
        )
    )
    forecast = engine.forecast(cycle, [], JERUSALEM, StringencyFlags())
    store.save_forecast(ForecastCacheEntry("c1", 0, "000", NOW, forecast))

    store.delete_cycle(cycle)

    assert store.load_cycle("c1") is None
    assert store.load_examinations("c1") == []
    assert store.load_forecast("c1") is None
    assert conn.execute("SELECT COUNT(*) FROM examinations").fetchone()[0] == 0


@pytest.mark.usefixtures("profiles")
def test_forecast_cache_round_trip(store: SQLiteCycleStore, engine: ForecastEngine, conn: sqlite3.Connection) -> None:
    cycle = _cycle()
    store.save_cycle(cycle)
    flags = StringencyFlags(preceding_onah=True, extra_day=True)
    forecast = engine.forecast(cycle, [], JERUSALEM, flags)

    store.save_forecast(ForecastCacheEntry("c1", 0, flags.key(), NOW, forecast))
    loaded = store.load_forecast("c1")

    assert loaded is not None
    assert loaded.forecast == forecast
    assert loaded.flags_key == "101"
    raw = conn.execute("SELECT forecast_json FROM forecast_cache WHERE cycle_id = 'c1'").fetchone()[0]
    assert ", " not in raw
    assert json.loads(raw)["interval"] is None


def test_profile_provider(profiles: SQLiteSubjectProfileProvider) -> None:
    profile = profiles.get_profile(SUBJECT)

    assert profile is not None
    assert profile.location == JERUSALEM
    assert profile.minimum_gap_days == 5
    assert profiles.get_profile("nobody") is None

    profiles.save_flags(SUBJECT, StringencyFlags(opposite_onah=True))
    assert profiles.get_profile(SUBJECT).flags == StringencyFlags(opposite_onah=True)

    with pytest.raises(NotFoundError):
        profiles.save_flags("nobody", StringencyFlags())


def test_examinations_are_ordered(store: SQLiteCycleStore, profiles: SQLiteSubjectProfileProvider) -> None:
    store.save_cycle(_cycle())
    for exam_id, day in (("e2", 9), ("e1", 8)):
        store.save_examination(
            Examination(
                id=exam_id,
                cycle_id="c1",
                examined_at=datetime.combine(date(2025, 1, day), datetime.min.time(), tzinfo=timezone.utc),
                day_number=day - 7,
                time_of_day=TimeOfDay.EVENING,
                result=ExaminationResult.QUESTIONABLE,
                notes="n",
            )
        )

    loaded = store.load_examinations("c1")

    assert [e.id for e in loaded] == ["e1", "e2"]
    assert loaded[0].result == ExaminationResult.QUESTIONABLE


@pytest.mark.usefixtures("profiles")
def test_resaving_a_cycle_keeps_its_examinations_and_forecast(
    store: SQLiteCycleStore,
    engine: ForecastEngine,
) -> None:
    cycle = _cycle()
    store.save_cycle(cycle)
    store.save_examination(
        Examination(
            id="e1",
            cycle_id="c1",
            examined_at=local(2025, 1, 8, 8),
            day_number=1,
            time_of_day=TimeOfDay.MORNING,
            result=ExaminationResult.CLEAN,
        )
    )
    forecast = engine.forecast(cycle, [], JERUSALEM, StringencyFlags())
    store.save_forecast(ForecastCacheEntry("c1", 0, "000", NOW, forecast))

    cycle.status = CycleStatus.PHASE2
    cycle.revision = 1
    store.save_cycle(cycle)

    assert store.load_cycle("c1").revision == 1
    assert [e.id for e in store.load_examinations("c1")] == ["e1"]
    cached = store.load_forecast("c1")
    assert cached is not None
    assert cached.cycle_revision == 0


@pytest.mark.usefixtures("profiles")
def test_store_calls_wait_for_the_shared_connection_lock(
    store: SQLiteCycleStore,
    conn_lock: threading.RLock,
) -> None:
    saved = threading.Event()

    def save_from_other_thread() -> None:
        store.save_cycle(_cycle())
        saved.set()

    with conn_lock:
        worker = threading.Thread(target=save_from_other_thread)
        worker.start()
        assert not saved.wait(timeout=0.2)
    worker.join(timeout=5)

    assert saved.is_set()
    assert store.load_cycle("c1") is not None


def test_migrations_are_recorded_and_applied_once(conn: sqlite3.Connection) -> None:
    assert applied_versions(conn) == {"001_init"}
    assert apply_migrations(conn) == []


def test_failed_migration_is_rolled_back(tmp_path: Path) -> None:
    (tmp_path / "001_base.sql").write_text("CREATE TABLE base (x INTEGER);")
    (tmp_path / "002_broken.sql").write_text("CREATE TABLE extra (y INTEGER);\nINSERT INTO missing VALUES (1);")
    connection = get_connection(":memory:")

    with pytest.raises(sqlite3.Error):
        apply_migrations(connection, migrations_dir=tmp_path)

    tables = {row[0] for row in connection.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
    assert "base" in tables
    assert "extra" not in tables
    assert applied_versions(connection) == {"001_base"}
    connection.close()
