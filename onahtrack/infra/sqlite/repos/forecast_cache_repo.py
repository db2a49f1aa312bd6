"""SQLite repository for the per-cycle forecast cache."""

from __future__ import annotations

import json
import sqlite3
from typing import Optional

from onahtrack.core.domain.models import ForecastCacheEntry

from ..codec import decode_instant, dumps, encode_instant, forecast_from_dict, forecast_to_dict


class ForecastCacheRepo:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def upsert(self, entry: ForecastCacheEntry) -> None:
        self._conn.execute(
            """
            INSERT INTO forecast_cache
                (cycle_id, cycle_revision, flags_key, computed_at, forecast_json)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(cycle_id) DO UPDATE SET
                cycle_revision = excluded.cycle_revision,
                flags_key = excluded.flags_key,
                computed_at = excluded.computed_at,
                forecast_json = excluded.forecast_json
            """,
            (
                entry.cycle_id,
                entry.cycle_revision,
                entry.flags_key,
                encode_instant(entry.computed_at),
                dumps(forecast_to_dict(entry.forecast)),
            ),
        )

    def get(self, cycle_id: str) -> Optional[ForecastCacheEntry]:
        row = self._conn.execute(
            """
            SELECT cycle_id, cycle_revision, flags_key, computed_at, forecast_json
            FROM forecast_cache
            WHERE cycle_id = ?
            """,
            (cycle_id,),
        ).fetchone()
        if row is None:
            return None
        return ForecastCacheEntry(
            cycle_id=row["cycle_id"],
            cycle_revision=row["cycle_revision"],
            flags_key=row["flags_key"],
            computed_at=decode_instant(row["computed_at"]),
            forecast=forecast_from_dict(json.loads(row["forecast_json"])),
        )

    def delete(self, cycle_id: str) -> None:
        self._conn.execute("DELETE FROM forecast_cache WHERE cycle_id = ?", (cycle_id,))
