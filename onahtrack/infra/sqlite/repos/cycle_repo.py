"""SQLite repository for cycle rows.

Responsibilities:
  - Upsert, read and delete cycles deterministically.
Must not:
  - Recompute derived fields; persistence only.
"""

from __future__ import annotations

import sqlite3
from typing import Optional

from onahtrack.core.domain.enums import CycleStatus
from onahtrack.core.domain.models import Cycle

from ..codec import decode_instant, decode_void_info, encode_instant, encode_void_info

_COLUMNS = (
    "cycle_id, subject_id, onah_start, onah_end, status, milestone_date, "
    "second_milestone_start, completion_date, measured_interval, total_length, "
    "void_info_json, revision, notes, created_at, updated_at"
)


def _row_to_cycle(row: sqlite3.Row) -> Cycle:
    return Cycle(
        id=row["cycle_id"],
        subject_id=row["subject_id"],
        onah_start=decode_instant(row["onah_start"]),
        onah_end=decode_instant(row["onah_end"]),
        status=CycleStatus(row["status"]),
        milestone_date=decode_instant(row["milestone_date"]),
        second_milestone_start=decode_instant(row["second_milestone_start"]),
        completion_date=decode_instant(row["completion_date"]),
        measured_interval=row["measured_interval"],
        total_length=row["total_length"],
        void_info=decode_void_info(row["void_info_json"]),
        revision=row["revision"],
        notes=row["notes"],
        created_at=decode_instant(row["created_at"]),
        updated_at=decode_instant(row["updated_at"]),
    )


class CycleRepo:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def upsert(self, cycle: Cycle) -> None:
        self._conn.execute(
            f"""
            INSERT INTO cycles ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(cycle_id) DO UPDATE SET
                onah_start = excluded.onah_start,
                onah_end = excluded.onah_end,
                status = excluded.status,
                milestone_date = excluded.milestone_date,
                second_milestone_start = excluded.second_milestone_start,
                completion_date = excluded.completion_date,
                measured_interval = excluded.measured_interval,
                total_length = excluded.total_length,
                void_info_json = excluded.void_info_json,
                revision = excluded.revision,
                notes = excluded.notes,
                updated_at = excluded.updated_at
            """,
            (
                cycle.id,
                cycle.subject_id,
                encode_instant(cycle.onah_start),
                encode_instant(cycle.onah_end),
                cycle.status.value,
                encode_instant(cycle.milestone_date),
                encode_instant(cycle.second_milestone_start),
                encode_instant(cycle.completion_date),
                cycle.measured_interval,
                cycle.total_length,
                encode_void_info(cycle.void_info),
                cycle.revision,
                cycle.notes,
                encode_instant(cycle.created_at),
                encode_instant(cycle.updated_at),
            ),
        )

    def get(self, cycle_id: str) -> Optional[Cycle]:
        row = self._conn.execute(
            f"SELECT {_COLUMNS} FROM cycles WHERE cycle_id = ?",
            (cycle_id,),
        ).fetchone()
        if row is None:
            return None
        return _row_to_cycle(row)

    def list_for_subject(self, subject_id: str) -> list[Cycle]:
        rows = self._conn.execute(
            f"""
            SELECT {_COLUMNS}
            FROM cycles
            WHERE subject_id = ?
            ORDER BY onah_start ASC, cycle_id ASC
            """,
            (subject_id,),
        ).fetchall()
        return [_row_to_cycle(row) for row in rows]

    def delete(self, cycle_id: str) -> None:
        self._conn.execute("DELETE FROM cycles WHERE cycle_id = ?", (cycle_id,))
