"""SQLite repository for examination rows."""

from __future__ import annotations

import sqlite3

from onahtrack.core.domain.enums import ExaminationResult, TimeOfDay
from onahtrack.core.domain.models import Examination

from ..codec import decode_instant, encode_instant


class ExaminationRepo:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def insert(self, examination: Examination) -> None:
        self._conn.execute(
            """
            INSERT INTO examinations
                (examination_id, cycle_id, examined_at, day_number, time_of_day, result, notes)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                examination.id,
                examination.cycle_id,
                encode_instant(examination.examined_at),
                examination.day_number,
                examination.time_of_day.value,
                examination.result.value,
                examination.notes,
            ),
        )

    def list_for_cycle(self, cycle_id: str) -> list[Examination]:
        rows = self._conn.execute(
            """
            SELECT examination_id, cycle_id, examined_at, day_number, time_of_day, result, notes
            FROM examinations
            WHERE cycle_id = ?
            ORDER BY examined_at ASC, examination_id ASC
            """,
            (cycle_id,),
        ).fetchall()
        return [
            Examination(
                id=row["examination_id"],
                cycle_id=row["cycle_id"],
                examined_at=decode_instant(row["examined_at"]),
                day_number=row["day_number"],
                time_of_day=TimeOfDay(row["time_of_day"]),
                result=ExaminationResult(row["result"]),
                notes=row["notes"],
            )
            for row in rows
        ]

    def delete_for_cycle(self, cycle_id: str) -> int:
        cursor = self._conn.execute("DELETE FROM examinations WHERE cycle_id = ?", (cycle_id,))
        return cursor.rowcount
