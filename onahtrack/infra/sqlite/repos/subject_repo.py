"""SQLite repository for subject profiles."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Optional

from onahtrack.core.domain.models import Location, StringencyFlags, SubjectProfile

from ..codec import decode_flags, encode_flags, encode_instant


class SubjectRepo:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def upsert(self, profile: SubjectProfile, created_at: datetime) -> None:
        self._conn.execute(
            """
            INSERT INTO subjects
                (subject_id, latitude, longitude, timezone_id, flags_json, minimum_gap_days, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(subject_id) DO UPDATE SET
                latitude = excluded.latitude,
                longitude = excluded.longitude,
                timezone_id = excluded.timezone_id,
                flags_json = excluded.flags_json,
                minimum_gap_days = excluded.minimum_gap_days
            """,
            (
                profile.subject_id,
                profile.location.latitude,
                profile.location.longitude,
                profile.location.timezone_id,
                encode_flags(profile.flags),
                profile.minimum_gap_days,
                encode_instant(created_at),
            ),
        )

    def get(self, subject_id: str) -> Optional[SubjectProfile]:
        row = self._conn.execute(
            """
            SELECT subject_id, latitude, longitude, timezone_id, flags_json, minimum_gap_days
            FROM subjects
            WHERE subject_id = ?
            """,
            (subject_id,),
        ).fetchone()
        if row is None:
            return None
        return SubjectProfile(
            subject_id=row["subject_id"],
            location=Location(
                latitude=row["latitude"],
                longitude=row["longitude"],
                timezone_id=row["timezone_id"],
            ),
            flags=decode_flags(row["flags_json"]),
            minimum_gap_days=row["minimum_gap_days"],
        )

    def update_flags(self, subject_id: str, flags: StringencyFlags) -> int:
        cursor = self._conn.execute(
            "UPDATE subjects SET flags_json = ? WHERE subject_id = ?",
            (encode_flags(flags), subject_id),
        )
        return cursor.rowcount
