"""Versioned schema migrations for the cycle tables.

Each ``migrations/NNN_name.sql`` file is applied once, in file-name order,
inside its own transaction. Applied versions are recorded in
``schema_migrations`` so that re-running is a no-op.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


def applied_versions(conn: sqlite3.Connection) -> set[str]:
    conn.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version TEXT PRIMARY KEY, applied_at TEXT NOT NULL)")
    return {row[0] for row in conn.execute("SELECT version FROM schema_migrations")}


def apply_migrations(conn: sqlite3.Connection, migrations_dir: Path = MIGRATIONS_DIR) -> list[str]:
    """Apply pending migrations and return the versions applied by this call."""
    done = applied_versions(conn)
    conn.commit()
    applied: list[str] = []
    for migration in sorted(migrations_dir.glob("*.sql")):
        version = migration.stem
        if version in done:
            continue
        quoted = version.replace("'", "''")
        script = (
            "BEGIN;\n"
            f"{migration.read_text()}\n"
            f"INSERT INTO schema_migrations (version, applied_at) VALUES ('{quoted}', datetime('now'));\n"
            "COMMIT;\n"
        )
        try:
            conn.executescript(script)
        except sqlite3.Error:
            if conn.in_transaction:
                conn.rollback()
            raise
        logger.info("migration_applied", extra={"version": version})
        applied.append(version)
    return applied
