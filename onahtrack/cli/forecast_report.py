from __future__ import annotations

import argparse
import logging
import sqlite3
import sys
from typing import Optional, Sequence

from onahtrack.app_api.facade import CycleLifecycleManager
from onahtrack.app_api.factories.build_app import build_onahtrack_app
from onahtrack.cli._output import emit, forecast_payload, parse_instant
from onahtrack.config import load_config
from onahtrack.core.domain.errors import OnahTrackError
from onahtrack.infra.logging import setup_logging
from onahtrack.infra.sqlite.codec import period_to_dict
from onahtrack.infra.sqlite.db import get_connection
from onahtrack.infra.sqlite.migrator import apply_migrations

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Report forecast onahs for a cycle or a subject")
    parser.add_argument("--config", help="Path to a JSON engine config")
    parser.add_argument("--db", help="SQLite database path (overrides config)")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--cycle", help="Report the full forecast of one cycle")
    target.add_argument("--subject", help="Report upcoming base forecasts of a subject")
    parser.add_argument("--now", help="Window start instant (ISO-8601 with offset); defaults to now")
    parser.add_argument("--days", type=int, default=30, help="Window length in days for --subject")
    return parser.parse_args(argv)


def build_report(manager: CycleLifecycleManager, args: argparse.Namespace) -> dict:
    if args.cycle:
        return forecast_payload(args.cycle, manager.get_forecast(args.cycle))
    if args.days < 1:
        raise ValueError("--days must be positive")
    now = parse_instant(args.now) if args.now else None
    upcoming = manager.get_upcoming_forecasts(args.subject, now=now, days_ahead=args.days)
    return {
        "subject_id": args.subject,
        "days_ahead": args.days,
        "upcoming": [
            {"cycle_id": item.cycle_id, "kind": item.kind.value, **period_to_dict(item.period)}
            for item in upcoming
        ],
    }


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config = load_config(args.config)
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2
    setup_logging(config.log_level, config.log_json)

    conn = get_connection(args.db or config.db_path)
    try:
        apply_migrations(conn)
        app = build_onahtrack_app(conn, config)
        emit(build_report(app.manager, args))
    except (OnahTrackError, ValueError) as exc:
        logger.debug("report failed", exc_info=True)
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2
    except sqlite3.Error as exc:
        logger.exception("storage error")
        print(f"ERROR: storage failure: {exc}", file=sys.stderr)
        return 1
    finally:
        conn.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
