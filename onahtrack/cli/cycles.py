from __future__ import annotations

import argparse
import logging
import sqlite3
import sys
from typing import Optional, Sequence

from onahtrack.app_api.factories.build_app import OnahTrackApp, build_onahtrack_app
from onahtrack.cli._output import (
    cascade_to_dict,
    cycle_to_dict,
    emit,
    examination_to_dict,
    outcome_to_dict,
    parse_date,
    parse_instant,
    start_to_dict,
    statistics_to_dict,
)
from onahtrack.config import EngineConfig, load_config
from onahtrack.core.domain.enums import ExaminationResult, TimeOfDay
from onahtrack.core.domain.errors import OnahTrackError
from onahtrack.core.domain.models import Location, StringencyFlags, SubjectProfile
from onahtrack.infra.logging import setup_logging
from onahtrack.infra.sqlite.db import get_connection
from onahtrack.infra.sqlite.migrator import apply_migrations

logger = logging.getLogger(__name__)


def _add_flag_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--preceding-onah", action="store_true", help="Also forecast the preceding onah")
    parser.add_argument("--opposite-onah", action="store_true", help="Also forecast the opposite onah of the fixed count")
    parser.add_argument("--extra-day", action="store_true", help="Also forecast the day after the fixed count")


def _flags_from(args: argparse.Namespace) -> StringencyFlags:
    return StringencyFlags(
        preceding_onah=args.preceding_onah,
        opposite_onah=args.opposite_onah,
        extra_day=args.extra_day,
    )


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage tracked cycles")
    parser.add_argument("--config", help="Path to a JSON engine config")
    parser.add_argument("--db", help="SQLite database path (overrides config)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create or upgrade the schema")

    p = sub.add_parser("add-subject", help="Create or update a subject profile")
    p.add_argument("--subject", required=True)
    p.add_argument("--lat", type=float, required=True)
    p.add_argument("--lon", type=float, required=True)
    p.add_argument("--tz", required=True, help="IANA timezone id, e.g. Asia/Jerusalem")
    p.add_argument("--minimum-gap-days", type=int, help="Minimum days before the milestone")
    _add_flag_args(p)

    p = sub.add_parser("start", help="Start a cycle")
    p.add_argument("--subject", required=True)
    p.add_argument("--date", help="Local civil date YYYY-MM-DD; resolves the onah from --onah")
    p.add_argument("--onah", choices=("day", "night"), default="day")
    p.add_argument("--start", help="Onah start instant (ISO-8601 with offset)")
    p.add_argument("--end", help="Onah end instant (ISO-8601 with offset)")
    p.add_argument("--notes", default="")

    p = sub.add_parser("milestone", help="Record the milestone of a cycle")
    p.add_argument("--cycle", required=True)
    p.add_argument("--at", required=True, help="ISO-8601 instant with offset")

    p = sub.add_parser("complete", help="Record completion of a cycle")
    p.add_argument("--cycle", required=True)
    p.add_argument("--at", required=True, help="ISO-8601 instant with offset")

    p = sub.add_parser("examine", help="Record an examination")
    p.add_argument("--cycle", required=True)
    p.add_argument("--at", required=True, help="ISO-8601 instant with offset")
    p.add_argument("--day", type=int, required=True, help="Day number 1..7")
    p.add_argument("--time", choices=[t.value for t in TimeOfDay], required=True)
    p.add_argument("--result", choices=[r.value for r in ExaminationResult], required=True)
    p.add_argument("--notes", default="")

    p = sub.add_parser("delete", help="Delete a cycle and recompute its successors")
    p.add_argument("--cycle", required=True)

    p = sub.add_parser("recalc", help="Replace stringency flags and recompute all forecasts")
    p.add_argument("--subject", required=True)
    _add_flag_args(p)

    p = sub.add_parser("list", help="List a subject's cycles")
    p.add_argument("--subject", required=True)
    p.add_argument("--from", dest="date_from", help="Range start instant (ISO-8601 with offset)")
    p.add_argument("--to", dest="date_to", help="Range end instant (ISO-8601 with offset)")
    p.add_argument("--with-examinations", action="store_true")
    p.add_argument("--stats", action="store_true", help="Include interval/length statistics")

    return parser.parse_args(argv)


def _run(args: argparse.Namespace, app: OnahTrackApp, config: EngineConfig) -> None:
    manager = app.manager
    if args.command == "add-subject":
        gap = args.minimum_gap_days if args.minimum_gap_days is not None else config.default_minimum_gap_days
        profile = SubjectProfile(
            subject_id=args.subject,
            location=Location(latitude=args.lat, longitude=args.lon, timezone_id=args.tz),
            flags=_flags_from(args),
            minimum_gap_days=gap,
        )
        app.profiles.add_subject(profile)
        emit({"subject_id": profile.subject_id, "flags": profile.flags.key(), "minimum_gap_days": gap})
    elif args.command == "start":
        if args.date:
            outcome = manager.open_cycle_on(args.subject, parse_date(args.date), args.onah == "day", notes=args.notes)
        elif args.start and args.end:
            outcome = manager.open_cycle(args.subject, parse_instant(args.start), parse_instant(args.end), notes=args.notes)
        else:
            raise ValueError("start requires --date or both --start and --end")
        emit(start_to_dict(outcome))
    elif args.command == "milestone":
        emit(cycle_to_dict(manager.record_milestone(args.cycle, parse_instant(args.at))))
    elif args.command == "complete":
        emit(cycle_to_dict(manager.record_completion(args.cycle, parse_instant(args.at))))
    elif args.command == "examine":
        outcome = manager.record_examination(
            args.cycle,
            parse_instant(args.at),
            args.day,
            args.time,
            args.result,
            notes=args.notes,
        )
        emit(outcome_to_dict(outcome))
    elif args.command == "delete":
        emit(cascade_to_dict(manager.delete_cycle(args.cycle)))
    elif args.command == "recalc":
        emit(cascade_to_dict(manager.recalculate_all_for_subject(args.subject, _flags_from(args))))
    elif args.command == "list":
        if args.date_from and args.date_to:
            cycles = manager.get_cycles_in_range(args.subject, parse_instant(args.date_from), parse_instant(args.date_to))
        else:
            cycles = manager.list_cycles(args.subject)
        rows = []
        for cycle in cycles:
            row = cycle_to_dict(cycle)
            if args.with_examinations:
                row["examinations"] = [examination_to_dict(e) for e in manager.get_examinations(cycle.id)]
            rows.append(row)
        payload = {"subject_id": args.subject, "cycles": rows}
        if args.stats:
            payload["statistics"] = statistics_to_dict(manager.get_cycle_statistics(args.subject))
        emit(payload)
    else:
        raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config = load_config(args.config)
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2
    setup_logging(config.log_level, config.log_json)
    db_path = args.db or config.db_path

    conn = get_connection(db_path)
    try:
        applied = apply_migrations(conn)
        if args.command == "init-db":
            emit({"db_path": db_path, "status": "ok", "applied": applied})
            return 0
        _run(args, build_onahtrack_app(conn, config), config)
    except (OnahTrackError, ValueError) as exc:
        logger.debug("command failed", exc_info=True)
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
