"""Row value encoding shared by the SQLite repositories.

Instants are stored as UTC ISO-8601 text with fixed microsecond precision so
lexical order equals chronological order. JSON columns use compact separators.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Optional

from onahtrack.core.domain.models import Forecast, OnahPeriod, StringencyFlags, VoidInfo


def dumps(payload: Any) -> str:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, sort_keys=True)


def encode_instant(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        raise ValueError("naive datetime cannot be persisted")
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def decode_instant(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)


def encode_flags(flags: StringencyFlags) -> str:
    return dumps(
        {
            "preceding_onah": flags.preceding_onah,
            "opposite_onah": flags.opposite_onah,
            "extra_day": flags.extra_day,
        }
    )


def decode_flags(raw: str) -> StringencyFlags:
    payload = json.loads(raw)
    return StringencyFlags(
        preceding_onah=bool(payload.get("preceding_onah", False)),
        opposite_onah=bool(payload.get("opposite_onah", False)),
        extra_day=bool(payload.get("extra_day", False)),
    )


def encode_void_info(info: Optional[VoidInfo]) -> Optional[str]:
    if info is None:
        return None
    return dumps(
        {
            "original_onah_start": encode_instant(info.original_onah_start),
            "original_onah_end": encode_instant(info.original_onah_end),
            "voided_at_milestone": encode_instant(info.voided_at_milestone),
            "voiding_examination_id": info.voiding_examination_id,
            "timestamp": encode_instant(info.timestamp),
            "notes": info.notes,
        }
    )


def decode_void_info(raw: Optional[str]) -> Optional[VoidInfo]:
    if raw is None:
        return None
    payload = json.loads(raw)
    return VoidInfo(
        original_onah_start=decode_instant(payload["original_onah_start"]),
        original_onah_end=decode_instant(payload["original_onah_end"]),
        voided_at_milestone=decode_instant(payload.get("voided_at_milestone")),
        voiding_examination_id=payload["voiding_examination_id"],
        timestamp=decode_instant(payload["timestamp"]),
        notes=payload.get("notes", ""),
    )


def period_to_dict(period: OnahPeriod) -> dict[str, Any]:
    return {
        "start": encode_instant(period.start),
        "end": encode_instant(period.end),
        "calendar_label": period.calendar_label,
        "weekday": period.weekday,
    }


def period_from_dict(payload: dict[str, Any]) -> OnahPeriod:
    return OnahPeriod(
        start=decode_instant(payload["start"]),
        end=decode_instant(payload["end"]),
        calendar_label=payload["calendar_label"],
        weekday=int(payload["weekday"]),
    )


def forecast_to_dict(forecast: Forecast) -> dict[str, Any]:
    return {
        "monthly": period_to_dict(forecast.monthly),
        "interval": period_to_dict(forecast.interval) if forecast.interval is not None else None,
        "fixed_count": period_to_dict(forecast.fixed_count),
        "is_day_onah": forecast.is_day_onah,
        "interval_days": forecast.interval_days,
        "variants": {key: period_to_dict(period) for key, period in forecast.variants.items()},
    }


def forecast_from_dict(payload: dict[str, Any]) -> Forecast:
    interval = payload.get("interval")
    return Forecast(
        monthly=period_from_dict(payload["monthly"]),
        interval=period_from_dict(interval) if interval is not None else None,
        fixed_count=period_from_dict(payload["fixed_count"]),
        is_day_onah=bool(payload["is_day_onah"]),
        interval_days=payload.get("interval_days"),
        variants={key: period_from_dict(value) for key, value in payload.get("variants", {}).items()},
    )
