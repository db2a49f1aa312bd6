"""Shared parsing and JSON rendering helpers for the CLI tools."""

from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any

from onahtrack.core.domain.models import Cycle, Examination, Forecast
from onahtrack.core.lifecycle.metrics import CycleStatistics, SeriesSummary
from onahtrack.core.lifecycle.result import CascadeResult, ExaminationOutcome, StartOutcome
from onahtrack.infra.sqlite.codec import encode_instant, forecast_to_dict


def parse_instant(raw: str) -> datetime:
    value = datetime.fromisoformat(raw)
    if value.tzinfo is None:
        raise ValueError(f"Timestamp must include a UTC offset: {raw}")
    return value


def parse_date(raw: str) -> date:
    return date.fromisoformat(raw)


def cycle_to_dict(cycle: Cycle) -> dict[str, Any]:
    void = cycle.void_info
    return {
        "id": cycle.id,
        "subject_id": cycle.subject_id,
        "status": cycle.status.value,
        "onah_start": encode_instant(cycle.onah_start),
        "onah_end": encode_instant(cycle.onah_end),
        "milestone_date": encode_instant(cycle.milestone_date),
        "second_milestone_start": encode_instant(cycle.second_milestone_start),
        "completion_date": encode_instant(cycle.completion_date),
        "measured_interval": cycle.measured_interval,
        "total_length": cycle.total_length,
        "revision": cycle.revision,
        "notes": cycle.notes,
        "void_info": None
        if void is None
        else {
            "original_onah_start": encode_instant(void.original_onah_start),
            "original_onah_end": encode_instant(void.original_onah_end),
            "voiding_examination_id": void.voiding_examination_id,
            "notes": void.notes,
        },
    }


def examination_to_dict(examination: Examination) -> dict[str, Any]:
    return {
        "id": examination.id,
        "cycle_id": examination.cycle_id,
        "examined_at": encode_instant(examination.examined_at),
        "day_number": examination.day_number,
        "time_of_day": examination.time_of_day.value,
        "result": examination.result.value,
        "notes": examination.notes,
    }


def cascade_to_dict(result: CascadeResult) -> dict[str, Any]:
    return {
        "voided": result.voided,
        "cascaded": result.cascaded,
        "cascade_failures": [{"cycle_id": f.cycle_id, "error": f.error} for f in result.cascade_failures],
    }


def outcome_to_dict(outcome: ExaminationOutcome) -> dict[str, Any]:
    return {
        "examination": examination_to_dict(outcome.examination),
        "voided": outcome.voided,
        "cascaded": outcome.cascaded,
        "cascade_failures": [{"cycle_id": f.cycle_id, "error": f.error} for f in outcome.cascade_failures],
    }


def start_to_dict(outcome: StartOutcome) -> dict[str, Any]:
    return {
        **cycle_to_dict(outcome.cycle),
        "cascaded": outcome.cascaded,
        "cascade_failures": [{"cycle_id": f.cycle_id, "error": f.error} for f in outcome.cascade_failures],
    }


def forecast_payload(cycle_id: str, forecast: Forecast) -> dict[str, Any]:
    return {"cycle_id": cycle_id, **forecast_to_dict(forecast)}


def _summary_to_dict(summary: SeriesSummary) -> dict[str, Any]:
    return {
        "count": summary.count,
        "mean": summary.mean,
        "median": summary.median,
        "min": summary.minimum,
        "max": summary.maximum,
    }


def statistics_to_dict(stats: CycleStatistics) -> dict[str, Any]:
    return {
        "cycle_count": stats.cycle_count,
        "completed_count": stats.completed_count,
        "voided_count": stats.voided_count,
        "intervals": _summary_to_dict(stats.intervals),
        "lengths": _summary_to_dict(stats.lengths),
    }


def emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))
