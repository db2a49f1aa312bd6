from __future__ import annotations

import json
from pathlib import Path

import pytest

from onahtrack.cli import cycles, forecast_report


def _run(capsys: pytest.CaptureFixture[str], module, argv: list[str]) -> tuple[int, dict]:
    code = module.main(argv)
    out = capsys.readouterr().out
    return code, json.loads(out) if out.strip() else {}


def test_cycles_cli_end_to_end(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db = str(tmp_path / "cycles.db")

    code, payload = _run(capsys, cycles, ["--db", db, "init-db"])
    assert code == 0
    assert payload["status"] == "ok"
    assert payload["applied"] == ["001_init"]

    code, payload = _run(
        capsys,
        cycles,
        ["--db", db, "add-subject", "--subject", "s1", "--lat", "31.7683", "--lon", "35.2137", "--tz", "Asia/Jerusalem", "--extra-day"],
    )
    assert code == 0
    assert payload["flags"] == "001"
    assert payload["minimum_gap_days"] == 5

    code, payload = _run(capsys, cycles, ["--db", db, "start", "--subject", "s1", "--date", "2025-01-01", "--onah", "day"])
    assert code == 0
    cycle_id = payload["id"]
    assert payload["status"] == "phase1"
    assert payload["cascaded"] == 0

    code, payload = _run(capsys, cycles, ["--db", db, "milestone", "--cycle", cycle_id, "--at", "2025-01-06T17:00:00+02:00"])
    assert code == 0
    assert payload["status"] == "phase2"

    code, payload = _run(capsys, forecast_report, ["--db", db, "--cycle", cycle_id])
    assert code == 0
    assert payload["fixed_count"]["start"].startswith("2025-01-30")
    assert set(payload["variants"]) == {"fixedCount.extraDay"}

    code, payload = _run(capsys, cycles, ["--db", db, "list", "--subject", "s1", "--stats"])
    assert code == 0
    assert [c["id"] for c in payload["cycles"]] == [cycle_id]
    assert payload["statistics"]["cycle_count"] == 1


def test_cycles_cli_maps_domain_errors(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db = str(tmp_path / "cycles.db")

    code = cycles.main(["--db", db, "complete", "--cycle", "missing", "--at", "2025-01-14T19:00:00+02:00"])

    assert code == 2
    assert "cycle not found: missing" in capsys.readouterr().err


def test_cycles_cli_rejects_naive_timestamp(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db = str(tmp_path / "cycles.db")

    code = cycles.main(["--db", db, "milestone", "--cycle", "x", "--at", "2025-01-06T17:00:00"])

    assert code == 2
    assert "UTC offset" in capsys.readouterr().err
