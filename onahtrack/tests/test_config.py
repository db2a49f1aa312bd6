from __future__ import annotations

import json
from pathlib import Path

import pytest

from onahtrack.config import EngineConfig, load_config


def test_defaults_without_file_or_env() -> None:
    assert load_config(environ={}) == EngineConfig()


def test_load_from_json_file(tmp_path: Path) -> None:
    path = tmp_path / "engine.json"
    path.write_text(
        json.dumps({"db_path": "/tmp/cycles.db", "default_minimum_gap_days": 4, "ephemeris_backend": "swieph", "log_json": True}),
        encoding="utf-8",
    )

    config = load_config(str(path), environ={})

    assert config.db_path == "/tmp/cycles.db"
    assert config.default_minimum_gap_days == 4
    assert config.ephemeris_backend == "swieph"
    assert config.log_json is True
    assert config.fixed_count_days == 29


def test_env_overrides_file(tmp_path: Path) -> None:
    path = tmp_path / "engine.json"
    path.write_text(json.dumps({"db_path": "file.db"}), encoding="utf-8")

    config = load_config(
        str(path),
        environ={"ONAHTRACK_DB_PATH": "env.db", "ONAHTRACK_FIXED_COUNT_DAYS": "30", "ONAHTRACK_LOG_JSON": "yes"},
    )

    assert config.db_path == "env.db"
    assert config.fixed_count_days == 30
    assert config.log_json is True


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"db_path": 3},
        {"db_path": "x.db", "fixed_count_days": "29"},
        {"db_path": "x.db", "fixed_count_days": True},
        {"db_path": "x.db", "ephemeris_backend": "jpl"},
        {"db_path": "x.db", "default_minimum_gap_days": 11},
    ],
)
def test_invalid_file_payload(tmp_path: Path, payload: dict) -> None:
    path = tmp_path / "engine.json"
    path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(str(path), environ={})


def test_invalid_env_values() -> None:
    with pytest.raises(ValueError):
        load_config(environ={"ONAHTRACK_FIXED_COUNT_DAYS": "many"})
    with pytest.raises(ValueError):
        load_config(environ={"ONAHTRACK_LOG_JSON": "maybe"})


def test_missing_file() -> None:
    with pytest.raises(ValueError):
        load_config("/nonexistent/engine.json", environ={})
