from __future__ import annotations

import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional

EPHEMERIS_BACKENDS = ("moseph", "swieph")
ENV_PREFIX = "ONAHTRACK_"


@dataclass(frozen=True)
class EngineConfig:
    db_path: str = "onahtrack.db"
    default_minimum_gap_days: int = 5
    fixed_minimum_gap_days: int = 7
    fixed_count_days: int = 29
    ephemeris_backend: str = "moseph"
    ephemeris_path: Optional[str] = None
    log_level: str = "INFO"
    log_json: bool = False


def _require(payload: dict[str, Any], key: str, expected_type: type) -> Any:
    if key not in payload:
        raise ValueError(f"Missing required field '{key}' in engine config")
    value = payload[key]
    if expected_type is int:
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValueError(f"Field '{key}' must be int")
        return value
    if not isinstance(value, expected_type):
        raise ValueError(f"Field '{key}' must be {expected_type.__name__}")
    return value


def _optional(payload: dict[str, Any], key: str, expected_type: type, default: Any) -> Any:
    if key not in payload or payload[key] is None:
        return default
    return _require(payload, key, expected_type)


def _parse_bool(key: str, raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"Environment variable '{key}' must be a boolean")


def _parse_int(key: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable '{key}' must be int") from exc


def validate_config(config: EngineConfig) -> EngineConfig:
    if config.ephemeris_backend not in EPHEMERIS_BACKENDS:
        raise ValueError(f"Field 'ephemeris_backend' must be one of {EPHEMERIS_BACKENDS}")
    if not 4 <= config.default_minimum_gap_days <= 10:
        raise ValueError("Field 'default_minimum_gap_days' must be within [4, 10]")
    if config.fixed_minimum_gap_days < 1:
        raise ValueError("Field 'fixed_minimum_gap_days' must be positive")
    if config.fixed_count_days < 1:
        raise ValueError("Field 'fixed_count_days' must be positive")
    if not config.db_path:
        raise ValueError("Field 'db_path' must be non-empty")
    return config


def config_from_payload(payload: Any) -> EngineConfig:
    if not isinstance(payload, dict):
        raise ValueError("Engine config must be a JSON object")
    defaults = EngineConfig()
    return EngineConfig(
        db_path=_require(payload, "db_path", str),
        default_minimum_gap_days=_optional(payload, "default_minimum_gap_days", int, defaults.default_minimum_gap_days),
        fixed_minimum_gap_days=_optional(payload, "fixed_minimum_gap_days", int, defaults.fixed_minimum_gap_days),
        fixed_count_days=_optional(payload, "fixed_count_days", int, defaults.fixed_count_days),
        ephemeris_backend=_optional(payload, "ephemeris_backend", str, defaults.ephemeris_backend),
        ephemeris_path=_optional(payload, "ephemeris_path", str, defaults.ephemeris_path),
        log_level=_optional(payload, "log_level", str, defaults.log_level),
        log_json=_optional(payload, "log_json", bool, defaults.log_json),
    )


def apply_env_overrides(config: EngineConfig, environ: Mapping[str, str]) -> EngineConfig:
    overrides: dict[str, Any] = {}
    for name in ("db_path", "ephemeris_backend", "ephemeris_path", "log_level"):
        key = ENV_PREFIX + name.upper()
        if key in environ:
            overrides[name] = environ[key]
    for name in ("default_minimum_gap_days", "fixed_minimum_gap_days", "fixed_count_days"):
        key = ENV_PREFIX + name.upper()
        if key in environ:
            overrides[name] = _parse_int(key, environ[key])
    key = ENV_PREFIX + "LOG_JSON"
    if key in environ:
        overrides["log_json"] = _parse_bool(key, environ[key])
    return replace(config, **overrides)


def load_config(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> EngineConfig:
    """Defaults, then the JSON file at path (if given), then ONAHTRACK_* env vars."""
    config = EngineConfig()
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise ValueError(f"Config file not found: {path}")
        config = config_from_payload(json.loads(config_path.read_text(encoding="utf-8")))
    config = apply_env_overrides(config, os.environ if environ is None else environ)
    return validate_config(config)
