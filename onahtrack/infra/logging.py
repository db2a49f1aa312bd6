"""Structured logging setup for CLI and service entry points."""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime", "taskName"}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            base["exception"] = self.formatException(record.exc_info)
        # Fields passed via logger.info("msg", extra={...}).
        for key, value in record.__dict__.items():
            if key not in _RESERVED:
                base[key] = value
        return json.dumps(base, default=str)


def setup_logging(level: str = "INFO", format_json: bool = False) -> None:
    """Install one stderr handler on the root logger.

    stdout stays reserved for command output.
    """
    root = logging.getLogger()
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    if format_json:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    root.addHandler(handler)
    root.setLevel(level.upper())
