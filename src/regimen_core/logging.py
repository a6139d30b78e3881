"""Structured logging for regimen events.

Regimen modules attach context to records as ``regimen_*`` extras
(``regimen_day``, ``regimen_start_date``, ...). The JSON formatter groups
them under one ``regimen`` object with the prefix stripped; the text
formatter appends them as ``key=value`` pairs. Days are rendered as ISO
dates in both.

Controlled via REGIMEN_LOG_FORMAT env var: "json" (default) or "text".
"""

import json
import logging
import sys
import traceback
from datetime import date, datetime, timezone
from typing import Any

from .errors import classify_error

CONTEXT_PREFIX = "regimen_"
TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _render(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted((_render(item) for item in value), key=str)
    if isinstance(value, (list, tuple)):
        return [_render(item) for item in value]
    return value


def regimen_context(record: logging.LogRecord) -> dict[str, Any]:
    """``regimen_*`` extras of ``record``, unprefixed and rendered."""
    return {
        key[len(CONTEXT_PREFIX):]: _render(value)
        for key, value in record.__dict__.items()
        if key.startswith(CONTEXT_PREFIX)
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per record, regimen context nested under ``regimen``."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = regimen_context(record)
        if context:
            log_entry["regimen"] = context

        if record.exc_info and record.exc_info[1] is not None:
            log_entry["error_code"] = classify_error(record.exc_info[1])
            log_entry["exception"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(log_entry, default=str)


class TextFormatter(logging.Formatter):
    """Plain log line followed by the regimen context as ``key=value``."""

    def __init__(self) -> None:
        super().__init__(TEXT_FORMAT)

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        pairs = []
        for key, value in regimen_context(record).items():
            if isinstance(value, list):
                value = ",".join(str(item) for item in value)
            pairs.append(f"{key}={value}")
        if pairs:
            line = f"{line} [{' '.join(pairs)}]"
        return line


def setup_logging(log_format: str, level: int = logging.INFO) -> None:
    """Route all records to stderr, formatted as JSON or text."""
    root = logging.getLogger()
    root.setLevel(level)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if log_format == "json" else TextFormatter())
    root.addHandler(handler)
