"""
Log formatters for the fieldmap CLI.

JSONFormatter writes one object per line for log shippers. ConsoleFormatter
writes "time [LEVEL] logger: message [key=value, ...]". Both carry the
context callers pass through extra={...} (endpoint, source_field, step_id).
"""

import json
import logging
import socket
import sys
import traceback
from datetime import UTC, datetime
from typing import Any

DEFAULT_APP_NAME = "field-transform-engine"

# Attribute names of a bare LogRecord; anything else was supplied via extra
RESERVED_RECORD_FIELDS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime"}


def extract_context(record: logging.LogRecord) -> dict[str, Any]:
    """Return the caller-supplied attributes of a record, skipping private ones."""
    return {
        key: value
        for key, value in vars(record).items()
        if key not in RESERVED_RECORD_FIELDS and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """Structured formatter: fixed envelope plus "context" and "exception"."""

    def __init__(
        self,
        include_timestamp: bool = True,
        include_hostname: bool = True,
        app_name: str = DEFAULT_APP_NAME,
    ):
        super().__init__()
        self.include_timestamp = include_timestamp
        self.app_name = app_name
        self.hostname = socket.gethostname() if include_hostname else None

    def _envelope(self, record: logging.LogRecord) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "app": self.app_name,
            "source": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }
        if self.include_timestamp:
            entry["timestamp"] = datetime.fromtimestamp(record.created, UTC).isoformat()
        if self.hostname:
            entry["hostname"] = self.hostname
        return entry

    @staticmethod
    def _exception(exc_info) -> dict[str, Any]:
        exc_type, exc_value, exc_tb = exc_info
        return {
            "type": exc_type.__name__,
            "message": str(exc_value),
            "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
        }

    def format(self, record: logging.LogRecord) -> str:
        entry = self._envelope(record)

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self._exception(record.exc_info)

        context = extract_context(record)
        if context:
            entry["context"] = context

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Single-line formatter; the level name is colored when writing to a TTY."""

    LEVEL_COLORS = {
        "DEBUG": "36",
        "INFO": "32",
        "WARNING": "33",
        "ERROR": "31",
        "CRITICAL": "35",
    }

    def __init__(self, use_colors: bool = True):
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")
        self.use_colors = use_colors and sys.stderr.isatty()

    def _level(self, levelname: str) -> str:
        color = self.LEVEL_COLORS.get(levelname)
        if self.use_colors and color:
            return f"\033[{color}m{levelname}\033[0m"
        return levelname

    def format(self, record: logging.LogRecord) -> str:
        line = (
            f"{self.formatTime(record, self.datefmt)} [{self._level(record.levelname)}] "
            f"{record.name}: {record.getMessage()}"
        )

        context = extract_context(record)
        if context:
            line += " [" + ", ".join(f"{key}={value}" for key, value in context.items()) + "]"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)

        return line
