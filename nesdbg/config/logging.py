"""Logging setup for the nesdbg console.

Every line is one JSON object. Packet bytes attached with ``extra=``
render as bracketed hex pairs so they line up with console output.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from logging.config import dictConfig
from typing import Any

import msgspec

from ..protocol.hextext import format_hex
from .model import RuntimeConfig

LOGGER_PREFIX = "nesdbg."

# Attributes every LogRecord carries; anything else came in through extra=.
_RECORD_ATTRS = frozenset(logging.LogRecord("", logging.NOTSET, "", 0, "", (), None).__dict__) | {
    "asctime",
    "message",
}


def _json_value(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return f"[{format_hex(bytes(value))}]"
    return str(value)


def _utc_timestamp(created: float) -> str:
    return datetime.fromtimestamp(created, tz=timezone.utc).isoformat().replace("+00:00", "Z")


class StructuredLogFormatter(logging.Formatter):
    """JSON lines with the ``nesdbg.`` logger prefix dropped."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": _utc_timestamp(record.created),
            "level": record.levelname,
            "logger": record.name.removeprefix(LOGGER_PREFIX),
            "message": record.getMessage(),
        }
        # Test batches log from the run worker.
        if record.threadName and record.threadName != threading.main_thread().name:
            payload["thread"] = record.threadName

        extra = {
            key: _json_value(value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return msgspec.json.encode(payload).decode("utf-8")


def _build_handler(log_file: str | None = None) -> logging.Handler:
    if log_file:
        return logging.FileHandler(log_file, encoding="utf-8")
    # stderr: stdout carries console and report output.
    return logging.StreamHandler()


def configure_logging(config: RuntimeConfig) -> None:
    """Route all loggers through one structured handler."""
    level = "DEBUG" if config.debug_logging else "INFO"

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structured": {"()": StructuredLogFormatter},
            },
            "handlers": {
                "nesdbg": {
                    "()": _build_handler,
                    "log_file": config.log_file,
                    "level": level,
                    "formatter": "structured",
                },
            },
            "root": {"level": level, "handlers": ["nesdbg"]},
        }
    )
    logging.getLogger("nesdbg").debug("Logging configured at level %s", level)


__all__ = ["LOGGER_PREFIX", "StructuredLogFormatter", "configure_logging"]
