"""
Logging for the relay server.

One stdout handler on the root logger, JSON by default. Lines that belong to
a socket carry that session's short token as trace_id.

    RELAY_LOG_LEVEL   DEBUG, INFO, WARNING, ERROR (default: INFO)
    RELAY_LOG_FORMAT  json or text (default: json)
"""

import logging
import os
import sys
from typing import Optional

from pythonjsonlogger.json import JsonFormatter

NO_TRACE = "N/A"

# Loggers that uvicorn configures on its own.
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def _formatter(log_format: str) -> logging.Formatter:
    if log_format == "text":
        return logging.Formatter(
            "%(asctime)s %(levelname)-7s %(name)s [%(trace_id)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    return JsonFormatter(
        "%(asctime)s %(name)s %(levelname)s %(message)s %(trace_id)s",
        rename_fields={"asctime": "timestamp", "name": "logger", "levelname": "level"},
    )


def setup_logging() -> None:
    """Install the relay handler on the root logger, replacing any others."""
    level = logging.getLevelName(os.getenv("RELAY_LOG_LEVEL", "INFO").upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(TraceIDFilter())
    handler.setFormatter(_formatter(os.getenv("RELAY_LOG_FORMAT", "json").lower()))

    root = logging.getLogger()
    root.setLevel(level)
    for old in list(root.handlers):
        root.removeHandler(old)
    root.addHandler(handler)

    for name in UVICORN_LOGGERS:
        uv_logger = logging.getLogger(name)
        uv_logger.handlers = []
        uv_logger.propagate = True
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str, trace_id: Optional[str] = None) -> logging.LoggerAdapter:
    """Logger whose records carry trace_id (a short session token prefix)."""
    return logging.LoggerAdapter(logging.getLogger(name), {"trace_id": trace_id or NO_TRACE})


class TraceIDFilter(logging.Filter):
    """Fills in trace_id on records from loggers that don't set one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "trace_id"):
            record.trace_id = NO_TRACE  # type: ignore
        return True
