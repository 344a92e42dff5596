"""Logging configuration for the search proxy."""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

SERVICE_NAME = "algolia-proxy"
EVENT_LOGGER_NAME = "search_proxy.events"
EVENT_ATTRIBUTE = "event"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LEVELS = {
    "log": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class ProxyLogFormatter(logging.Formatter):
    """
    Pipe-separated lines for diagnostics, one JSON object per line for
    structured request events so log shippers can parse them unchanged.
    """

    def format(self, record: logging.LogRecord) -> str:
        event = getattr(record, EVENT_ATTRIBUTE, None)
        if isinstance(event, dict):
            return json.dumps(event, default=str, ensure_ascii=False)
        return super().format(record)


def setup_logging(level: int | str = logging.INFO) -> None:
    """
    Route diagnostics and structured events to stdout.

    Replaces any handlers already installed on the root logger, so calling
    it again (e.g. on every app startup) does not duplicate output.

    Args:
        level: Logging level (default: INFO)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(level)
    stdout_handler.setFormatter(ProxyLogFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(stdout_handler)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_event(level: str, message: str, environment: str = "production", **context: Any) -> dict[str, Any]:
    """
    Emit one structured event on the events logger.

    Args:
        level: One of "log", "warn" or "error"
        message: Human readable summary
        environment: Environment name stamped on the record
        **context: Additional fields merged into the record

    Returns:
        The record that was emitted (empty if emitting failed)
    """
    event_logger = logging.getLogger(EVENT_LOGGER_NAME)
    try:
        record: dict[str, Any] = {
            "message": message,
            "status": level,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "env": environment,
            **context,
        }
        event_logger.log(_LEVELS.get(level, logging.INFO), message, extra={EVENT_ATTRIBUTE: record})
        return record
    except Exception as exc:
        event_logger.error(f"Failed to log event: {exc}")
        return {}
