# portfolio_tracker/utils/logging.py
"""
Root logger setup.

One stdout handler on the root logger. Every record gets the request's
correlation ID (or a placeholder outside requests), and is written either
as a pipe-separated text line or as one JSON object per line
(LOG_FORMAT=json).

What gets logged where:
    DEBUG    each fallback step and upstream call
    INFO     holding writes, refresh pass summaries, startup
    WARNING  degraded results: a fallback step failed, a ticker had no history
    ERROR    upstream unavailable, refresh loop errors

Usage:
    from portfolio_tracker.utils import setup_logging

    setup_logging()
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from portfolio_tracker.config import settings
from portfolio_tracker.utils.context import get_correlation_id

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(correlation_id)s | %(name)s | %(message)s"
TEXT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NO_CORRELATION_ID = "no-correlation-id"

# Raised to WARNING: they log every HTTP round trip to the quote upstream
NOISY_LOGGERS = (
    "yfinance",
    "urllib3",
    "urllib3.connectionpool",
    "curl_cffi",
    "httpx",
    "httpcore",
    "peewee",
    "asyncio",
)

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Attributes every LogRecord has; anything else came in through `extra=`
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message", "asctime", "correlation_id", "taskName",
}


class CorrelationIdFilter(logging.Filter):
    """Stamp `record.correlation_id` so formatters can reference it."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        return True


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record:

        {"timestamp": ..., "level": "INFO", "logger": ..., "correlation_id": ...,
         "message": ..., "exception": ..., "extra": {...}}

    `exception` and `extra` appear only when there is something to put in them.
    Extra values that are not JSON-serializable are stringified.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "correlation_id": getattr(record, "correlation_id", NO_CORRELATION_ID),
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value for key, value in vars(record).items() if key not in _RECORD_ATTRS
        }
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=str)


def setup_logging(
        level: str | None = None,
        log_format: str | None = None,
        suppress_noisy_loggers: bool = True,
) -> None:
    """
    Replace the root logger's handlers with one correlation-aware stdout handler.

    Args:
        level: Level name; defaults to settings.log_level
        log_format: "text" or "json"; defaults to settings.log_format
        suppress_noisy_loggers: Raise NOISY_LOGGERS to WARNING

    Raises:
        ValueError: Unknown level name
    """
    level_name = level or settings.log_level
    format_name = (log_format or settings.log_format).lower()

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(
        JsonFormatter() if format_name == "json"
        else logging.Formatter(fmt=TEXT_FORMAT, datefmt=TEXT_DATE_FORMAT)
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(_get_log_level(level_name))

    if suppress_noisy_loggers:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured: level={level_name}, format={format_name}")


def _get_log_level(level_str: str) -> int:
    name = level_str.strip().upper()
    if name not in LEVELS:
        raise ValueError(f"Invalid log level: '{level_str}'. Valid levels are: {', '.join(LEVELS)}")
    return LEVELS[name]
