# tests/utils/test_logging.py
"""
Tests for logging setup, the correlation ID filter and the JSON formatter.
"""

import json
import logging

import pytest

from portfolio_tracker.utils.context import clear_correlation_id, set_correlation_id
from portfolio_tracker.utils.logging import (
    NO_CORRELATION_ID,
    CorrelationIdFilter,
    JsonFormatter,
    _get_log_level,
    setup_logging,
)


def _record(message: str = "Refresh pass 4 applied", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="portfolio_tracker.services.refresh",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestCorrelationIdFilter:

    def test_attaches_current_id(self):
        set_correlation_id("trace-1")
        record = _record()

        assert CorrelationIdFilter().filter(record) is True
        assert record.correlation_id == "trace-1"
        clear_correlation_id()

    def test_placeholder_outside_request(self):
        clear_correlation_id()
        record = _record()

        CorrelationIdFilter().filter(record)

        assert record.correlation_id == NO_CORRELATION_ID


class TestJsonFormatter:

    def test_basic_fields(self):
        record = _record(correlation_id="abc-123")

        entry = json.loads(JsonFormatter().format(record))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "portfolio_tracker.services.refresh"
        assert entry["correlation_id"] == "abc-123"
        assert entry["message"] == "Refresh pass 4 applied"
        assert "extra" not in entry

    def test_extra_fields(self):
        record = _record(failed_tickers=["TCS.NS"], holder=object())

        entry = json.loads(JsonFormatter().format(record))

        assert entry["extra"]["failed_tickers"] == ["TCS.NS"]
        assert isinstance(entry["extra"]["holder"], str)


class TestSetupLogging:

    def test_installs_single_handler(self):
        setup_logging(level="DEBUG", log_format="json")
        root = logging.getLogger()

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert logging.getLogger("yfinance").level == logging.WARNING

        setup_logging(level="INFO", log_format="text")

    @pytest.mark.parametrize("name,level", [
        ("debug", logging.DEBUG),
        (" WARN ", logging.WARNING),
        ("CRITICAL", logging.CRITICAL),
    ])
    def test_level_names(self, name, level):
        assert _get_log_level(name) == level

    def test_invalid_level(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            _get_log_level("LOUD")
