"""Tests for structured logging."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator

import orjson
import pytest

from clickstats.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    configure_logging,
    correlation_id_var,
    request_id_var,
)


def make_record(
    message: str = "Cache warmed",
    level: int = logging.INFO,
    **extra: object,
) -> logging.LogRecord:
    record = logging.LogRecord(
        name="clickstats.cache.repository",
        level=level,
        pathname=__file__,
        lineno=42,
        msg=message,
        args=None,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    """Tests for JSON log output."""

    def test_basic_fields(self) -> None:
        """Output is one JSON object with the standard fields."""
        data = orjson.loads(JsonFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "clickstats.cache.repository"
        assert data["message"] == "Cache warmed"
        assert data["line"] == 42
        assert "timestamp" in data

    def test_context_ids_included(self) -> None:
        """Request and correlation ids are added when set."""
        with LogContext(request_id="req-1", correlation_id="corr-1"):
            data = orjson.loads(JsonFormatter().format(make_record()))

        assert data["request_id"] == "req-1"
        assert data["correlation_id"] == "corr-1"

    def test_context_ids_omitted_when_unset(self) -> None:
        data = orjson.loads(JsonFormatter().format(make_record()))
        assert "request_id" not in data

    def test_extra_fields(self) -> None:
        """Fields passed with extra= are copied, non-JSON values as strings."""
        data = orjson.loads(JsonFormatter().format(make_record(banner_id=7, ttl=object())))

        assert data["banner_id"] == 7
        assert isinstance(data["ttl"], str)

    def test_exception_info(self) -> None:
        try:
            raise RuntimeError("cache down")
        except RuntimeError:
            record = make_record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        data = orjson.loads(JsonFormatter().format(record))

        assert data["exception"]["type"] == "RuntimeError"
        assert data["exception"]["message"] == "cache down"
        assert "Traceback" in data["exception"]["traceback"]


class TestConsoleFormatter:
    """Tests for development console output."""

    def test_plain_line(self) -> None:
        line = ConsoleFormatter(use_colors=False).format(make_record())
        assert "| INFO     | clickstats.cache.repository | Cache warmed" in line

    def test_request_id_suffix(self) -> None:
        """The first eight characters of the request id are appended."""
        with LogContext(request_id="abcdef123456"):
            line = ConsoleFormatter(use_colors=False).format(make_record())
        assert line.endswith("| req=abcdef12")


class TestLogContext:
    """Tests for temporary log context."""

    def test_restores_previous_values(self) -> None:
        with LogContext(request_id="outer"):
            with LogContext(request_id="inner"):
                assert request_id_var.get() == "inner"
            assert request_id_var.get() == "outer"
        assert request_id_var.get() == ""
        assert correlation_id_var.get() == ""

    def test_unknown_key(self) -> None:
        with pytest.raises(ValueError):
            LogContext(tenant="acme")


class TestConfigureLogging:
    """Tests for root logger setup."""

    @pytest.fixture(autouse=True)
    def restore_root(self) -> Iterator[None]:
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_json_handler(self) -> None:
        configure_logging(json_format=True, level="DEBUG")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)

    def test_console_handler(self) -> None:
        configure_logging(json_format=False, level="warning")

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, ConsoleFormatter)

    def test_quiets_third_party_loggers(self) -> None:
        configure_logging()
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
