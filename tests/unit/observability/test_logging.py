"""Tests for structured logging."""

import json
import logging
import sys

from amity.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    configure_logging,
    correlation_key_var,
    requester_id_var,
)


def _record(message: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="amity.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    """Test JSON log output."""

    def test_basic_fields(self) -> None:
        data = json.loads(JsonFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "amity.test"
        assert data["message"] == "hello"
        assert "correlation_key" not in data

    def test_includes_correlation_context(self) -> None:
        with LogContext(correlation_key="42-1-1", requester_id=42):
            data = json.loads(JsonFormatter().format(_record()))

        assert data["correlation_key"] == "42-1-1"
        assert data["requester_id"] == "42"

    def test_extra_fields(self) -> None:
        data = json.loads(JsonFormatter().format(_record(topic="amity:requests")))
        assert data["topic"] == "amity:requests"

    def test_exception_info(self) -> None:
        try:
            raise ValueError("bad")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()

        data = json.loads(JsonFormatter().format(record))
        assert data["exception"]["type"] == "ValueError"


class TestConsoleFormatter:
    def test_context_suffix(self) -> None:
        with LogContext(correlation_key="k-1-1"):
            line = ConsoleFormatter(use_colors=False).format(_record())

        assert "| INFO " in line
        assert line.endswith("key=k-1-1")


class TestLogContext:
    """Context variables are set and restored."""

    def test_restores_previous_values(self) -> None:
        with LogContext(correlation_key="outer"):
            with LogContext(correlation_key="inner"):
                assert correlation_key_var.get() == "inner"
            assert correlation_key_var.get() == "outer"
        assert correlation_key_var.get() == ""

    def test_none_and_unknown_keys_ignored(self) -> None:
        with LogContext(correlation_key=None, unrelated="x"):
            assert correlation_key_var.get() == ""
            assert requester_id_var.get() == ""


class TestConfigureLogging:
    def test_replaces_root_handlers(self) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            configure_logging(json_format=True, level="DEBUG")

            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JsonFormatter)
            assert logging.getLogger("redis").level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
