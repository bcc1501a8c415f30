"""Tests for logging setup and formatters."""

import json
import logging
import sys

import pytest

from sentinel.config.logging_config import (
    HumanReadableFormatter,
    JSONFormatter,
    setup_logging,
)


def _record(msg="Fetched %d logs", args=(12,), **extra):
    record = logging.LogRecord(
        name="sentinel.data.transfer_logs",
        level=logging.WARNING,
        pathname=__file__,
        lineno=42,
        msg=msg,
        args=args,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def isolated_logger_name(request):
    name = f"sentinel-test-{request.node.name}"
    yield name
    logging.getLogger(name).handlers.clear()


class TestJSONFormatter:
    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(_record()))
        assert data["level"] == "WARNING"
        assert data["logger"] == "sentinel.data.transfer_logs"
        assert data["message"] == "Fetched 12 logs"
        assert data["line"] == 42

    def test_structured_context(self):
        data = json.loads(
            JSONFormatter().format(
                _record(metric="hodl_waves", endpoint="https://rpc.example", unrelated=1)
            )
        )
        assert data["metric"] == "hodl_waves"
        assert data["endpoint"] == "https://rpc.example"
        assert "unrelated" not in data

    def test_exception_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record()
            record.exc_info = sys.exc_info()
        data = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in data["exception"]


class TestHumanReadableFormatter:
    def test_contains_level_and_location(self):
        text = HumanReadableFormatter().format(_record())
        assert "WARNING" in text
        assert "sentinel.data.transfer_logs:42" in text
        assert text.endswith("Fetched 12 logs")


class TestSetupLogging:
    def test_console_only(self, isolated_logger_name):
        logger = setup_logging(name=isolated_logger_name, level="DEBUG", log_dir=None)
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, HumanReadableFormatter)

    def test_production_file_handler(self, isolated_logger_name, tmp_path):
        logger = setup_logging(
            name=isolated_logger_name, mode="production", log_dir=str(tmp_path / "logs")
        )
        assert len(logger.handlers) == 2
        assert all(isinstance(h.formatter, JSONFormatter) for h in logger.handlers)
        assert (tmp_path / "logs" / f"{isolated_logger_name}.log").exists()

    def test_repeated_setup_replaces_handlers(self, isolated_logger_name):
        setup_logging(name=isolated_logger_name, log_dir=None)
        logger = setup_logging(name=isolated_logger_name, log_dir=None)
        assert len(logger.handlers) == 1
