"""Tests for structured logging configuration."""

import json
import logging
import sys

from chatproxy.app.core.config import Settings
from chatproxy.app.core.logging import (
    ContextFilter,
    JSONFormatter,
    get_log_context,
    get_logger,
    get_logging_config,
)


def make_record(msg="Test message", exc_info=None) -> logging.LogRecord:
    return logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


class TestJSONFormatter:

    def test_basic_json_format(self):
        data = json.loads(JSONFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "test"
        assert data["message"] == "Test message"
        assert "timestamp" in data
        assert data["source"]["file"] == "test.py"
        assert data["source"]["line"] == 1

    def test_context_fields_promoted(self):
        record = make_record("Cache hit")
        record.request_id = "req-1"
        record.cache = "hit"
        record.client_key = None

        data = json.loads(JSONFormatter().format(record))

        assert data["request_id"] == "req-1"
        assert data["cache"] == "hit"
        assert "client_key" not in data

    def test_unknown_fields_go_to_extra(self):
        record = make_record()
        record.error_type = "ConnectError"

        data = json.loads(JSONFormatter().format(record))

        assert data["extra"] == {"error_type": "ConnectError"}

    def test_exception_included(self):
        try:
            raise ValueError("bad value")
        except ValueError:
            record = make_record("failed", exc_info=sys.exc_info())

        data = json.loads(JSONFormatter().format(record))

        assert any("ValueError: bad value" in line for line in data["exception"])


class TestContextFilter:

    def test_adds_missing_fields(self):
        record = make_record()
        assert ContextFilter().filter(record) is True
        assert record.request_id is None
        assert record.duration_ms is None

    def test_keeps_existing_fields(self):
        record = make_record()
        record.request_id = "req-2"
        ContextFilter().filter(record)
        assert record.request_id == "req-2"


class TestLoggingConfig:

    def test_text_format_uses_standard_formatter(self):
        config = get_logging_config(Settings(_env_file=None, log_format="text"))
        assert config["handlers"]["console"]["formatter"] == "standard"
        assert "json" not in config["formatters"]

    def test_json_format(self):
        config = get_logging_config(Settings(_env_file=None, log_format="json", log_level="debug"))
        assert config["handlers"]["console"]["formatter"] == "json"
        assert config["loggers"]["chatproxy"]["level"] == "DEBUG"

    def test_structured_format(self):
        config = get_logging_config(Settings(_env_file=None, log_format="structured"))
        assert config["handlers"]["console"]["formatter"] == "structured"
        assert "request_id" in config["formatters"]["structured"]["format"]


def test_get_log_context_drops_none():
    context = get_log_context(request_id="r", client_key=None, error="boom")
    assert context == {"request_id": "r", "error": "boom"}


def test_get_logger_default_name():
    assert get_logger().name == "chatproxy"
