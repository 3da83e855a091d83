"""Tests for core/logging.py."""

import json
import logging

from git_providers.core.logging import (
    ConsoleFormatter,
    StructuredFormatter,
    Timer,
    configure_logging,
    get_log_context,
    log_context,
)


def _record(message="hello", **extra):
    record = logging.LogRecord(
        name="git_providers.api.client",
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


class TestLogContext:
    def test_nested_context(self):
        assert get_log_context() == {}
        with log_context(service="gitlab"):
            with log_context(operation="get_status"):
                assert get_log_context() == {"service": "gitlab", "operation": "get_status"}
            assert get_log_context() == {"service": "gitlab"}
        assert get_log_context() == {}

    def test_context_restored_on_error(self):
        try:
            with log_context(service="github"):
                raise RuntimeError("boom")
        except RuntimeError:
            pass
        assert get_log_context() == {}


class TestFormatters:
    def test_structured(self):
        with log_context(service="gitlab", operation="list_for_branch"):
            output = StructuredFormatter().format(_record(duration_ms=12.5, status=200))
        data = json.loads(output)

        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["context"] == {"service": "gitlab", "operation": "list_for_branch"}
        assert data["duration_ms"] == 12.5
        assert data["status"] == 200

    def test_console(self):
        with log_context(service="github", operation="check_auth"):
            output = ConsoleFormatter().format(_record(duration_ms=3.0))
        assert "[github] [check_auth]" in output
        assert "hello (3.0ms)" in output


class TestConfigureLogging:
    def test_single_handler(self):
        logger = configure_logging(level=logging.DEBUG, structured=True, logger_name="git_providers.test")
        configure_logging(level=logging.DEBUG, structured=True, logger_name="git_providers.test")
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, StructuredFormatter)
        assert logger.level == logging.DEBUG


class TestTimer:
    def test_measures(self):
        with Timer("op") as timer:
            sum(range(1000))
        assert timer.duration_ms >= 0
        assert timer.name == "op"
