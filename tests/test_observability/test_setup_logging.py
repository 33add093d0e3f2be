"""
Tests for setup_logging().

setup_logging() configures both structlog and the stdlib root logger; every
other logger in the package depends on it.
"""

import json
import logging
from io import StringIO

import pytest
import structlog

from request_executor.infrastructure.observability import setup_logging


@pytest.fixture
def clean_logging():
    """
    Reset logging state around each test.

    structlog and logging both keep global configuration.
    """
    original_handlers = logging.root.handlers[:]

    logging.root.handlers = []
    logging.root.setLevel(logging.WARNING)
    structlog.reset_defaults()

    yield

    logging.root.handlers = []
    logging.root.setLevel(logging.WARNING)
    structlog.reset_defaults()
    logging.root.handlers = original_handlers


def capture(level=logging.INFO):
    output = StringIO()
    handler = logging.StreamHandler(output)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logging.root.addHandler(handler)
    return handler, output


def json_lines(output: StringIO) -> list[dict]:
    return [json.loads(line) for line in output.getvalue().splitlines() if line.strip()]


class TestSetupLogging:
    def test_json_mode(self, clean_logging):
        setup_logging(level="INFO", json_logs=True, include_timestamp=True)
        assert structlog.is_configured()

        handler, output = capture()
        try:
            structlog.get_logger("test_json").bind(test="json_mode").info(
                "json_test_event", value=123
            )
        finally:
            logging.root.removeHandler(handler)

        [parsed] = json_lines(output)
        assert parsed["event"] == "json_test_event"
        assert parsed["value"] == 123
        assert parsed["app"] == "request-executor"
        assert parsed["severity"] == "INFO"
        assert "timestamp" in parsed

    def test_text_mode(self, clean_logging):
        setup_logging(level="INFO", json_logs=False)

        handler, output = capture()
        try:
            structlog.get_logger("test_text").info("text_test_event", value=456)
        finally:
            logging.root.removeHandler(handler)

        assert "text_test_event" in output.getvalue()

    @pytest.mark.parametrize("level", ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    def test_root_level_follows_setting(self, clean_logging, level):
        setup_logging(level=level, json_logs=True)

        assert logging.root.level == getattr(logging, level)

    def test_root_level_set_when_root_already_has_handlers(self, clean_logging):
        existing = logging.NullHandler()
        logging.root.addHandler(existing)
        handlers = logging.root.handlers[:]

        setup_logging(level="DEBUG", json_logs=True)

        assert logging.root.level == logging.DEBUG
        assert logging.root.handlers == handlers

    def test_without_timestamp(self, clean_logging):
        setup_logging(level="INFO", json_logs=True, include_timestamp=False)

        handler, output = capture()
        try:
            logger = structlog.get_logger("test_no_ts")
            logger.debug("debug_should_not_appear")
            logger.info("no_timestamp_test", test_value=True)
        finally:
            logging.root.removeHandler(handler)

        [parsed] = json_lines(output)
        assert parsed["event"] == "no_timestamp_test"
        assert parsed["test_value"] is True
        assert "timestamp" not in parsed

    def test_unknown_level_falls_back_to_info(self, clean_logging):
        setup_logging(level="INVALID_LEVEL", json_logs=True)

        assert logging.root.level == logging.INFO

    def test_reconfiguration_takes_effect(self, clean_logging):
        setup_logging(level="DEBUG", json_logs=True)
        handler, output = capture(logging.DEBUG)
        try:
            structlog.get_logger("first").debug("first_config", test=1)
        finally:
            logging.root.removeHandler(handler)
        assert json_lines(output)[0]["event"] == "first_config"

        logging.root.handlers = []
        structlog.reset_defaults()

        setup_logging(level="ERROR", json_logs=True, include_timestamp=False)
        handler, output = capture(logging.DEBUG)
        try:
            logger = structlog.get_logger("second")
            logger.error("second_config", test=2)
            logger.debug("should_not_appear")
        finally:
            logging.root.removeHandler(handler)

        lines = json_lines(output)
        assert [line["event"] for line in lines] == ["second_config"]
        assert lines[0]["severity"] == "ERROR"
