"""Tests for logging configuration."""

import json
import logging

import structlog

from personal_assistant.core.config import AppConfig
from personal_assistant.core.logging import (
    configure_logging,
    drop_unset_context,
    get_logger,
    log_context,
    log_exception,
    setup_logging,
)


class TestSetupLogging:
    """Tests for logging setup function."""

    def test_log_level_setting(self):
        """Test setting different log levels."""
        for level in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            setup_logging(log_level=level)
            root_logger = logging.getLogger()
            assert root_logger.level == getattr(logging, level)

    def test_unknown_level_falls_back_to_info(self):
        """Unknown level names use INFO."""
        setup_logging(log_level="CHATTY")
        assert logging.getLogger().level == logging.INFO

    def test_file_output(self, tmp_path):
        """Log lines reach the rotating file."""
        log_file = tmp_path / "logs" / "assistant.log"
        setup_logging(log_level="INFO", log_file=str(log_file), enable_console=False)

        logging.getLogger("test").info("test message to file")

        assert log_file.exists()
        assert "test message to file" in log_file.read_text()


class TestLogContext:
    """Tests for the log_context context manager."""

    def setup_method(self):
        """Setup logging for each test."""
        setup_logging(log_level="WARNING", json_format=False)

    def test_binds_and_restores(self):
        """Context vars are bound inside the block and removed after it."""
        with log_context(user_id="u-1", session_id="s-1"):
            bound = structlog.contextvars.get_contextvars()
            assert bound["user_id"] == "u-1"
            assert bound["session_id"] == "s-1"

        assert "user_id" not in structlog.contextvars.get_contextvars()

    def test_nested_contexts(self):
        """Inner values override outer ones until the inner block exits."""
        with log_context(user_id="outer"):
            with log_context(user_id="inner", record_id="r-1"):
                assert structlog.contextvars.get_contextvars()["user_id"] == "inner"
            assert structlog.contextvars.get_contextvars() == {"user_id": "outer"}

    def test_restores_after_error(self):
        """Context is cleaned up when the block raises."""
        try:
            with log_context(user_id="u-1"):
                raise ValueError("boom")
        except ValueError:
            pass

        assert "user_id" not in structlog.contextvars.get_contextvars()


class TestLogException:
    """Tests for structured exception logging."""

    def test_log_exception_fields(self, tmp_path):
        """Exception type and message are logged as fields."""
        log_file = tmp_path / "errors.json"
        setup_logging(
            log_level="INFO",
            json_format=True,
            log_file=str(log_file),
            enable_console=False,
        )
        logger = structlog.wrap_logger(
            logging.getLogger("errors"),
            processors=[structlog.processors.JSONRenderer()],
        )

        try:
            raise KeyError("missing")
        except KeyError as e:
            log_exception(logger, "lookup_failed", e, record_id="r-1")

        entry = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert entry["event"] == "lookup_failed"
        assert entry["exception_type"] == "KeyError"
        assert entry["record_id"] == "r-1"

    def test_get_logger(self):
        """Loggers log without raising."""
        setup_logging(log_level="DEBUG")
        get_logger("test").info("record_processed", record_id="r-1")


class TestConfigureLogging:
    """Tests for logging configured from settings."""

    def test_uses_app_config(self, tmp_path):
        """Level and file come from the application config."""
        log_file = tmp_path / "assistant.log"

        configure_logging(AppConfig(log_level="ERROR", log_file=str(log_file)))

        assert logging.getLogger().level == logging.ERROR
        assert log_file.exists()

    def test_drop_unset_context(self):
        """Context ids bound as None are removed; other fields stay."""
        event_dict = {"event": "message_received", "session_id": None, "user_id": "u-1", "extra": None}

        result = drop_unset_context(None, "info", event_dict)

        assert result == {"event": "message_received", "user_id": "u-1", "extra": None}
