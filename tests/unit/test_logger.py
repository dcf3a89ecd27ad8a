"""Logging configuration and secret redaction tests."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING

import pytest
import structlog

from mysqlconnect.logger import LoggingSettings, build_handler, build_processors, configure_logging, redact_secrets

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture
def restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    pymysql_logger = logging.getLogger("pymysql")
    handlers, level, pymysql_level = root.handlers[:], root.level, pymysql_logger.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    pymysql_logger.setLevel(pymysql_level)
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


class TestRedactSecrets:
    """Test the redact_secrets processor."""

    def test_masks_passwords(self) -> None:
        """Test password keys are masked."""
        event = redact_secrets(None, "info", {"event": "x", "password": "hunter2", "passwd": "hunter2"})

        assert event == {"event": "x", "password": "****", "passwd": "****"}

    def test_masks_dsn_password(self) -> None:
        """Test DSNs keep everything but the password."""
        event = redact_secrets(None, "info", {"event": "x", "dsn": "bar_WPROD:password@tcp(localhost:3306)/bar"})

        assert event["dsn"] == "bar_WPROD:****@tcp(localhost:3306)/bar"

    def test_leaves_other_keys(self) -> None:
        """Test unrelated keys and empty passwords are untouched."""
        event = redact_secrets(None, "info", {"event": "x", "connection": "master", "password": ""})

        assert event == {"event": "x", "connection": "master", "password": ""}


class TestLoggingSettings:
    """Test LoggingSettings defaults and environment overrides."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test default values."""
        monkeypatch.delenv("MYSQLCONNECT_LOG_LEVEL", raising=False)

        settings = LoggingSettings()

        assert settings.level == "INFO"
        assert settings.json_output is False
        assert settings.service_name == "mysqlconnect"
        assert settings.library_log_levels == {"pymysql": "WARNING"}

    def test_environment_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the MYSQLCONNECT_LOG_ prefix."""
        monkeypatch.setenv("MYSQLCONNECT_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("MYSQLCONNECT_LOG_JSON_OUTPUT", "true")

        settings = LoggingSettings()

        assert settings.level == "DEBUG"
        assert settings.json_output is True


class TestConfigureLogging:
    """Test processor and handler assembly."""

    def test_json_pipeline_redacts_before_rendering(self) -> None:
        """Test redaction runs before the JSON renderer."""
        processors = build_processors(LoggingSettings(json_output=True))

        assert processors.index(redact_secrets) < len(processors) - 1
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_file_handler(self, tmp_path: Path) -> None:
        """Test a file path selects a rotating file handler."""
        handler = build_handler(LoggingSettings(file_path=str(tmp_path / "logs" / "app.log"), level="WARNING"))

        try:
            assert isinstance(handler, RotatingFileHandler)
            assert handler.level == logging.WARNING
            assert (tmp_path / "logs").is_dir()
        finally:
            handler.close()

    @pytest.mark.usefixtures("restore_logging")
    def test_configure_sets_library_levels(self) -> None:
        """Test library loggers get their configured levels."""
        configure_logging(LoggingSettings(level="DEBUG", library_log_levels={"pymysql": "ERROR"}))

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("pymysql").level == logging.ERROR
