"""Tests for logging configuration."""

from unittest.mock import patch

import pytest

from screentrail import logging_config
from screentrail.config import save_config
from screentrail.logging_config import LoggingSettings, _build_logging_config, setup_logging


class TestBuildLoggingConfig:
    def test_console_and_rotating_file(self, isolated_home):
        config = _build_logging_config(settings=LoggingSettings(max_size_mb=2, backup_count=3))

        assert config["root"]["handlers"] == ["console", "file"]
        file_handler = config["handlers"]["file"]
        assert file_handler["class"] == "logging.handlers.RotatingFileHandler"
        assert file_handler["maxBytes"] == 2 * 1024 * 1024
        assert file_handler["backupCount"] == 3
        assert file_handler["filename"] == str(isolated_home / "logs" / "screentrail.log")
        assert config["handlers"]["console"]["level"] == "INFO"

    def test_verbose_console(self):
        config = _build_logging_config(verbose=True, settings=LoggingSettings())

        assert config["handlers"]["console"]["level"] == "DEBUG"

    def test_file_logging_disabled(self):
        config = _build_logging_config(settings=LoggingSettings(enabled=False))

        assert "file" not in config["handlers"]
        assert config["root"]["handlers"] == ["console"]

    def test_noisy_libraries_are_quieted(self):
        config = _build_logging_config(settings=LoggingSettings(enabled=False))

        assert config["loggers"]["PIL"] == {"level": "WARNING"}

    def test_reads_logging_section(self):
        save_config({"logging": {"enabled": False}})

        config = _build_logging_config()

        assert "file" not in config["handlers"]

    def test_invalid_logging_section_falls_back(self, capsys):
        save_config({"logging": {"max_size_mb": 0}})

        config = _build_logging_config()

        assert "file" in config["handlers"]
        assert "Ignoring invalid [logging] config" in capsys.readouterr().err


class TestSetupLogging:
    @pytest.fixture(autouse=True)
    def unconfigured(self, monkeypatch):
        monkeypatch.setattr(logging_config, "_logging_configured", False)

    def test_runs_once(self):
        with patch("logging.config.dictConfig") as dict_config:
            setup_logging()
            setup_logging(verbose=True)

        assert dict_config.call_count == 1

    def test_falls_back_to_basic_config(self, capsys):
        with (
            patch("logging.config.dictConfig", side_effect=ValueError("bad handler")),
            patch("logging.basicConfig") as basic_config,
        ):
            setup_logging()

        basic_config.assert_called_once()
        assert "Failed to configure logging" in capsys.readouterr().err
