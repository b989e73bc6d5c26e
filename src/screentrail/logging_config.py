"""Centralized logging configuration for screentrail."""

import logging
import logging.config
import os
import sys

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from screentrail.constants import (
    DEFAULT_LOG_BACKUP_COUNT,
    DEFAULT_LOG_DIR,
    DEFAULT_LOG_FILE,
)

_logging_configured = False

# Libraries that log every image or model load at INFO
_NOISY_LOGGERS = ("PIL", "easyocr", "pytesseract")

_FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class LoggingSettings(BaseModel):
    """File logging settings (``[logging]`` section)."""

    model_config = ConfigDict(extra="ignore")

    enabled: bool = Field(default=True, description="Write a rotating log file")
    level: str = Field(default="DEBUG", description="File handler level")
    max_size_mb: int = Field(default=10, ge=1, description="Rotate after this size")
    backup_count: int = Field(default=DEFAULT_LOG_BACKUP_COUNT, ge=0)


def get_log_dir() -> Path:
    """
    Get log directory path, creating if needed.

    Returns:
        Path to log directory
    """
    log_dir = DEFAULT_LOG_DIR
    os.makedirs(log_dir, mode=0o700, exist_ok=True)
    return log_dir


def get_log_path() -> Path:
    """Path to the active screentrail.log."""
    return get_log_dir() / DEFAULT_LOG_FILE


def _get_user_logging_settings() -> LoggingSettings:
    """
    Load logging settings from the config file.

    An invalid ``[logging]`` section is reported on stderr and replaced by
    defaults, since logging is not configured yet at this point.
    """
    from screentrail.config import load_config

    section = load_config().get("logging", {})
    if not isinstance(section, dict):
        return LoggingSettings()

    try:
        return LoggingSettings.model_validate(section)
    except ValidationError as e:
        sys.stderr.write(f"WARNING: Ignoring invalid [logging] config: {e}\n")
        return LoggingSettings()


def _build_logging_config(
    verbose: bool = False,
    console_format: str | None = None,
    settings: LoggingSettings | None = None,
) -> dict[str, Any]:
    """
    Build the dictConfig configuration dictionary.

    Args:
        verbose: If True, set console to DEBUG level
        console_format: Override console format string
        settings: File logging settings; read from config.toml when omitted

    Returns:
        Dictionary suitable for logging.config.dictConfig()
    """
    if settings is None:
        settings = _get_user_logging_settings()

    config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {"format": console_format or _FILE_FORMAT},
            "file": {"format": _FILE_FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": "DEBUG" if verbose else "INFO",
                "formatter": "console",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {name: {"level": "WARNING"} for name in _NOISY_LOGGERS},
        "root": {
            "level": "DEBUG",
            "handlers": ["console"],
        },
    }

    if settings.enabled:
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": settings.level.upper(),
            "formatter": "file",
            "filename": str(get_log_path()),
            "maxBytes": settings.max_size_mb * 1024 * 1024,
            "backupCount": settings.backup_count,
            "encoding": "utf-8",
        }
        config["root"]["handlers"].append("file")

    return config


def setup_logging(
    *,
    verbose: bool = False,
    console_format: str | None = None,
) -> None:
    """
    Configure logging for the screentrail CLI.

    Runs once per process; later calls are no-ops. Library users that embed
    the pipeline are expected to configure logging themselves.

    Args:
        verbose: If True, set console to DEBUG level
        console_format: Override console format string. If None, uses full format.
    """
    global _logging_configured

    if _logging_configured:
        return

    try:
        config = _build_logging_config(verbose=verbose, console_format=console_format)
        logging.config.dictConfig(config)
    except (OSError, ValueError, TypeError) as e:
        sys.stderr.write(f"WARNING: Failed to configure logging: {e}\n")
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format=console_format or "%(levelname)s: %(message)s",
        )

    _logging_configured = True
