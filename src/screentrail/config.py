"""Configuration management for screentrail."""

import logging
import os
import tomllib

from pathlib import Path
from typing import Any, Literal

import tomli_w

from pydantic import BaseModel, ConfigDict, Field

from screentrail.constants import (
    DEFAULT_APP_DIR,
    DEFAULT_CONFIG_FILE,
    DEFAULT_PLUGIN_DIR,
    EventDetectionConstants as EDC,
    EvidenceConstants as EC,
    PluginConstants as PC,
    RecognitionConstants as RC,
)
from screentrail.logging_config import LoggingSettings

logger = logging.getLogger(__name__)


# ============================================================================
# Settings Models
# ============================================================================


class RecognitionSettings(BaseModel):
    """Fallback coordinator settings (``[recognition]`` section)."""

    model_config = ConfigDict(extra="ignore")

    primary_engine: str = Field(default=RC.PRIMARY_ENGINE)
    secondary_engine: str = Field(default=RC.SECONDARY_ENGINE)
    mode: Literal["fallback", "hybrid"] = Field(default="fallback")
    minimum_primary_confidence: float = Field(
        default=RC.MINIMUM_PRIMARY_CONFIDENCE, ge=0.0, le=1.0
    )
    aggregation: Literal["mean", "minimum"] = Field(default="mean")
    engine_timeout: float = Field(default=RC.ENGINE_TIMEOUT_SECONDS, gt=0)
    max_retry_attempts: int = Field(default=RC.MAX_RETRY_ATTEMPTS, ge=0)
    enable_automatic_fallback: bool = Field(default=True)
    hybrid_iou_threshold: float = Field(
        default=RC.HYBRID_IOU_THRESHOLD, ge=0.0, le=1.0
    )
    prefer_secondary_for_languages: list[str] = Field(default_factory=list)
    metrics_window: int = Field(default=RC.METRICS_WINDOW, ge=1)


class PluginSettings(BaseModel):
    """Plugin loading and sandbox settings (``[plugins]`` section)."""

    model_config = ConfigDict(extra="ignore")

    plugin_directory: Path = Field(default=DEFAULT_PLUGIN_DIR)
    sandbox_enabled: bool = Field(default=True)
    max_memory_usage: int = Field(default=PC.MAX_MEMORY_USAGE, gt=0)
    max_execution_time: float = Field(default=PC.MAX_EXECUTION_TIME, gt=0)
    disabled: list[str] = Field(default_factory=list)
    settings: dict[str, dict[str, Any]] = Field(default_factory=dict)


class EventSettings(BaseModel):
    """Delta alignment and classification settings (``[events]`` section)."""

    model_config = ConfigDict(extra="ignore")

    modified_iou_threshold: float = Field(
        default=EDC.MODIFIED_IOU_THRESHOLD, ge=0.0, le=1.0
    )
    ambiguity_margin: float = Field(default=EDC.AMBIGUITY_MARGIN, ge=0.0)
    max_move_distance: float = Field(default=EDC.MAX_MOVE_DISTANCE, ge=0.0)
    min_result_confidence: float = Field(
        default=EDC.MIN_RESULT_CONFIDENCE, ge=0.0, le=1.0
    )
    snapshot_cache_size: int = Field(default=EDC.SNAPSHOT_CACHE_SIZE, ge=1)
    importance_overrides: dict[str, str] = Field(default_factory=dict)


class EvidenceSettings(BaseModel):
    """Temporal correlation and propagation settings (``[evidence]`` section)."""

    model_config = ConfigDict(extra="ignore")

    max_temporal_distance: float = Field(default=EC.MAX_TEMPORAL_DISTANCE, gt=0)
    temporal_decay_seconds: float = Field(default=EC.TEMPORAL_DECAY_SECONDS, gt=0)
    min_correlation_score: float = Field(
        default=EC.MIN_CORRELATION_SCORE, ge=0.0, le=1.0
    )
    max_correlated_frames: int = Field(default=EC.MAX_CORRELATED_FRAMES, ge=0)
    time_weight: float = Field(default=EC.TIME_WEIGHT, ge=0.0)
    application_weight: float = Field(default=EC.APPLICATION_WEIGHT, ge=0.0)
    title_weight: float = Field(default=EC.TITLE_WEIGHT, ge=0.0)
    missing_frame_confidence: float = Field(
        default=EC.MISSING_FRAME_CONFIDENCE, ge=0.0, le=1.0
    )


class PipelineSettings(BaseModel):
    """Effective settings for the whole pipeline."""

    model_config = ConfigDict(extra="ignore")

    recognition: RecognitionSettings = Field(default_factory=RecognitionSettings)
    plugins: PluginSettings = Field(default_factory=PluginSettings)
    events: EventSettings = Field(default_factory=EventSettings)
    evidence: EvidenceSettings = Field(default_factory=EvidenceSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# ============================================================================
# TOML File Handling
# ============================================================================


def get_config_path() -> Path:
    """
    Get the path to the configuration file.

    Returns:
        Path to ~/.screentrail/config.toml
    """
    return DEFAULT_APP_DIR / DEFAULT_CONFIG_FILE


def load_config() -> dict[str, Any]:
    """
    Load configuration from TOML file.

    Returns:
        Configuration dictionary. Returns empty dict if file doesn't exist
        or is corrupted.
    """
    config_path = get_config_path()

    if not config_path.exists():
        return {}

    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except Exception as e:
        logger.warning(f"Failed to load config from {config_path}: {e}")
        logger.warning("Treating config as empty. Fix or delete the file to resolve.")
        return {}


def save_config(config: dict[str, Any]) -> None:
    """
    Save configuration to TOML file using atomic write.

    Creates the parent directory if it doesn't exist.
    Uses temp file + rename for atomic operation.

    Args:
        config: Configuration dictionary to save

    Raises:
        PermissionError: If directory cannot be created or file cannot be written
    """
    config_path = get_config_path()

    config_dir = config_path.parent
    try:
        os.makedirs(config_dir, exist_ok=True)
    except PermissionError as e:
        raise PermissionError(
            f"Cannot create config directory {config_dir}: {e}"
        ) from e

    temp_path = config_path.with_suffix(".toml.tmp")

    try:
        with open(temp_path, "wb") as f:
            tomli_w.dump(config, f)

        os.replace(temp_path, config_path)

    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise


def load_settings(config: dict[str, Any] | None = None) -> PipelineSettings:
    """
    Build validated pipeline settings from a config dictionary.

    Args:
        config: Raw config mapping. If None, reads ``config.toml``.

    Returns:
        PipelineSettings with defaults filled in for missing sections

    Raises:
        pydantic.ValidationError: If a known key has an invalid value
    """
    if config is None:
        config = load_config()
    return PipelineSettings.model_validate(config)


def _coerce_value(raw: str) -> Any:
    """Interpret a CLI string as a TOML scalar, falling back to the raw string."""
    try:
        return tomllib.loads(f"value = {raw}")["value"]
    except tomllib.TOMLDecodeError:
        return raw


def set_config_value(key: str, raw_value: str) -> Any:
    """
    Set a dotted key (e.g. ``recognition.mode``) in the config file.

    The resulting configuration is validated before it is written.

    Args:
        key: Dotted path of the setting
        raw_value: Value as typed on the command line

    Returns:
        The value that was stored

    Raises:
        ValueError: If the key is malformed
        pydantic.ValidationError: If the new value is invalid
    """
    parts = key.split(".")
    if len(parts) < 2 or not all(parts):
        raise ValueError(f"Config key must look like 'section.name', got {key!r}")

    value = _coerce_value(raw_value)
    config = load_config()

    node = config
    for part in parts[:-1]:
        child = node.setdefault(part, {})
        if not isinstance(child, dict):
            raise ValueError(f"Config key {part!r} is not a section")
        node = child
    node[parts[-1]] = value

    load_settings(config)
    save_config(config)
    logger.info(f"Set config {key} = {value!r}")
    return value
