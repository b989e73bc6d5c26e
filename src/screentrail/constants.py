"""
Constants and tuning defaults for the screentrail perception pipeline.

Every threshold here is a default; the values actually used at runtime come
from ``PipelineSettings`` and can be overridden in ``config.toml``.
"""

from pathlib import Path

# ============================================================================
# Paths
# ============================================================================

DEFAULT_APP_DIR = Path.home() / ".screentrail"
DEFAULT_CONFIG_FILE = "config.toml"
DEFAULT_LOG_DIR = DEFAULT_APP_DIR / "logs"
DEFAULT_LOG_FILE = "screentrail.log"
DEFAULT_LOG_BACKUP_COUNT = 5
DEFAULT_PLUGIN_DIR = DEFAULT_APP_DIR / "plugins"


# ============================================================================
# Text Recognition
# ============================================================================


class RecognitionConstants:
    """Defaults for the fallback coordinator and engine adapters."""

    PRIMARY_ENGINE = "tesseract"
    SECONDARY_ENGINE = "easyocr"

    MINIMUM_PRIMARY_CONFIDENCE = 0.4
    ENGINE_TIMEOUT_SECONDS = 10.0
    MAX_RETRY_ATTEMPTS = 2

    # Overlap above which two regions from different engines describe the same text
    HYBRID_IOU_THRESHOLD = 0.5

    # Rolling latency window (number of samples per engine)
    METRICS_WINDOW = 100

    DEFAULT_LANGUAGE = "en"


# ============================================================================
# Plugins
# ============================================================================


class PluginConstants:
    """Defaults for plugin sandboxing and discovery."""

    MAX_MEMORY_USAGE = 100 * 1024 * 1024  # 100 MiB
    MAX_EXECUTION_TIME = 30.0  # seconds

    MANIFEST_FILE = "manifest.json"
    CONFIG_FILE = "config.json"
    PLUGIN_DIR_SUFFIX = ".plugin"

    WILDCARD = "*"


class ToolkitConstants:
    """Thresholds used by the base enhancement toolkit."""

    # Value must lie within this many pixels of its label
    MAX_PAIRING_DISTANCE = 200.0
    # Vertical slack for "same row" and horizontal slack for "same column"
    ROW_TOLERANCE = 10.0
    COLUMN_TOLERANCE = 20.0

    BUTTON_KEYWORDS = (
        "OK",
        "Cancel",
        "Submit",
        "Save",
        "Delete",
        "Edit",
        "Add",
        "Remove",
        "Next",
        "Previous",
        "Continue",
        "Finish",
    )
    MAX_BUTTON_LENGTH = 20


# ============================================================================
# Event Detection
# ============================================================================


class EventDetectionConstants:
    """Thresholds for snapshot alignment and event classification."""

    MODIFIED_IOU_THRESHOLD = 0.7
    # Two candidate matches whose scores differ by less than this are ambiguous
    AMBIGUITY_MARGIN = 0.05
    # Same text within this center distance (pixels) counts as unchanged
    MAX_MOVE_DISTANCE = 50.0
    MIN_RESULT_CONFIDENCE = 0.0

    SNAPSHOT_CACHE_SIZE = 256

    ERROR_KEYWORDS = (
        "error",
        "failed",
        "failure",
        "exception",
        "invalid",
        "denied",
        "not found",
        "cannot",
        "unable to",
    )
    MODAL_KEYWORDS = (
        "are you sure",
        "confirm",
        "dialog",
        "warning",
        "alert",
        "do you want to",
    )
    SUBMISSION_KEYWORDS = (
        "submitted",
        "saved",
        "sent",
        "success",
        "successfully",
        "thank you",
        "completed",
    )


# ============================================================================
# Evidence Linking
# ============================================================================


class EvidenceConstants:
    """Defaults for temporal correlation and confidence propagation."""

    MAX_TEMPORAL_DISTANCE = 300.0  # seconds
    TEMPORAL_DECAY_SECONDS = 60.0
    MIN_CORRELATION_SCORE = 0.5
    MAX_CORRELATED_FRAMES = 10

    TIME_WEIGHT = 0.5
    APPLICATION_WEIGHT = 0.3
    TITLE_WEIGHT = 0.2

    # Confidence assumed for a frame referenced by an event but not supplied
    MISSING_FRAME_CONFIDENCE = 0.5

    # Trace level weights (summary, event, frame)
    TRACE_LEVEL_WEIGHTS = {"summary": 0.1, "event": 0.3, "frame": 0.6}

    SUFFICIENT_EVENT_COUNT = 3
    SUBSTANTIAL_SESSION_SECONDS = 300.0
    LOW_FRAME_CONFIDENCE = 0.5
    BRIEF_SESSION_SECONDS = 60.0

    # Frame detail scoring
    DEFAULT_IMAGE_QUALITY = 0.9
    TEMPORAL_STABILITY_WINDOW = 30.0  # seconds
    FRAMES_FOR_FULL_CONSISTENCY = 5
