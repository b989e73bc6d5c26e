"""Text recognition: engine interface, adapters and the fallback coordinator."""

from screentrail.recognition.base import (
    EngineError,
    EngineTimeoutError,
    RecognitionEngine,
    RecognitionFailedError,
    aggregate_confidence,
)
from screentrail.recognition.fallback import FallbackCoordinator

__all__ = [
    "EngineError",
    "EngineTimeoutError",
    "FallbackCoordinator",
    "RecognitionEngine",
    "RecognitionFailedError",
    "aggregate_confidence",
]
