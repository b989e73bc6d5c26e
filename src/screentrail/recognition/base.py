"""
Recognition Engine Interface

Every text-recognition engine (Tesseract, EasyOCR, a test double...) is
wrapped in a RecognitionEngine so the fallback coordinator can swap engines
without knowing anything about them.
"""

import asyncio

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any, Literal

from screentrail.constants import RecognitionConstants as RC
from screentrail.models.recognition import RecognitionResult

Aggregation = Literal["mean", "minimum"]


def aggregate_confidence(
    results: Sequence[RecognitionResult], method: Aggregation = "mean"
) -> float:
    """
    Collapse per-region confidences into one frame-level value.

    Args:
        results: Recognition results for one frame
        method: "mean" or "minimum"

    Returns:
        Aggregate confidence; 0.0 for an empty result list
    """
    if not results:
        return 0.0
    confidences = [r.confidence for r in results]
    if method == "minimum":
        return min(confidences)
    return sum(confidences) / len(confidences)


class RecognitionEngine(ABC):
    """
    Abstract base class for text-recognition engines.

    Subclasses implement ``_recognize``; ``recognize`` records the aggregate
    confidence of the last call so it can be read back through
    ``confidence``. Engines that can be cancelled cooperatively should
    override ``recognize_async``; the default runs ``recognize`` in a worker
    thread.

    Usage Example:
        class MyEngine(RecognitionEngine):
            name = "mine"

            def _recognize(self, image):
                return [RecognitionResult(...)]
    """

    name: str = "engine"

    def __init__(self, language: str = RC.DEFAULT_LANGUAGE) -> None:
        self._language = language
        self._last_confidence = 0.0

    @property
    def language(self) -> str:
        """Language code the engine is configured for."""
        return self._language

    @property
    def confidence(self) -> float:
        """Mean confidence of the most recent recognition."""
        return self._last_confidence

    @abstractmethod
    def _recognize(self, image: Any) -> list[RecognitionResult]:
        """
        Run the engine on one image.

        Raises:
            EngineError: If the engine cannot process the image
        """
        pass

    def recognize(self, image: Any) -> list[RecognitionResult]:
        """Recognize text regions in ``image``."""
        results = self._recognize(image)
        self._last_confidence = aggregate_confidence(results)
        return results

    async def recognize_async(self, image: Any) -> list[RecognitionResult]:
        """Recognize without blocking the event loop."""
        return await asyncio.to_thread(self.recognize, image)

    def supports_language(self, language: str) -> bool:
        return language == self._language

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, language={self._language!r})"


# ============================================================================
# Errors
# ============================================================================


class EngineError(Exception):
    """Base exception for recognition engine failures."""

    def __init__(self, message: str, engine: str | None = None):
        super().__init__(message)
        self.engine = engine


class EngineTimeoutError(EngineError):
    """Engine did not finish within its time bound."""


class RecognitionFailedError(EngineError):
    """
    Every engine failed on a frame.

    This is the only per-frame error the pipeline surfaces to callers.
    """

    def __init__(self, message: str, errors: Sequence[EngineError] = ()):
        super().__init__(message)
        self.errors = list(errors)
