"""
Fallback coordinator for text recognition.

Chooses between a primary and a secondary engine per frame:

1. The primary engine runs with a bounded timeout.
2. If it errors, times out, returns nothing, or its aggregate confidence is
   below ``minimum_primary_confidence``, the secondary engine runs and its
   output is used instead.
3. Engines that errored are retried while the retry budget lasts. Once the
   budget is spent the best successful output is returned as a partial
   result; only when no engine produced anything is RecognitionFailedError
   raised.

In hybrid mode both engines run concurrently and their regions are merged.
"""

import asyncio
import logging
import time

from screentrail.config import RecognitionSettings
from screentrail.models.recognition import (
    FallbackReason,
    Frame,
    RecognitionOutcome,
    RecognitionResult,
)
from screentrail.recognition.base import (
    EngineError,
    EngineTimeoutError,
    RecognitionEngine,
    RecognitionFailedError,
    aggregate_confidence,
)
from screentrail.recognition.merge import merge_results
from screentrail.recognition.metrics import (
    CoordinatorMetrics,
    CoordinatorMetricsSnapshot,
)

logger = logging.getLogger(__name__)


class _FrameAttempts:
    """Bookkeeping for all engine invocations on one frame."""

    def __init__(self) -> None:
        self.engines_used: list[str] = []
        self.attempts = 0
        self.errors: list[EngineError] = []
        self.successes: list[list[RecognitionResult]] = []
        self.failed_engines: list[RecognitionEngine] = []

    def note_engine(self, engine: RecognitionEngine) -> None:
        self.attempts += 1
        if engine.name not in self.engines_used:
            self.engines_used.append(engine.name)


class FallbackCoordinator:
    """
    Per-frame engine selection with fallback, retries and metrics.

    Args:
        primary: Fast, high-quality engine tried first
        secondary: Slower engine used on low confidence or failure
        settings: Thresholds and mode; defaults when omitted

    Example:
        coordinator = FallbackCoordinator(TesseractEngine(), EasyOCREngine())
        outcome = await coordinator.recognize(frame)
        outcome.engines_used  # ["tesseract"] or ["tesseract", "easyocr"]
    """

    def __init__(
        self,
        primary: RecognitionEngine,
        secondary: RecognitionEngine,
        settings: RecognitionSettings | None = None,
    ) -> None:
        self.primary = primary
        self.secondary = secondary
        self.settings = settings or RecognitionSettings()
        self._metrics = CoordinatorMetrics(window=self.settings.metrics_window)

    @classmethod
    def from_settings(cls, settings: RecognitionSettings) -> "FallbackCoordinator":
        """Build a coordinator with engines looked up by their configured names."""
        from screentrail.recognition.engines import get_engine

        primary = get_engine(settings.primary_engine)
        secondary = get_engine(settings.secondary_engine)
        logger.info(
            f"Recognition engines: primary={primary.name}, secondary={secondary.name}, "
            f"mode={settings.mode}"
        )
        return cls(primary, secondary, settings)

    # ========================================================================
    # Public API
    # ========================================================================

    async def recognize(self, frame: Frame) -> RecognitionOutcome:
        """
        Recognize text in one frame.

        Args:
            frame: Captured frame with image payload and context

        Returns:
            RecognitionOutcome whose confidence is the aggregate of the
            returned results

        Raises:
            RecognitionFailedError: If no engine produced any output
        """
        if self.settings.mode == "hybrid":
            return await self._recognize_hybrid(frame)
        return await self._recognize_with_fallback(frame)

    def get_metrics(self) -> CoordinatorMetricsSnapshot:
        return self._metrics.snapshot()

    def reset_metrics(self) -> None:
        self._metrics.reset()

    # ========================================================================
    # Fallback Mode
    # ========================================================================

    def _engine_chain(self, frame: Frame) -> tuple[list[RecognitionEngine], bool]:
        """Engines to try in order, and whether the first is confidence-gated."""
        if not self.settings.enable_automatic_fallback:
            return [self.primary], False

        hint = frame.language_hint
        if hint and hint in self.settings.prefer_secondary_for_languages:
            return [self.secondary, self.primary], False

        return [self.primary, self.secondary], True

    async def _recognize_with_fallback(self, frame: Frame) -> RecognitionOutcome:
        log = _FrameAttempts()
        chain, gate_first = self._engine_chain(frame)
        reason: FallbackReason | None = None
        if chain[0] is self.secondary:
            reason = FallbackReason.LANGUAGE_PREFERENCE
            logger.debug(
                f"Frame {frame.id}: language '{frame.language_hint}' prefers "
                f"{self.secondary.name}"
            )

        for index, engine in enumerate(chain):
            results = await self._attempt(engine, frame, log)
            is_last = index == len(chain) - 1

            if results is None:
                if reason is None:
                    reason = self._error_reason(log.errors[-1])
                continue

            if is_last or not gate_first or index > 0:
                return self._finish(results, log, reason, frame)

            confidence = aggregate_confidence(results, self.settings.aggregation)
            if not results:
                reason = FallbackReason.NO_TEXT_DETECTED
            elif confidence < self.settings.minimum_primary_confidence:
                reason = FallbackReason.LOW_CONFIDENCE
            else:
                return self._finish(results, log, None, frame)

            logger.debug(
                f"Frame {frame.id}: {engine.name} {reason.value} "
                f"(confidence {confidence:.2f}), falling back"
            )

        retried = await self._retry_failed(frame, log)
        if retried is not None:
            return self._finish(retried, log, reason, frame)

        return self._best_partial(log, reason, frame)

    async def _retry_failed(
        self, frame: Frame, log: _FrameAttempts
    ) -> list[RecognitionResult] | None:
        """Retry engines that errored, in order, until one succeeds or budget runs out."""
        retries_left = self.settings.max_retry_attempts
        pending = list(dict.fromkeys(log.failed_engines))

        while retries_left > 0 and pending:
            engine = pending.pop(0)
            retries_left -= 1
            logger.debug(f"Frame {frame.id}: retrying {engine.name}")
            results = await self._attempt(engine, frame, log)
            if results is not None:
                return results
            pending.append(engine)

        return None

    # ========================================================================
    # Hybrid Mode
    # ========================================================================

    async def _recognize_hybrid(self, frame: Frame) -> RecognitionOutcome:
        log = _FrameAttempts()
        outputs = await asyncio.gather(
            self._attempt(self.primary, frame, log),
            self._attempt(self.secondary, frame, log),
        )
        # gather preserves argument order regardless of completion order
        log.engines_used = [self.primary.name, self.secondary.name]

        retries_left = self.settings.max_retry_attempts
        while retries_left > 0 and any(o is None for o in outputs):
            retries_left -= 1
            engines = (self.primary, self.secondary)
            outputs = list(
                await asyncio.gather(
                    *(
                        self._attempt(engine, frame, log) if out is None else _ready(out)
                        for engine, out in zip(engines, outputs)
                    )
                )
            )

        primary_out, secondary_out = outputs
        if primary_out is None and secondary_out is None:
            return self._best_partial(log, FallbackReason.ENGINE_ERROR, frame)

        merged = merge_results(
            primary_out or [], secondary_out or [], self.settings.hybrid_iou_threshold
        )
        reason = None if primary_out is not None else FallbackReason.ENGINE_ERROR
        outcome = self._finish(merged, log, reason, frame)
        outcome.hybrid = True
        return outcome

    # ========================================================================
    # Attempt Execution
    # ========================================================================

    async def _attempt(
        self, engine: RecognitionEngine, frame: Frame, log: _FrameAttempts
    ) -> list[RecognitionResult] | None:
        """Run one engine once; record metrics and return None on failure."""
        log.note_engine(engine)
        metrics = self._metrics.for_engine(engine.name)
        start = time.perf_counter()

        try:
            results = await asyncio.wait_for(
                engine.recognize_async(frame.image), timeout=self.settings.engine_timeout
            )
        except TimeoutError:
            error: EngineError = EngineTimeoutError(
                f"{engine.name} timed out after {self.settings.engine_timeout}s",
                engine=engine.name,
            )
        except EngineError as e:
            error = e
        except Exception as e:
            # Third-party engines raise their own types; contain them like EngineError
            error = EngineError(f"{engine.name} raised {type(e).__name__}: {e}", engine.name)
        else:
            metrics.record_success(time.perf_counter() - start)
            log.successes.append(results)
            return results

        metrics.record_failure(time.perf_counter() - start)
        log.errors.append(error)
        log.failed_engines.append(engine)
        logger.warning(f"Frame {frame.id}: engine {engine.name} failed: {error}")
        return None

    @staticmethod
    def _error_reason(error: EngineError) -> FallbackReason:
        if isinstance(error, EngineTimeoutError):
            return FallbackReason.TIMEOUT
        return FallbackReason.ENGINE_ERROR

    def _best_partial(
        self, log: _FrameAttempts, reason: FallbackReason | None, frame: Frame
    ) -> RecognitionOutcome:
        if not log.successes:
            self._metrics.record_frame(used_fallback=reason is not None)
            logger.error(
                f"Frame {frame.id}: all engines failed after {log.attempts} attempts"
            )
            raise RecognitionFailedError(
                f"Recognition failed on frame {frame.id}: "
                + "; ".join(str(e) for e in log.errors),
                errors=log.errors,
            )

        best = max(
            log.successes,
            key=lambda r: aggregate_confidence(r, self.settings.aggregation),
        )
        logger.warning(
            f"Frame {frame.id}: retry budget spent, returning best partial result"
        )
        outcome = self._finish(best, log, reason, frame)
        outcome.partial = True
        return outcome

    def _finish(
        self,
        results: list[RecognitionResult],
        log: _FrameAttempts,
        reason: FallbackReason | None,
        frame: Frame,
    ) -> RecognitionOutcome:
        self._metrics.record_frame(used_fallback=reason is not None)
        confidence = aggregate_confidence(results, self.settings.aggregation)
        logger.debug(
            f"Frame {frame.id}: {len(results)} regions via {log.engines_used} "
            f"in {log.attempts} attempts (confidence {confidence:.2f})"
        )
        return RecognitionOutcome(
            results=results,
            engines_used=list(log.engines_used),
            attempts=log.attempts,
            confidence=confidence,
            fallback_reason=reason,
            errors=[str(e) for e in log.errors],
        )


async def _ready(value: list[RecognitionResult]) -> list[RecognitionResult]:
    return value
