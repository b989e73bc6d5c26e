"""
Per-frame perception pipeline.

Composes recognition, plugin dispatch and event detection for one frame:

    frame → FallbackCoordinator → PluginDispatcher → EventDetector

Frames from different contexts run fully in parallel. Within one context a
newer frame cancels the processing of an older in-flight frame; the older
caller gets FrameSupersededError and no events are emitted for it.
"""

import asyncio
import logging

from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict, Field

from screentrail.config import PipelineSettings, load_settings
from screentrail.events.detector import EventDetector
from screentrail.models.events import ClassifiedEvent
from screentrail.models.recognition import ApplicationContext, Frame, RecognitionOutcome
from screentrail.plugins.dispatcher import DispatchResult, PluginDispatcher
from screentrail.plugins.registry import PluginRegistry
from screentrail.recognition.fallback import FallbackCoordinator

logger = logging.getLogger(__name__)

ContextKey = tuple[str, str]


class FrameSupersededError(Exception):
    """A frame's processing was cancelled by a newer frame for the same context."""

    def __init__(self, frame_id: str, context_key: ContextKey):
        self.frame_id = frame_id
        self.context_key = context_key
        super().__init__(f"Frame {frame_id} superseded for context {context_key}")


class FrameResult(BaseModel):
    """Everything the pipeline produced for one frame."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    frame_id: str
    context: ApplicationContext
    outcome: RecognitionOutcome
    dispatch: DispatchResult = Field(default_factory=DispatchResult)
    events: list[ClassifiedEvent] = Field(default_factory=list)


class PerceptionPipeline:
    """
    Runs frames through recognition, plugins and event detection.

    Args:
        coordinator: Fallback coordinator for recognition
        dispatcher: Plugin dispatcher; no plugin output when omitted
        detector: Event detector; a base-rules detector when omitted
    """

    def __init__(
        self,
        coordinator: FallbackCoordinator,
        dispatcher: PluginDispatcher | None = None,
        detector: EventDetector | None = None,
    ) -> None:
        self.coordinator = coordinator
        self.dispatcher = dispatcher
        self.detector = detector or EventDetector(dispatcher=dispatcher)
        self._in_flight: dict[ContextKey, tuple[Frame, asyncio.Task]] = {}
        self._superseded: set[str] = set()

    @classmethod
    def from_settings(
        cls,
        settings: PipelineSettings | None = None,
        registry: PluginRegistry | None = None,
    ) -> "PerceptionPipeline":
        """Build a pipeline with configured engines and all available plugins."""
        from screentrail.plugins.register_all import register_all_plugins

        settings = settings or load_settings()
        registry = register_all_plugins(registry or PluginRegistry(), settings.plugins)
        dispatcher = PluginDispatcher(registry)
        return cls(
            FallbackCoordinator.from_settings(settings.recognition),
            dispatcher,
            EventDetector(settings.events, dispatcher),
        )

    @property
    def in_flight(self) -> int:
        return sum(1 for _, task in self._in_flight.values() if not task.done())

    async def process_frame(self, frame: Frame) -> FrameResult:
        """
        Process one frame, superseding any older in-flight frame of its context.

        Raises:
            RecognitionFailedError: If no engine produced output for the frame
            FrameSupersededError: If a newer frame for the context cancelled this one
        """
        key = frame.context.context_key
        current = self._in_flight.get(key)
        if current is not None:
            older, older_task = current
            if not older_task.done() and frame.capture_timestamp >= older.capture_timestamp:
                logger.info(f"Frame {frame.id} supersedes in-flight frame {older.id} for {key}")
                self._superseded.add(older.id)
                older_task.cancel()

        task = asyncio.create_task(self._run(frame))
        self._in_flight[key] = (frame, task)
        try:
            return await task
        except asyncio.CancelledError:
            if frame.id in self._superseded:
                self._superseded.discard(frame.id)
                raise FrameSupersededError(frame.id, key) from None
            raise
        finally:
            entry = self._in_flight.get(key)
            if entry is not None and entry[1] is task:
                del self._in_flight[key]

    async def _run(self, frame: Frame) -> FrameResult:
        outcome = await self.coordinator.recognize(frame)
        results = list(outcome.results)

        dispatch = DispatchResult()
        if self.dispatcher is not None:
            dispatch = await self.dispatcher.dispatch(results, frame.context)

        events = await self.detector.process(
            frame.context,
            results,
            frame_id=frame.id,
            timestamp=frame.capture_timestamp,
        )

        logger.debug(
            f"Frame {frame.id}: {len(results)} result(s) via {outcome.engines_used}, "
            f"{len(dispatch.structured_elements)} element(s), {len(events)} event(s)"
        )
        return FrameResult(
            frame_id=frame.id,
            context=frame.context,
            outcome=outcome,
            dispatch=dispatch,
            events=events,
        )

    async def process_frames(
        self, frames: Sequence[Frame]
    ) -> list[FrameResult | Exception]:
        """
        Process a batch of frames, returning a result or error per frame.

        Contexts run concurrently; frames of one context run in capture order
        so each produces its own events. A failed frame never stops the others.
        """
        by_context: dict[ContextKey, list[int]] = {}
        for index, frame in enumerate(frames):
            by_context.setdefault(frame.context.context_key, []).append(index)

        outputs: list[FrameResult | Exception | None] = [None] * len(frames)

        async def run_context(indices: list[int]) -> None:
            for index in sorted(indices, key=lambda i: frames[i].capture_timestamp):
                try:
                    outputs[index] = await self.process_frame(frames[index])
                except Exception as e:
                    logger.warning(f"Frame {frames[index].id} failed: {e}")
                    outputs[index] = e

        await asyncio.gather(*(run_context(indices) for indices in by_context.values()))
        return [output for output in outputs if output is not None]

    async def close(self) -> None:
        """Cancel in-flight frames and release plugin resources."""
        tasks = [task for _, task in self._in_flight.values() if not task.done()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._in_flight.clear()
        if self.dispatcher is not None:
            self.dispatcher.registry.cleanup_all()
