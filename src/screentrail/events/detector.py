"""
Delta-based event detection.

For each context (application identifier + window title) the detector keeps
the previous snapshot, diffs it against the new one, and produces classified
events from the base rules and any event-detection plugins that handle the
context.
"""

import logging

from collections.abc import Sequence
from datetime import datetime

from screentrail.config import EventSettings
from screentrail.events.classifier import BaseClassifier, base_events
from screentrail.events.delta import compute_delta
from screentrail.events.snapshot_cache import Snapshot, SnapshotCache
from screentrail.models.events import (
    ClassifiedEvent,
    DetectedEvent,
    EventClassification,
    RecognitionDelta,
)
from screentrail.models.recognition import ApplicationContext, RecognitionResult
from screentrail.plugins.dispatcher import PluginDispatcher

logger = logging.getLogger(__name__)


class EventDetector:
    """
    Turns successive recognition snapshots into classified events.

    Args:
        settings: Alignment thresholds, cache size and importance overrides
        dispatcher: Plugin dispatcher for plugin events and classification;
            base rules only when omitted

    Example:
        detector = EventDetector()
        await detector.process(context, first_results, frame_id="f1")   # []
        events = await detector.process(context, second_results, frame_id="f2")
    """

    def __init__(
        self,
        settings: EventSettings | None = None,
        dispatcher: PluginDispatcher | None = None,
    ) -> None:
        self.settings = settings or EventSettings()
        self.dispatcher = dispatcher
        self.classifier = BaseClassifier(self.settings.importance_overrides)
        self._cache = SnapshotCache(self.settings.snapshot_cache_size)

    @property
    def cached_contexts(self) -> int:
        return len(self._cache)

    def reset(self) -> None:
        self._cache.clear()

    async def process(
        self,
        context: ApplicationContext,
        results: Sequence[RecognitionResult],
        frame_id: str | None = None,
        timestamp: datetime | None = None,
    ) -> list[ClassifiedEvent]:
        """
        Diff ``results`` against the context's previous snapshot.

        The first snapshot of a context only establishes the baseline. A
        snapshot older than the cached one is stale and skipped, so each
        context's event stream is non-decreasing in time. The cache is
        updated only after events are fully computed; a cancelled call
        leaves it untouched.

        Args:
            context: Application context of the frame
            results: Recognition results of the frame
            frame_id: Frame id recorded as event evidence
            timestamp: Frame time; the context timestamp when omitted

        Returns:
            Classified events sorted by timestamp
        """
        key = context.context_key
        timestamp = timestamp or context.timestamp

        async with self._cache.lock_for(key):
            previous = self._cache.get(key)

            if previous is not None and timestamp < previous.timestamp:
                logger.warning(
                    f"Skipping stale frame {frame_id} for {key}: "
                    f"{timestamp.isoformat()} < {previous.timestamp.isoformat()}"
                )
                return []

            events: list[ClassifiedEvent] = []
            if previous is not None:
                events = await self.detect(
                    previous.results,
                    results,
                    context,
                    timestamp=timestamp,
                    previous_frame=previous.frame_id,
                    current_frame=frame_id,
                )

            self._cache.put(
                key,
                Snapshot(results=tuple(results), timestamp=timestamp, frame_id=frame_id),
            )

        return events

    async def detect(
        self,
        previous: Sequence[RecognitionResult],
        current: Sequence[RecognitionResult],
        context: ApplicationContext,
        timestamp: datetime | None = None,
        previous_frame: str | None = None,
        current_frame: str | None = None,
    ) -> list[ClassifiedEvent]:
        """Stateless detection over an explicit pair of snapshots."""
        timestamp = timestamp or context.timestamp
        delta = compute_delta(previous, current, self.settings)
        if delta.is_empty:
            return []

        detected = base_events(delta, context, timestamp, previous_frame, current_frame)
        if self.dispatcher is not None:
            plugin_events = await self.dispatcher.detect_events(delta, context)
            detected.extend(
                self._normalize_plugin_event(e, delta, context, timestamp, current_frame)
                for e in plugin_events
            )

        classified = [
            ClassifiedEvent(event=event, classification=await self._classify(event, context))
            for event in detected
        ]
        classified.sort(key=lambda c: c.event.timestamp)

        logger.debug(
            f"{context.app_identifier}: {len(classified)} event(s) from "
            f"{len(delta.modified)} modified, {len(delta.added)} added, "
            f"{len(delta.removed)} removed"
        )
        return classified

    @staticmethod
    def _normalize_plugin_event(
        event: DetectedEvent,
        delta: RecognitionDelta,
        context: ApplicationContext,
        timestamp: datetime,
        current_frame: str | None,
    ) -> DetectedEvent:
        """Bound plugin confidence by the delta and fill in context fields."""
        return event.model_copy(
            update={
                "confidence": min(event.confidence, delta.min_confidence),
                "timestamp": timestamp,
                "app_identifier": event.app_identifier or context.app_identifier,
                "window_title": event.window_title or context.window_title,
                "evidence_frames": event.evidence_frames
                or ([current_frame] if current_frame else []),
            }
        )

    async def _classify(
        self, event: DetectedEvent, context: ApplicationContext
    ) -> EventClassification:
        classification = None
        if self.dispatcher is not None:
            classification = await self.dispatcher.classify_event(event, context)
        if classification is None:
            return self.classifier.classify(event)
        if classification.confidence > event.confidence:
            classification = classification.model_copy(
                update={"confidence": event.confidence}
            )
        return classification
