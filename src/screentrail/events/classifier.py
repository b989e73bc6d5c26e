"""
Base event rules and classification.

Turns a RecognitionDelta into DetectedEvents and assigns each event a
category and importance from fixed tables. Importance can be overridden per
event type from the ``[events]`` config section.
"""

import logging
import re

from collections.abc import Iterable, Sequence
from datetime import datetime

from screentrail.constants import EventDetectionConstants as EDC
from screentrail.models.events import (
    DetectedEvent,
    EventClassification,
    EventImportance,
    RecognitionDelta,
)
from screentrail.models.recognition import ApplicationContext, RecognitionResult
from screentrail.models.structured import new_element_id
from screentrail.plugins.toolkit import EnhancementToolkit
from screentrail.utils.text import normalize_text

logger = logging.getLogger(__name__)

# ============================================================================
# Event Types and Tables
# ============================================================================

FIELD_CHANGE = "field_change"
CONTENT_ADDED = "content_added"
CONTENT_REMOVED = "content_removed"
ERROR_DISPLAY = "error_display"
MODAL_APPEARANCE = "modal_appearance"
FORM_SUBMISSION = "form_submission"

CATEGORY_BY_TYPE: dict[str, str] = {
    FIELD_CHANGE: "data_modification",
    CONTENT_ADDED: "data_creation",
    CONTENT_REMOVED: "data_deletion",
    ERROR_DISPLAY: "error",
    MODAL_APPEARANCE: "interaction",
    FORM_SUBMISSION: "data_submission",
}
DEFAULT_CATEGORY = "interaction"

IMPORTANCE_BY_TYPE: dict[str, EventImportance] = {
    FIELD_CHANGE: EventImportance.MEDIUM,
    CONTENT_ADDED: EventImportance.LOW,
    CONTENT_REMOVED: EventImportance.LOW,
    ERROR_DISPLAY: EventImportance.HIGH,
    MODAL_APPEARANCE: EventImportance.MEDIUM,
    FORM_SUBMISSION: EventImportance.HIGH,
}


def _keyword_pattern(keywords: Iterable[str]) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(k) for k in keywords)
    return re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE)


# Checked in order; the first match decides the standalone event type
STANDALONE_RULES: tuple[tuple[str, re.Pattern[str]], ...] = (
    (ERROR_DISPLAY, _keyword_pattern(EDC.ERROR_KEYWORDS)),
    (MODAL_APPEARANCE, _keyword_pattern(EDC.MODAL_KEYWORDS)),
    (FORM_SUBMISSION, _keyword_pattern(EDC.SUBMISSION_KEYWORDS)),
)


# ============================================================================
# Base Event Rules
# ============================================================================


def _standalone_type(text: str) -> str | None:
    for event_type, pattern in STANDALONE_RULES:
        if pattern.search(text):
            return event_type
    return None


def _field_labels(
    results: Sequence[RecognitionResult], toolkit: EnhancementToolkit
) -> dict[RecognitionResult, str]:
    """Map each paired value to its label text."""
    return {pair.value: pair.label_text for pair in toolkit.extract_field_pairs(results)}


def base_events(
    delta: RecognitionDelta,
    context: ApplicationContext,
    timestamp: datetime,
    previous_frame: str | None = None,
    current_frame: str | None = None,
) -> list[DetectedEvent]:
    """
    Generic events for a delta.

    - modified pair -> ``field_change`` (target is the field label when one
      is paired with the value, else the previous text)
    - added text -> ``error_display``/``modal_appearance``/``form_submission``
      when it matches a keyword rule, else ``content_added``
    - removed text -> ``content_removed``

    Each event's confidence is the minimum of the results involved.
    """
    toolkit = EnhancementToolkit(owner_id="detector")
    labels = _field_labels(delta.current_set, toolkit)
    now_frames = [current_frame] if current_frame else []
    both_frames = [f for f in (previous_frame, current_frame) if f]

    def make(event_type: str, **fields: object) -> DetectedEvent:
        return DetectedEvent(
            id=new_element_id("event"),
            type=event_type,
            timestamp=timestamp,
            app_identifier=context.app_identifier,
            window_title=context.window_title,
            **fields,
        )

    events: list[DetectedEvent] = []

    for pair in delta.modified:
        before = normalize_text(pair.previous.text)
        after = normalize_text(pair.current.text)
        if before == after:
            continue
        events.append(
            make(
                FIELD_CHANGE,
                target=labels.get(pair.current, before),
                value_before=before,
                value_after=after,
                confidence=min(pair.previous.confidence, pair.current.confidence),
                evidence_frames=both_frames,
                metadata={"iou": round(pair.iou, 4)},
            )
        )

    for result in delta.added:
        text = normalize_text(result.text)
        events.append(
            make(
                _standalone_type(text) or CONTENT_ADDED,
                target=text,
                value_after=text,
                confidence=result.confidence,
                evidence_frames=now_frames,
            )
        )

    for result in delta.removed:
        text = normalize_text(result.text)
        events.append(
            make(
                CONTENT_REMOVED,
                target=text,
                value_before=text,
                confidence=result.confidence,
                evidence_frames=both_frames,
            )
        )

    return events


# ============================================================================
# Classification
# ============================================================================


class BaseClassifier:
    """
    Table-driven classification used when no plugin classifies an event.

    Args:
        importance_overrides: Event type -> importance name, e.g.
            ``{"content_added": "medium"}``

    Raises:
        ValueError: If an override names an unknown importance level
    """

    def __init__(self, importance_overrides: dict[str, str] | None = None) -> None:
        self.importance_table = dict(IMPORTANCE_BY_TYPE)
        for event_type, level in (importance_overrides or {}).items():
            self.importance_table[event_type] = EventImportance(level.lower())

    def category(self, event: DetectedEvent) -> str:
        return CATEGORY_BY_TYPE.get(event.type, DEFAULT_CATEGORY)

    def importance(self, event: DetectedEvent) -> EventImportance:
        return self.importance_table.get(event.type, EventImportance.LOW)

    @staticmethod
    def tags(event: DetectedEvent) -> list[str]:
        tags = [t for t in (event.app_identifier, event.type) if t]
        if event.window_title:
            tags.append(f"window:{event.window_title}")
        return tags

    def classify(self, event: DetectedEvent) -> EventClassification:
        return EventClassification(
            category=self.category(event),
            importance=self.importance(event),
            tags=self.tags(event),
            confidence=event.confidence,
        )
