"""Delta and event types produced by the event detector."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, JsonValue

from screentrail.models.recognition import RecognitionResult


class ModifiedPair(BaseModel):
    """Previous and current result occupying the same region with new text."""

    model_config = ConfigDict(frozen=True)

    previous: RecognitionResult
    current: RecognitionResult
    iou: float = Field(ge=0.0, le=1.0)


class AlignmentAmbiguity(BaseModel):
    """
    Record of an alignment that could not be resolved confidently.

    The involved elements are reported as independent additions/removals
    instead of a forced match.
    """

    model_config = ConfigDict(frozen=True)

    current_indices: list[int] = Field(default_factory=list)
    previous_indices: list[int] = Field(default_factory=list)
    reason: str = ""


class RecognitionDelta(BaseModel):
    """Additions, removals and modifications between two snapshots."""

    previous_set: list[RecognitionResult] = Field(default_factory=list)
    current_set: list[RecognitionResult] = Field(default_factory=list)
    added: list[RecognitionResult] = Field(default_factory=list)
    removed: list[RecognitionResult] = Field(default_factory=list)
    modified: list[ModifiedPair] = Field(default_factory=list)
    ambiguities: list[AlignmentAmbiguity] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.modified)

    @property
    def min_confidence(self) -> float:
        """Lowest confidence among all results that took part in a change."""
        involved = [r.confidence for r in self.added + self.removed]
        for pair in self.modified:
            involved.extend((pair.previous.confidence, pair.current.confidence))
        return min(involved, default=0.0)


class EventImportance(str, Enum):
    """Importance levels, ordered from least to most important."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return list(EventImportance).index(self)


class DetectedEvent(BaseModel):
    """One detected state change. Immutable after creation."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: str = Field(description="e.g. field_change, content_added")
    timestamp: datetime
    target: str = Field(description="Element the change applies to")
    value_before: str | None = None
    value_after: str | None = None
    confidence: float = Field(ge=0.0, le=1.0)
    app_identifier: str = ""
    window_title: str = ""
    evidence_frames: list[str] = Field(default_factory=list)
    metadata: dict[str, JsonValue] = Field(default_factory=dict)


class EventClassification(BaseModel):
    """Category, importance and tags for one detected event."""

    model_config = ConfigDict(frozen=True)

    category: str
    subcategory: str | None = None
    importance: EventImportance = EventImportance.LOW
    tags: list[str] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)


class ClassifiedEvent(BaseModel):
    """A detected event together with its classification."""

    model_config = ConfigDict(frozen=True)

    event: DetectedEvent
    classification: EventClassification
