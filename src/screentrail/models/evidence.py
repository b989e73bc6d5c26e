"""
Evidence graph types.

These models export with camelCase keys (``directEvidenceFrames``,
``traceComplete``...) through ``model_dump(by_alias=True)`` and accept either
spelling on input.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class EvidenceModel(BaseModel):
    """Base for evidence types with camelCase canonical keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Linker Inputs
# ============================================================================


class FrameMetadata(EvidenceModel):
    """A captured frame as known to the evidence store."""

    id: str
    timestamp: datetime
    app_identifier: str = ""
    window_title: str = ""
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    image_quality: float | None = Field(default=None, ge=0.0, le=1.0)


class ActivityEvent(EvidenceModel):
    """An event as grouped into a session by the external summarizer."""

    id: str
    type: str = ""
    timestamp: datetime
    confidence: float = Field(ge=0.0, le=1.0)
    evidence_frames: list[str] = Field(default_factory=list)
    app_identifier: str = ""
    window_title: str = ""


class ActivitySession(EvidenceModel):
    """Events in one bounded time window."""

    id: str
    start_time: datetime
    end_time: datetime
    app_identifier: str = ""
    window_title: str = ""
    events: list[ActivityEvent] = Field(default_factory=list)


class ActivitySummary(EvidenceModel):
    """Narrative summary over one or more sessions."""

    id: str
    narrative: str = ""
    sessions: list[ActivitySession] = Field(default_factory=list)

    @property
    def events(self) -> list[ActivityEvent]:
        return [event for session in self.sessions for event in session.events]


# ============================================================================
# Evidence Reference
# ============================================================================


class CorrelatedFrame(EvidenceModel):
    """Frame linked to a summary by time and context rather than reference."""

    frame_id: str
    correlation_score: float = Field(ge=0.0, le=1.0)
    reasons: list[str] = Field(default_factory=list)


class BidirectionalLinks(EvidenceModel):
    """
    Adjacency maps of the evidence graph and their inverses.

    ``summary_to_frames`` is the summary→event→frame closure plus frames
    correlated at summary level.
    """

    summary_to_events: dict[str, list[str]] = Field(default_factory=dict)
    event_to_summaries: dict[str, list[str]] = Field(default_factory=dict)
    event_to_frames: dict[str, list[str]] = Field(default_factory=dict)
    frame_to_events: dict[str, list[str]] = Field(default_factory=dict)
    summary_to_frames: dict[str, list[str]] = Field(default_factory=dict)
    frame_to_summaries: dict[str, list[str]] = Field(default_factory=dict)


class EvidenceReference(EvidenceModel):
    """Graph edges between one summary, its events and frames."""

    summary_id: str
    direct_evidence_frames: list[str] = Field(default_factory=list)
    correlated_frames: list[CorrelatedFrame] = Field(default_factory=list)
    event_evidence_map: dict[str, list[str]] = Field(default_factory=dict)
    bidirectional_links: BidirectionalLinks = Field(
        default_factory=BidirectionalLinks
    )


# ============================================================================
# Confidence Propagation
# ============================================================================


class FrameConfidence(EvidenceModel):
    frame_id: str
    ocr_confidence: float = Field(ge=0.0, le=1.0)
    image_quality: float = Field(ge=0.0, le=1.0)
    temporal_stability: float = Field(ge=0.0, le=1.0)
    context_relevance: float = Field(ge=0.0, le=1.0)
    overall: float = Field(ge=0.0, le=1.0)


class EventConfidence(EvidenceModel):
    event_id: str
    raw_confidence: float = Field(ge=0.0, le=1.0)
    evidence_frame_count: int = Field(ge=0)
    frame_support: float = Field(ge=0.0, le=1.0)
    temporal_consistency: float = Field(ge=0.0, le=1.0)
    spatial_consistency: float = Field(ge=0.0, le=1.0)
    overall: float = Field(ge=0.0, le=1.0)


class SummaryConfidence(EvidenceModel):
    aggregated_confidence: float = Field(ge=0.0, le=1.0)
    event_confidence_average: float = Field(ge=0.0, le=1.0)
    frame_confidence_average: float = Field(ge=0.0, le=1.0)
    evidence_coverage: float = Field(ge=0.0, le=1.0)
    evidence_completeness: float = Field(ge=0.0, le=1.0)


class ConfidenceFactor(EvidenceModel):
    """A named influence on summary confidence (negative impact lowers trust)."""

    name: str
    impact: float
    description: str = ""


class ConfidencePropagation(EvidenceModel):
    summary_id: str
    overall_confidence: float = Field(ge=0.0, le=1.0)
    summary_confidence: SummaryConfidence
    frame_confidences: dict[str, FrameConfidence] = Field(default_factory=dict)
    event_confidences: dict[str, EventConfidence] = Field(default_factory=dict)
    confidence_factors: list[ConfidenceFactor] = Field(default_factory=list)


# ============================================================================
# Evidence Trace
# ============================================================================

TraceLevel = Literal["summary", "event", "frame"]


class EvidenceTraceStep(EvidenceModel):
    level: TraceLevel
    id: str
    confidence: float = Field(ge=0.0, le=1.0)


class EvidenceTrace(EvidenceModel):
    """Breadth-first path from a summary down to its frames."""

    summary_id: str
    trace_complete: bool
    total_confidence: float = Field(ge=0.0, le=1.0)
    trace_path: list[EvidenceTraceStep] = Field(default_factory=list)
