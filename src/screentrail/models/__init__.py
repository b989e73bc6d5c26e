"""Pydantic data model for the perception-to-evidence pipeline."""

from screentrail.models.events import (
    AlignmentAmbiguity,
    ClassifiedEvent,
    DetectedEvent,
    EventClassification,
    EventImportance,
    ModifiedPair,
    RecognitionDelta,
)
from screentrail.models.evidence import (
    ActivityEvent,
    ActivitySession,
    ActivitySummary,
    BidirectionalLinks,
    ConfidenceFactor,
    ConfidencePropagation,
    CorrelatedFrame,
    EventConfidence,
    EvidenceReference,
    EvidenceTrace,
    EvidenceTraceStep,
    FrameConfidence,
    FrameMetadata,
    SummaryConfidence,
)
from screentrail.models.recognition import (
    ApplicationContext,
    BoundingRegion,
    FallbackReason,
    Frame,
    RecognitionOutcome,
    RecognitionResult,
)
from screentrail.models.structured import (
    EnhancedResult,
    StructuredElement,
    StructuredValue,
    UIElement,
    new_element_id,
)

__all__ = [
    "ActivityEvent",
    "ActivitySession",
    "ActivitySummary",
    "AlignmentAmbiguity",
    "ApplicationContext",
    "BidirectionalLinks",
    "BoundingRegion",
    "ClassifiedEvent",
    "ConfidenceFactor",
    "ConfidencePropagation",
    "CorrelatedFrame",
    "DetectedEvent",
    "EnhancedResult",
    "EventClassification",
    "EventConfidence",
    "EventImportance",
    "EvidenceReference",
    "EvidenceTrace",
    "EvidenceTraceStep",
    "FallbackReason",
    "Frame",
    "FrameConfidence",
    "FrameMetadata",
    "ModifiedPair",
    "RecognitionDelta",
    "RecognitionOutcome",
    "RecognitionResult",
    "StructuredElement",
    "StructuredValue",
    "SummaryConfidence",
    "UIElement",
    "new_element_id",
]
