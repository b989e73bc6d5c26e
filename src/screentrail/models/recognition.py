"""Recognition-level data types: regions, results, contexts and frames."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, JsonValue

from screentrail.constants import RecognitionConstants as RC

# ============================================================================
# Geometry
# ============================================================================


class BoundingRegion(BaseModel):
    """
    Axis-aligned rectangle in frame pixel coordinates.

    Attributes:
        x: Left edge
        y: Top edge
        width: Horizontal extent (>= 0)
        height: Vertical extent (>= 0)
    """

    model_config = ConfigDict(frozen=True)

    x: float = Field(description="Left edge in pixels")
    y: float = Field(description="Top edge in pixels")
    width: float = Field(ge=0, description="Width in pixels")
    height: float = Field(ge=0, description="Height in pixels")

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def area(self) -> float:
        return self.width * self.height


# ============================================================================
# Recognition Output
# ============================================================================


class RecognitionResult(BaseModel):
    """One detected text region in one frame. Immutable."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Recognized text")
    bounding_region: BoundingRegion = Field(description="Where the text was found")
    confidence: float = Field(ge=0.0, le=1.0, description="Engine confidence")
    language: str = Field(default=RC.DEFAULT_LANGUAGE, description="Language code")


class FallbackReason(str, Enum):
    """Why the secondary engine was consulted for a frame."""

    LOW_CONFIDENCE = "low_confidence"
    ENGINE_ERROR = "engine_error"
    TIMEOUT = "timeout"
    NO_TEXT_DETECTED = "no_text_detected"
    LANGUAGE_PREFERENCE = "language_preference"


class RecognitionOutcome(BaseModel):
    """
    Result of recognizing one frame through the fallback coordinator.

    ``confidence`` is always the aggregate over ``results``, i.e. over the
    output that was actually returned, never over discarded attempts.
    """

    results: list[RecognitionResult] = Field(default_factory=list)
    engines_used: list[str] = Field(
        default_factory=list, description="Engines invoked, in first-use order"
    )
    attempts: int = Field(default=0, ge=0, description="Total engine invocations")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    fallback_reason: FallbackReason | None = None
    hybrid: bool = False
    partial: bool = Field(
        default=False, description="Retry cap reached; best partial output returned"
    )
    errors: list[str] = Field(default_factory=list)


# ============================================================================
# Capture Inputs
# ============================================================================


class ApplicationContext(BaseModel):
    """Foreground application at capture time. Read-only to the pipeline."""

    model_config = ConfigDict(frozen=True)

    app_identifier: str = Field(description="Bundle or executable identifier")
    app_name: str = Field(default="")
    window_title: str = Field(default="")
    process_id: int | None = None
    timestamp: datetime = Field(default_factory=datetime.now)
    metadata: dict[str, JsonValue] = Field(default_factory=dict)

    @property
    def context_key(self) -> tuple[str, str]:
        """Key that identifies one snapshot stream (application + window)."""
        return (self.app_identifier, self.window_title)


class Frame(BaseModel):
    """
    One captured frame handed to the pipeline.

    Attributes:
        id: Unique frame identifier
        image: Image payload (PIL image, numpy array or path) passed to engines
        capture_timestamp: When the frame was captured
        context: Application context hint from the capture layer
        language_hint: Expected text language, if known
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: str = Field(default_factory=lambda: f"frame_{uuid4().hex}")
    image: Any = None
    capture_timestamp: datetime = Field(default_factory=datetime.now)
    context: ApplicationContext
    language_hint: str | None = None
