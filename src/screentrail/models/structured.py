"""Plugin output types: enhanced results, structured elements and UI elements."""

from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, JsonValue

from screentrail.models.recognition import BoundingRegion, RecognitionResult

# Attribute-typed payload value: str, int, float, bool, None, list or nested map
StructuredValue = JsonValue


def new_element_id(prefix: str) -> str:
    """Generate a globally unique element id such as ``email_3f2a...``."""
    return f"{prefix}_{uuid4().hex}"


class EnhancedResult(BaseModel):
    """A recognition result tagged with application-specific meaning."""

    model_config = ConfigDict(frozen=True)

    original_result: RecognitionResult
    semantic_type: str = Field(description="Tag such as 'command' or 'issue_key'")
    structured_data: dict[str, StructuredValue] = Field(default_factory=dict)
    relationships: list[str] = Field(
        default_factory=list, description="Ids of related structured elements"
    )
    plugin_id: str | None = Field(default=None, description="Producing plugin")


class StructuredElement(BaseModel):
    """Canonical extracted fact consumed by summarization. Immutable."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Globally unique element id")
    type: str
    value: str
    metadata: dict[str, StructuredValue] = Field(default_factory=dict)
    bounding_region: BoundingRegion | None = None
    plugin_id: str | None = None


class UIElement(BaseModel):
    """Interactive element found by generic detection (buttons, for now)."""

    model_config = ConfigDict(frozen=True)

    type: str = Field(default="button")
    text: str
    bounding_region: BoundingRegion
    confidence: float = Field(ge=0.0, le=1.0)
