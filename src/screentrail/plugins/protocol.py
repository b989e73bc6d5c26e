"""
Plugin contract.

Plugins are structural: anything that provides these attributes and methods
can be registered, whether it is a built-in rule-set plugin, a plugin loaded
from a manifest directory or a test double. Shared heuristics come from
``EnhancementToolkit``, which plugins hold as a collaborator rather than
inherit from.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from screentrail.constants import PluginConstants as PC
from screentrail.models.events import DetectedEvent, EventClassification, RecognitionDelta
from screentrail.models.recognition import ApplicationContext, RecognitionResult
from screentrail.models.structured import EnhancedResult, StructuredElement


class PluginCapability(str, Enum):
    """What a plugin can be dispatched for."""

    PARSING = "parsing"
    EVENT_DETECTION = "event_detection"


class PluginStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    FAILED = "failed"


class PluginMetadata(BaseModel):
    """Descriptive information every plugin exposes."""

    model_config = ConfigDict(frozen=True)

    identifier: str = Field(description="Unique plugin id, e.g. 'builtin.terminal'")
    name: str
    version: str = "1.0.0"
    description: str = ""
    supported_application_patterns: tuple[str, ...] = Field(
        description="Exact identifiers or prefix wildcards such as 'com.google.*'"
    )
    capabilities: frozenset[PluginCapability] = frozenset({PluginCapability.PARSING})


class PluginConfiguration(BaseModel):
    """
    Per-plugin configuration passed to ``initialize``.

    Keys inside ``settings`` are plugin-specific. Unknown top-level keys are
    ignored rather than rejected.
    """

    model_config = ConfigDict(extra="ignore")

    plugin_directory: Path | None = None
    sandbox_enabled: bool = True
    max_memory_usage: int = Field(default=PC.MAX_MEMORY_USAGE, gt=0)
    max_execution_time: float = Field(default=PC.MAX_EXECUTION_TIME, gt=0)
    settings: dict[str, Any] = Field(default_factory=dict)


@runtime_checkable
class ContentPlugin(Protocol):
    """Interface every content-enhancement plugin implements."""

    @property
    def metadata(self) -> PluginMetadata: ...

    @property
    def is_initialized(self) -> bool: ...

    def initialize(self, configuration: PluginConfiguration) -> None:
        """
        Prepare the plugin for use. Called once before any dispatch.

        Raises:
            PluginInitializationError: If the plugin cannot start
        """
        ...

    def cleanup(self) -> None:
        """Release resources. Safe to call more than once."""
        ...

    def can_handle(self, context: ApplicationContext) -> bool:
        """Pure, fast predicate; False while uninitialized."""
        ...

    async def enhance(
        self, results: list[RecognitionResult], context: ApplicationContext
    ) -> list[EnhancedResult]: ...

    async def extract_structured(
        self, results: list[RecognitionResult], context: ApplicationContext
    ) -> list[StructuredElement]: ...


@runtime_checkable
class EventDetectionPlugin(Protocol):
    """Additional methods for plugins declaring EVENT_DETECTION."""

    async def detect_events(
        self, delta: RecognitionDelta, context: ApplicationContext
    ) -> list[DetectedEvent]: ...

    async def classify_event(
        self, event: DetectedEvent, context: ApplicationContext
    ) -> EventClassification | None: ...
