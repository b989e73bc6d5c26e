"""
Rule-set driven content plugin.

Application-specific heuristics are data: a ``RuleSet`` lists regular
expressions over recognized text, extractors over the application context,
and event rules over snapshot deltas. ``RuleSetPlugin`` interprets a rule set
and delegates generic work (field pairing, buttons, element ids) to an
``EnhancementToolkit``.
"""

import logging
import re

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from screentrail.models.events import (
    DetectedEvent,
    EventClassification,
    EventImportance,
    RecognitionDelta,
)
from screentrail.models.recognition import ApplicationContext, RecognitionResult
from screentrail.models.structured import (
    EnhancedResult,
    StructuredElement,
    StructuredValue,
    new_element_id,
)
from screentrail.plugins.errors import PluginInitializationError
from screentrail.plugins.patterns import matches_any
from screentrail.plugins.protocol import (
    PluginCapability,
    PluginConfiguration,
    PluginMetadata,
)
from screentrail.plugins.toolkit import EnhancementToolkit

logger = logging.getLogger(__name__)

# ============================================================================
# Rule Types
# ============================================================================


class TextRule(BaseModel):
    """
    Regex over each recognized text region.

    A match tags the region with ``semantic_type``. When ``element_type`` is
    set, every match also becomes a StructuredElement whose value is
    ``value_group`` of the match.
    """

    model_config = ConfigDict(frozen=True)

    semantic_type: str
    pattern: str
    ignore_case: bool = False
    element_type: str | None = None
    value_group: int | str = 0


class ContextRule(BaseModel):
    """Regex over the window title or a context metadata key."""

    model_config = ConfigDict(frozen=True)

    element_type: str
    pattern: str
    source: Literal["window_title", "metadata"] = "window_title"
    metadata_key: str | None = None
    value_group: int | str = 0
    ignore_case: bool = True


class EventRule(BaseModel):
    """Regex over added (or newly modified) text that signals an event."""

    model_config = ConfigDict(frozen=True)

    event_type: str
    pattern: str
    category: str
    importance: EventImportance = EventImportance.MEDIUM
    subcategory: str | None = None
    ignore_case: bool = True


class RuleSet(BaseModel):
    """Everything a rule-set plugin needs to know about one application family."""

    model_config = ConfigDict(frozen=True)

    identifier: str
    name: str
    version: str = "1.0.0"
    description: str = ""
    supported_applications: tuple[str, ...]
    text_rules: tuple[TextRule, ...] = ()
    context_rules: tuple[ContextRule, ...] = ()
    event_rules: tuple[EventRule, ...] = ()
    pair_fields: bool = True
    detect_buttons: bool = True

    def with_overrides(
        self,
        identifier: str | None = None,
        name: str | None = None,
        version: str | None = None,
        description: str | None = None,
        supported_applications: list[str] | None = None,
    ) -> "RuleSet":
        """Copy with manifest-provided metadata replacing the defaults."""
        update: dict[str, object] = {}
        if identifier:
            update["identifier"] = identifier
        if name:
            update["name"] = name
        if version:
            update["version"] = version
        if description:
            update["description"] = description
        if supported_applications:
            update["supported_applications"] = tuple(supported_applications)
        return self.model_copy(update=update)


def _flags(ignore_case: bool) -> int:
    return re.IGNORECASE if ignore_case else 0


# ============================================================================
# Plugin
# ============================================================================


class RuleSetPlugin:
    """
    Content plugin backed by a RuleSet.

    Recognized ``settings`` keys:
        disabled_rules: semantic or event types to skip
        extra_applications: additional supported-application patterns
    """

    def __init__(
        self, rule_set: RuleSet, toolkit: EnhancementToolkit | None = None
    ) -> None:
        self.rule_set = rule_set
        self.toolkit = toolkit or EnhancementToolkit(owner_id=rule_set.identifier)
        self._configuration: PluginConfiguration | None = None
        self._patterns: tuple[str, ...] = rule_set.supported_applications
        self._text_rules: list[tuple[TextRule, re.Pattern[str]]] = []
        self._context_rules: list[tuple[ContextRule, re.Pattern[str]]] = []
        self._event_rules: list[tuple[EventRule, re.Pattern[str]]] = []

    @property
    def metadata(self) -> PluginMetadata:
        capabilities = {PluginCapability.PARSING}
        if self.rule_set.event_rules:
            capabilities.add(PluginCapability.EVENT_DETECTION)
        return PluginMetadata(
            identifier=self.rule_set.identifier,
            name=self.rule_set.name,
            version=self.rule_set.version,
            description=self.rule_set.description,
            supported_application_patterns=self._patterns,
            capabilities=frozenset(capabilities),
        )

    @property
    def is_initialized(self) -> bool:
        return self._configuration is not None

    def initialize(self, configuration: PluginConfiguration) -> None:
        settings = configuration.settings
        disabled = set(settings.get("disabled_rules", []))
        extra = settings.get("extra_applications", [])
        if not isinstance(extra, list) or not all(isinstance(p, str) for p in extra):
            raise PluginInitializationError(
                "extra_applications must be a list of strings",
                plugin_id=self.rule_set.identifier,
            )

        try:
            self._text_rules = [
                (rule, re.compile(rule.pattern, _flags(rule.ignore_case)))
                for rule in self.rule_set.text_rules
                if rule.semantic_type not in disabled
            ]
            self._context_rules = [
                (rule, re.compile(rule.pattern, _flags(rule.ignore_case)))
                for rule in self.rule_set.context_rules
                if rule.element_type not in disabled
            ]
            self._event_rules = [
                (rule, re.compile(rule.pattern, _flags(rule.ignore_case)))
                for rule in self.rule_set.event_rules
                if rule.event_type not in disabled
            ]
        except re.error as e:
            raise PluginInitializationError(
                f"Invalid rule pattern: {e}", plugin_id=self.rule_set.identifier
            ) from e

        self._patterns = self.rule_set.supported_applications + tuple(extra)
        self._configuration = configuration
        logger.debug(
            f"{self.rule_set.identifier}: {len(self._text_rules)} text, "
            f"{len(self._context_rules)} context, {len(self._event_rules)} event rules"
        )

    def cleanup(self) -> None:
        self._configuration = None
        self._text_rules = []
        self._context_rules = []
        self._event_rules = []

    def can_handle(self, context: ApplicationContext) -> bool:
        return self.is_initialized and matches_any(self._patterns, context.app_identifier)

    # ========================================================================
    # Parsing
    # ========================================================================

    async def enhance(
        self, results: list[RecognitionResult], context: ApplicationContext
    ) -> list[EnhancedResult]:
        enhanced: list[EnhancedResult] = []

        for result in results:
            for rule, regex in self._text_rules:
                match = regex.search(result.text)
                if match is None:
                    continue
                data: dict[str, StructuredValue] = {
                    "match": match.group(0),
                    **{k: v for k, v in match.groupdict().items() if v is not None},
                }
                enhanced.append(
                    self.toolkit.create_enhanced_result(result, rule.semantic_type, data)
                )

        if self.rule_set.pair_fields:
            enhanced.extend(self.toolkit.enhance_fields_and_buttons(results))
        elif self.rule_set.detect_buttons:
            enhanced.extend(
                self.toolkit.create_enhanced_result(b_result, "button")
                for b_result in results
                if self.toolkit.is_button_text(b_result.text)
            )

        return enhanced

    async def extract_structured(
        self, results: list[RecognitionResult], context: ApplicationContext
    ) -> list[StructuredElement]:
        elements: list[StructuredElement] = []

        for rule, regex in self._context_rules:
            source = self._context_source(rule, context)
            match = regex.search(source) if source else None
            if match and match.group(rule.value_group):
                elements.append(
                    self.toolkit.create_structured_element(
                        rule.element_type,
                        match.group(rule.value_group),
                        metadata={"source": rule.source, "confidence": 1.0},
                    )
                )

        for result in results:
            for rule, regex in self._text_rules:
                if rule.element_type is None:
                    continue
                for match in regex.finditer(result.text):
                    value = match.group(rule.value_group)
                    if not value:
                        continue
                    elements.append(
                        self.toolkit.create_structured_element(
                            rule.element_type,
                            value.strip(),
                            metadata={
                                "semantic_type": rule.semantic_type,
                                "confidence": result.confidence,
                                "source_text": result.text,
                            },
                            bounding_region=result.bounding_region,
                        )
                    )

        if self.rule_set.pair_fields:
            elements.extend(self.toolkit.extract_fields(results))

        return elements

    @staticmethod
    def _context_source(rule: ContextRule, context: ApplicationContext) -> str:
        if rule.source == "window_title":
            return context.window_title
        value = context.metadata.get(rule.metadata_key or "")
        return value if isinstance(value, str) else ""

    # ========================================================================
    # Event Detection
    # ========================================================================

    async def detect_events(
        self, delta: RecognitionDelta, context: ApplicationContext
    ) -> list[DetectedEvent]:
        candidates = list(delta.added) + [pair.current for pair in delta.modified]
        events: list[DetectedEvent] = []

        for result in candidates:
            for rule, regex in self._event_rules:
                if regex.search(result.text) is None:
                    continue
                events.append(
                    DetectedEvent(
                        id=new_element_id("event"),
                        type=rule.event_type,
                        timestamp=context.timestamp,
                        target=result.text.strip(),
                        value_after=result.text.strip(),
                        confidence=result.confidence,
                        app_identifier=context.app_identifier,
                        window_title=context.window_title,
                        metadata={"plugin": self.rule_set.identifier},
                    )
                )
                break

        return events

    async def classify_event(
        self, event: DetectedEvent, context: ApplicationContext
    ) -> EventClassification | None:
        for rule, _ in self._event_rules:
            if rule.event_type == event.type:
                return EventClassification(
                    category=rule.category,
                    subcategory=rule.subcategory,
                    importance=rule.importance,
                    tags=[context.app_identifier, event.type, self.rule_set.identifier],
                    confidence=event.confidence,
                )
        return None

    def __repr__(self) -> str:
        return f"RuleSetPlugin(identifier={self.rule_set.identifier!r})"
