"""
Capability-routed plugin dispatch.

For one application context the dispatcher selects the active plugins that
can handle it, calls them concurrently under their sandbox budgets, and
concatenates their outputs in registration order. A plugin that fails is
isolated: its output for that call is dropped, a failure is recorded, and
every other plugin's output is kept.
"""

import asyncio
import logging

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from pydantic import BaseModel, Field

from screentrail.models.events import DetectedEvent, EventClassification, RecognitionDelta
from screentrail.models.recognition import ApplicationContext, RecognitionResult
from screentrail.models.structured import EnhancedResult, StructuredElement
from screentrail.plugins.errors import ExecutionFailure, PluginExecutionError
from screentrail.plugins.protocol import ContentPlugin, PluginCapability
from screentrail.plugins.registry import PluginRegistry, get_registry
from screentrail.plugins.sandbox import plugin_source_files, run_sandboxed

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PluginFailure(BaseModel):
    """One isolated plugin call failure."""

    plugin_id: str
    operation: str
    reason: ExecutionFailure
    message: str


class DispatchResult(BaseModel):
    """Concatenated plugin output for one context."""

    enhanced_results: list[EnhancedResult] = Field(default_factory=list)
    structured_elements: list[StructuredElement] = Field(default_factory=list)
    plugins_used: list[str] = Field(default_factory=list)
    failures: list[PluginFailure] = Field(default_factory=list)


class PluginDispatcher:
    """
    Routes recognition output and deltas to applicable plugins.

    Args:
        registry: Plugin registry; the global registry when omitted
    """

    def __init__(self, registry: PluginRegistry | None = None) -> None:
        self.registry = registry or get_registry()

    # ========================================================================
    # Parsing
    # ========================================================================

    async def dispatch(
        self, results: list[RecognitionResult], context: ApplicationContext
    ) -> DispatchResult:
        """
        Run ``enhance`` and ``extract_structured`` on every matching plugin.

        Both operations for all plugins run concurrently; outputs are merged
        after every call has completed or timed out.
        """
        plugins = self.registry.applicable_plugins(context, PluginCapability.PARSING)
        dispatch = DispatchResult(plugins_used=[p.metadata.identifier for p in plugins])
        if not plugins:
            return dispatch

        snapshot = tuple(results)
        enhance_calls = [
            self._invoke(p, "enhance", lambda p=p: p.enhance(list(snapshot), context))
            for p in plugins
        ]
        extract_calls = [
            self._invoke(
                p,
                "extract_structured",
                lambda p=p: p.extract_structured(list(snapshot), context),
            )
            for p in plugins
        ]
        outcomes = await asyncio.gather(*enhance_calls, *extract_calls)

        for output, failure in outcomes[: len(plugins)]:
            if failure is not None:
                dispatch.failures.append(failure)
            else:
                dispatch.enhanced_results.extend(output)
        for output, failure in outcomes[len(plugins) :]:
            if failure is not None:
                dispatch.failures.append(failure)
            else:
                dispatch.structured_elements.extend(output)

        logger.debug(
            f"Dispatched {context.app_identifier} to {len(plugins)} plugin(s): "
            f"{len(dispatch.enhanced_results)} enhanced, "
            f"{len(dispatch.structured_elements)} elements, "
            f"{len(dispatch.failures)} failure(s)"
        )
        return dispatch

    async def enhance(
        self, results: list[RecognitionResult], context: ApplicationContext
    ) -> list[EnhancedResult]:
        return (await self.dispatch(results, context)).enhanced_results

    async def extract_structured(
        self, results: list[RecognitionResult], context: ApplicationContext
    ) -> list[StructuredElement]:
        return (await self.dispatch(results, context)).structured_elements

    # ========================================================================
    # Event Detection
    # ========================================================================

    async def detect_events(
        self, delta: RecognitionDelta, context: ApplicationContext
    ) -> list[DetectedEvent]:
        """Events from every matching EVENT_DETECTION plugin, in registration order."""
        plugins = self.registry.applicable_plugins(
            context, PluginCapability.EVENT_DETECTION
        )
        outcomes = await asyncio.gather(
            *(
                self._invoke(p, "detect_events", lambda p=p: p.detect_events(delta, context))
                for p in plugins
            )
        )
        events: list[DetectedEvent] = []
        for output, _failure in outcomes:
            if output is not None:
                events.extend(output)
        return events

    async def classify_event(
        self, event: DetectedEvent, context: ApplicationContext
    ) -> EventClassification | None:
        """First classification offered by a matching plugin, or None."""
        plugins = self.registry.applicable_plugins(
            context, PluginCapability.EVENT_DETECTION
        )
        for plugin in plugins:
            output, _failure = await self._invoke(
                plugin, "classify_event", lambda p=plugin: p.classify_event(event, context)
            )
            if output is not None:
                return output
        return None

    # ========================================================================
    # Invocation
    # ========================================================================

    async def _invoke(
        self,
        plugin: ContentPlugin,
        operation: str,
        call: Callable[[], Awaitable[T]],
    ) -> tuple[Any, PluginFailure | None]:
        plugin_id = plugin.metadata.identifier
        configuration = self.registry.get_configuration(plugin_id)

        try:
            output = await run_sandboxed(
                plugin_id,
                operation,
                call,
                configuration,
                plugin_source_files(plugin) if configuration.sandbox_enabled else [],
            )
        except PluginExecutionError as e:
            logger.warning(f"Plugin call isolated ({e.reason}): {e}")
            return None, PluginFailure(
                plugin_id=plugin_id, operation=operation, reason=e.reason, message=str(e)
            )

        return output, None
