"""Content plugins: contract, registry, dispatch and the base toolkit."""

from screentrail.plugins.dispatcher import DispatchResult, PluginDispatcher, PluginFailure
from screentrail.plugins.errors import (
    PluginError,
    PluginExecutionError,
    PluginInitializationError,
    PluginManifestError,
)
from screentrail.plugins.protocol import (
    ContentPlugin,
    EventDetectionPlugin,
    PluginCapability,
    PluginConfiguration,
    PluginMetadata,
    PluginStatus,
)
from screentrail.plugins.registry import PluginRegistry, get_registry, plugin_registry
from screentrail.plugins.toolkit import EnhancementToolkit, FieldPair

__all__ = [
    "ContentPlugin",
    "DispatchResult",
    "EnhancementToolkit",
    "EventDetectionPlugin",
    "FieldPair",
    "PluginCapability",
    "PluginConfiguration",
    "PluginDispatcher",
    "PluginError",
    "PluginExecutionError",
    "PluginFailure",
    "PluginInitializationError",
    "PluginManifestError",
    "PluginMetadata",
    "PluginRegistry",
    "PluginStatus",
    "get_registry",
    "plugin_registry",
]
