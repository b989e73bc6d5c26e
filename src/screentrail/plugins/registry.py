"""
Plugin Registry System

Central registry for content plugins. Holds plugins in registration order,
tracks their lifecycle status and selects the plugins applicable to an
application context.

Key Features:
- Explicit registration with duplicate-id protection
- Initialization failures isolate the plugin, not the registry
- Capability- and pattern-based selection for dispatch
"""

import logging

from typing import Any

from screentrail.models.recognition import ApplicationContext
from screentrail.plugins.errors import PluginInitializationError
from screentrail.plugins.protocol import (
    ContentPlugin,
    PluginCapability,
    PluginConfiguration,
    PluginStatus,
)

logger = logging.getLogger(__name__)


class PluginRegistry:
    """
    Registry for all content plugins.

    Usage:
        registry.register(RuleSetPlugin(TERMINAL_RULES), configuration)

        for plugin in registry.applicable_plugins(context):
            ...
    """

    def __init__(self) -> None:
        """Initialize empty registry."""
        self._plugins: list[ContentPlugin] = []
        self._plugins_by_id: dict[str, ContentPlugin] = {}
        self._configurations: dict[str, PluginConfiguration] = {}
        self._status: dict[str, PluginStatus] = {}
        self._failures: dict[str, str] = {}

    def register(
        self,
        plugin: ContentPlugin,
        configuration: PluginConfiguration | None = None,
        *,
        initialize: bool = True,
    ) -> None:
        """
        Register a new plugin and (by default) initialize it.

        An initialization failure marks the plugin as failed; it stays
        registered for inspection but never matches a context.

        Args:
            plugin: Plugin instance to register
            configuration: Budgets and settings; defaults when omitted
            initialize: Call ``initialize`` immediately

        Raises:
            ValueError: If plugin ID is already registered
            TypeError: If the object does not implement ContentPlugin
        """
        if not isinstance(plugin, ContentPlugin):
            raise TypeError(f"{plugin!r} does not implement the ContentPlugin protocol")

        plugin_id = plugin.metadata.identifier
        if plugin_id in self._plugins_by_id:
            existing = self._plugins_by_id[plugin_id]
            raise ValueError(
                f"Plugin ID '{plugin_id}' already registered by {existing!r}"
            )

        self._plugins.append(plugin)
        self._plugins_by_id[plugin_id] = plugin
        self._configurations[plugin_id] = configuration or PluginConfiguration()
        self._status[plugin_id] = PluginStatus.UNINITIALIZED
        logger.info(f"Registered plugin: {plugin_id}")

        if initialize:
            self.initialize_plugin(plugin_id)

    def initialize_plugin(
        self, plugin_id: str, configuration: PluginConfiguration | None = None
    ) -> bool:
        """
        Initialize a registered plugin.

        Returns:
            True if the plugin is now active
        """
        plugin = self._plugins_by_id.get(plugin_id)
        if plugin is None:
            raise KeyError(plugin_id)

        if self._status[plugin_id] is PluginStatus.ACTIVE:
            return True

        if configuration is not None:
            self._configurations[plugin_id] = configuration

        try:
            plugin.initialize(self._configurations[plugin_id])
        except PluginInitializationError as e:
            self._mark_failed(plugin_id, str(e))
            return False
        except Exception as e:
            self._mark_failed(plugin_id, f"{type(e).__name__}: {e}")
            return False

        self._status[plugin_id] = PluginStatus.ACTIVE
        self._failures.pop(plugin_id, None)
        logger.info(f"Initialized plugin: {plugin_id}")
        return True

    def _mark_failed(self, plugin_id: str, message: str) -> None:
        self._status[plugin_id] = PluginStatus.FAILED
        self._failures[plugin_id] = message
        logger.error(f"Plugin {plugin_id} failed to initialize: {message}")

    def unregister(self, plugin_id: str) -> bool:
        """
        Clean up and remove a plugin by ID.

        Returns:
            True if plugin was removed, False if not found
        """
        plugin = self._plugins_by_id.pop(plugin_id, None)
        if plugin is None:
            return False

        self._cleanup(plugin_id, plugin)
        self._plugins.remove(plugin)
        del self._configurations[plugin_id]
        del self._status[plugin_id]
        self._failures.pop(plugin_id, None)

        logger.info(f"Unregistered plugin: {plugin_id}")
        return True

    def _cleanup(self, plugin_id: str, plugin: ContentPlugin) -> None:
        try:
            plugin.cleanup()
        except Exception as e:
            logger.warning(f"Plugin {plugin_id} cleanup failed: {e}")

    def cleanup_all(self) -> None:
        """Clean up every plugin; they return to the uninitialized state."""
        for plugin in self._plugins:
            plugin_id = plugin.metadata.identifier
            self._cleanup(plugin_id, plugin)
            if self._status[plugin_id] is PluginStatus.ACTIVE:
                self._status[plugin_id] = PluginStatus.UNINITIALIZED
        logger.info(f"Cleaned up {len(self._plugins)} plugin(s)")

    def clear(self) -> None:
        """Clean up and remove every plugin."""
        self.cleanup_all()
        self._plugins.clear()
        self._plugins_by_id.clear()
        self._configurations.clear()
        self._status.clear()
        self._failures.clear()

    # ========================================================================
    # Selection
    # ========================================================================

    def applicable_plugins(
        self,
        context: ApplicationContext,
        capability: PluginCapability = PluginCapability.PARSING,
    ) -> list[ContentPlugin]:
        """
        Active plugins declaring ``capability`` that can handle ``context``.

        Returns:
            Plugins in registration order
        """
        matched: list[ContentPlugin] = []
        for plugin in self._plugins:
            metadata = plugin.metadata
            if self._status[metadata.identifier] is not PluginStatus.ACTIVE:
                continue
            if capability not in metadata.capabilities:
                continue
            try:
                if plugin.can_handle(context):
                    matched.append(plugin)
            except Exception as e:
                logger.warning(f"Plugin {metadata.identifier} can_handle failed: {e}")
        return matched

    # ========================================================================
    # Lookup
    # ========================================================================

    def get_plugin(self, plugin_id: str) -> ContentPlugin | None:
        return self._plugins_by_id.get(plugin_id)

    def get_configuration(self, plugin_id: str) -> PluginConfiguration:
        return self._configurations[plugin_id]

    def get_status(self, plugin_id: str) -> PluginStatus | None:
        return self._status.get(plugin_id)

    def list_plugins(self) -> list[ContentPlugin]:
        return self._plugins.copy()

    def get_plugin_info(self) -> dict[str, dict[str, Any]]:
        """
        Get detailed information about all registered plugins.

        Example:
            info = registry.get_plugin_info()
            # {
            #     "builtin.terminal": {
            #         "name": "Terminal Parser",
            #         "version": "1.0.0",
            #         "status": "active",
            #         "applications": ["com.apple.Terminal", ...],
            #         ...
            #     },
            # }
        """
        info: dict[str, dict[str, Any]] = {}
        for plugin in self._plugins:
            metadata = plugin.metadata
            entry: dict[str, Any] = {
                "name": metadata.name,
                "version": metadata.version,
                "description": metadata.description,
                "status": self._status[metadata.identifier].value,
                "applications": list(metadata.supported_application_patterns),
                "capabilities": sorted(c.value for c in metadata.capabilities),
            }
            if metadata.identifier in self._failures:
                entry["error"] = self._failures[metadata.identifier]
            info[metadata.identifier] = entry
        return info

    @property
    def plugin_count(self) -> int:
        return len(self._plugins)

    def __len__(self) -> int:
        return len(self._plugins)

    def __repr__(self) -> str:
        active = sum(1 for s in self._status.values() if s is PluginStatus.ACTIVE)
        return f"<PluginRegistry plugins={self.plugin_count} active={active}>"


# Global singleton registry instance
plugin_registry = PluginRegistry()


def get_registry() -> PluginRegistry:
    """
    Get the global plugin registry instance.

    Example:
        from screentrail.plugins.registry import get_registry

        registry = get_registry()
        plugins = registry.applicable_plugins(context)
    """
    return plugin_registry
