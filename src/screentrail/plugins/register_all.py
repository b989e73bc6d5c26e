"""
Register all available content plugins.

This module provides explicit plugin registration, which is safer than
auto-registration at module import time. Call register_all_plugins()
at application startup to enable the built-in plugins and any plugins
found in the configured plugin directory.
"""

import logging

from screentrail.config import PluginSettings
from screentrail.plugins.protocol import PluginConfiguration
from screentrail.plugins.registry import PluginRegistry

logger = logging.getLogger(__name__)


def configuration_for(plugin_id: str, settings: PluginSettings) -> PluginConfiguration:
    """Build a plugin's configuration from the ``[plugins]`` config section."""
    return PluginConfiguration(
        plugin_directory=settings.plugin_directory,
        sandbox_enabled=settings.sandbox_enabled,
        max_memory_usage=settings.max_memory_usage,
        max_execution_time=settings.max_execution_time,
        settings=settings.settings.get(plugin_id, {}),
    )


def register_all_plugins(
    registry: PluginRegistry | None = None,
    settings: PluginSettings | None = None,
) -> PluginRegistry:
    """
    Register built-in and directory plugins with a registry.

    Each plugin is registered individually; if one fails, an error is logged
    and the others continue to load. Plugins already registered are skipped
    so repeated calls are harmless.

    Args:
        registry: Target registry; the global registry when omitted
        settings: ``[plugins]`` settings; defaults when omitted

    Returns:
        The registry that was populated
    """
    from screentrail.plugins.builtin import BUILTIN_RULE_SETS, create_builtin_plugin
    from screentrail.plugins.manifest import load_plugins_from_directory
    from screentrail.plugins.registry import plugin_registry

    registry = registry if registry is not None else plugin_registry
    settings = settings or PluginSettings()
    disabled = set(settings.disabled)

    for plugin_type, rule_set in BUILTIN_RULE_SETS.items():
        plugin_id = rule_set.identifier
        if plugin_id in disabled:
            logger.info(f"Built-in plugin {plugin_id} disabled by config")
            continue
        if registry.get_plugin(plugin_id) is not None:
            continue
        try:
            registry.register(
                create_builtin_plugin(plugin_type), configuration_for(plugin_id, settings)
            )
        except Exception as e:
            logger.error(f"Failed to register {plugin_type} plugin: {e}", exc_info=True)

    if settings.plugin_directory.is_dir():
        load_plugins_from_directory(
            settings.plugin_directory,
            registry,
            defaults=configuration_for("", settings),
            disabled=disabled | {p.metadata.identifier for p in registry.list_plugins()},
            settings_by_id=settings.settings,
        )

    logger.info(f"Plugin registration complete: {len(registry)} plugin(s) available")
    return registry
