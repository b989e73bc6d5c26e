"""
Directory plugin loading.

A plugin directory contains ``<name>.plugin/`` folders, each with a
``manifest.json`` and an optional ``config.json`` of plugin settings::

    jira.plugin/
        manifest.json   {"identifier": "acme.jira", "name": "Jira",
                         "type": "productivity",
                         "supportedApplications": ["com.atlassian.*"]}
        config.json     {"disabled_rules": ["mention"]}

The manifest ``type`` selects a built-in rule set; the manifest supplies
identifier, name and supported applications.
"""

import json
import logging

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from screentrail.constants import PluginConstants as PC
from screentrail.plugins.builtin import create_builtin_plugin
from screentrail.plugins.errors import PluginManifestError
from screentrail.plugins.protocol import PluginConfiguration
from screentrail.plugins.registry import PluginRegistry
from screentrail.plugins.ruleset import RuleSetPlugin

logger = logging.getLogger(__name__)


class PluginManifest(BaseModel):
    """Contents of ``manifest.json``."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    identifier: str
    name: str
    version: str = "1.0.0"
    description: str = ""
    type: str
    supported_applications: list[str] = Field(min_length=1)
    max_memory_usage: int | None = Field(default=None, gt=0)
    max_execution_time: float | None = Field(default=None, gt=0)
    enabled: bool = True


def _read_json(path: Path, plugin_dir: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise PluginManifestError(f"Cannot read {path.name} in {plugin_dir}: {e}") from e


def load_manifest(plugin_dir: Path) -> PluginManifest:
    """
    Load and validate ``manifest.json`` from a plugin directory.

    Raises:
        PluginManifestError: If the file is missing, unreadable or invalid
    """
    manifest_path = plugin_dir / PC.MANIFEST_FILE
    if not manifest_path.exists():
        raise PluginManifestError(f"No {PC.MANIFEST_FILE} in {plugin_dir}")

    try:
        return PluginManifest.model_validate(_read_json(manifest_path, plugin_dir))
    except ValidationError as e:
        raise PluginManifestError(f"Invalid manifest in {plugin_dir}: {e}") from e


def load_plugin_settings(plugin_dir: Path) -> dict[str, Any]:
    """Plugin-specific settings from ``config.json``; empty when absent."""
    config_path = plugin_dir / PC.CONFIG_FILE
    if not config_path.exists():
        return {}
    data = _read_json(config_path, plugin_dir)
    if not isinstance(data, dict):
        raise PluginManifestError(f"{PC.CONFIG_FILE} in {plugin_dir} must be an object")
    return data


def discover_plugin_dirs(directory: Path) -> list[Path]:
    """``*.plugin`` folders in ``directory``, sorted by name."""
    if not directory.is_dir():
        return []
    return sorted(
        p for p in directory.iterdir() if p.is_dir() and p.name.endswith(PC.PLUGIN_DIR_SUFFIX)
    )


def build_plugin(manifest: PluginManifest) -> RuleSetPlugin:
    """
    Instantiate the plugin a manifest describes.

    Raises:
        PluginManifestError: If the manifest type is unknown
    """
    try:
        return create_builtin_plugin(
            manifest.type,
            customize=lambda rules: rules.with_overrides(
                identifier=manifest.identifier,
                name=manifest.name,
                version=manifest.version,
                description=manifest.description,
                supported_applications=manifest.supported_applications,
            ),
        )
    except ValueError as e:
        raise PluginManifestError(str(e), plugin_id=manifest.identifier) from e


def load_plugins_from_directory(
    directory: Path,
    registry: PluginRegistry,
    defaults: PluginConfiguration | None = None,
    disabled: set[str] | None = None,
    settings_by_id: dict[str, dict[str, Any]] | None = None,
) -> list[str]:
    """
    Register every valid plugin found under ``directory``.

    Invalid manifests are logged and skipped; they never prevent other
    plugins from loading.

    Args:
        directory: Folder containing ``*.plugin`` directories
        registry: Registry to register into
        defaults: Budgets applied unless the manifest overrides them
        disabled: Plugin ids to skip
        settings_by_id: Settings from config.toml, layered over config.json

    Returns:
        Identifiers of plugins registered
    """
    defaults = defaults or PluginConfiguration()
    disabled = disabled or set()
    settings_by_id = settings_by_id or {}
    loaded: list[str] = []

    for plugin_dir in discover_plugin_dirs(directory):
        try:
            manifest = load_manifest(plugin_dir)
            if not manifest.enabled or manifest.identifier in disabled:
                logger.info(f"Skipping disabled plugin {manifest.identifier}")
                continue

            plugin = build_plugin(manifest)
            configuration = defaults.model_copy(
                update={
                    "plugin_directory": plugin_dir,
                    "max_memory_usage": manifest.max_memory_usage
                    or defaults.max_memory_usage,
                    "max_execution_time": manifest.max_execution_time
                    or defaults.max_execution_time,
                    "settings": {
                        **load_plugin_settings(plugin_dir),
                        **settings_by_id.get(manifest.identifier, {}),
                    },
                }
            )
            registry.register(plugin, configuration)
            loaded.append(manifest.identifier)
        except (PluginManifestError, ValueError) as e:
            logger.warning(f"Skipping plugin {plugin_dir.name}: {e}")

    logger.info(f"Loaded {len(loaded)} plugin(s) from {directory}")
    return loaded
