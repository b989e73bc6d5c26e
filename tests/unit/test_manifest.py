"""Tests for directory plugin manifests."""

import json

from pathlib import Path

import pytest

from screentrail.plugins.errors import PluginManifestError
from screentrail.plugins.manifest import (
    build_plugin,
    discover_plugin_dirs,
    load_manifest,
    load_plugin_settings,
    load_plugins_from_directory,
)
from screentrail.plugins.protocol import PluginConfiguration, PluginStatus

pytestmark = pytest.mark.plugins

JIRA_MANIFEST = {
    "identifier": "acme.jira",
    "name": "Acme Jira",
    "type": "productivity",
    "supportedApplications": ["com.atlassian.jira"],
    "maxExecutionTime": 0.5,
}


def write_plugin(
    root: Path, name: str, manifest: object | None, config: object | None = None
) -> Path:
    plugin_dir = root / f"{name}.plugin"
    plugin_dir.mkdir(parents=True)
    if manifest is not None:
        text = manifest if isinstance(manifest, str) else json.dumps(manifest)
        (plugin_dir / "manifest.json").write_text(text)
    if config is not None:
        (plugin_dir / "config.json").write_text(json.dumps(config))
    return plugin_dir


class TestLoadManifest:
    def test_camel_case_keys(self, tmp_path):
        plugin_dir = write_plugin(tmp_path, "jira", JIRA_MANIFEST)

        manifest = load_manifest(plugin_dir)

        assert manifest.identifier == "acme.jira"
        assert manifest.supported_applications == ["com.atlassian.jira"]
        assert manifest.max_execution_time == 0.5
        assert manifest.enabled

    def test_missing_manifest(self, tmp_path):
        plugin_dir = write_plugin(tmp_path, "empty", None)

        with pytest.raises(PluginManifestError, match="No manifest.json"):
            load_manifest(plugin_dir)

    def test_malformed_json(self, tmp_path):
        plugin_dir = write_plugin(tmp_path, "broken", "{not json")

        with pytest.raises(PluginManifestError, match="Cannot read"):
            load_manifest(plugin_dir)

    def test_missing_required_field(self, tmp_path):
        manifest = {k: v for k, v in JIRA_MANIFEST.items() if k != "supportedApplications"}
        plugin_dir = write_plugin(tmp_path, "partial", manifest)

        with pytest.raises(PluginManifestError, match="Invalid manifest"):
            load_manifest(plugin_dir)

    def test_plugin_settings(self, tmp_path):
        plugin_dir = write_plugin(tmp_path, "jira", JIRA_MANIFEST, {"disabled_rules": ["mention"]})

        assert load_plugin_settings(plugin_dir) == {"disabled_rules": ["mention"]}
        assert load_plugin_settings(write_plugin(tmp_path, "bare", JIRA_MANIFEST)) == {}

    def test_plugin_settings_must_be_object(self, tmp_path):
        plugin_dir = write_plugin(tmp_path, "jira", JIRA_MANIFEST, ["mention"])

        with pytest.raises(PluginManifestError, match="must be an object"):
            load_plugin_settings(plugin_dir)


class TestBuildPlugin:
    def test_manifest_metadata_overrides_rule_set(self, tmp_path):
        manifest = load_manifest(write_plugin(tmp_path, "jira", JIRA_MANIFEST))

        plugin = build_plugin(manifest)

        assert plugin.metadata.identifier == "acme.jira"
        assert plugin.metadata.name == "Acme Jira"
        assert plugin.metadata.supported_application_patterns == ("com.atlassian.jira",)

    def test_unknown_type(self, tmp_path):
        manifest = load_manifest(
            write_plugin(tmp_path, "odd", {**JIRA_MANIFEST, "type": "spreadsheet"})
        )

        with pytest.raises(PluginManifestError) as exc_info:
            build_plugin(manifest)

        assert exc_info.value.plugin_id == "acme.jira"


class TestLoadPluginsFromDirectory:
    def test_discovers_only_plugin_folders(self, tmp_path):
        write_plugin(tmp_path, "b", JIRA_MANIFEST)
        write_plugin(tmp_path, "a", JIRA_MANIFEST)
        (tmp_path / "notes").mkdir()
        (tmp_path / "stray.plugin").write_text("file, not a folder")

        assert [p.name for p in discover_plugin_dirs(tmp_path)] == ["a.plugin", "b.plugin"]
        assert discover_plugin_dirs(tmp_path / "missing") == []

    def test_bad_entries_do_not_block_others(self, tmp_path, registry):
        write_plugin(tmp_path, "jira", JIRA_MANIFEST, {"disabled_rules": ["mention"]})
        write_plugin(tmp_path, "broken", "{")
        write_plugin(tmp_path, "unknown", {**JIRA_MANIFEST, "identifier": "x", "type": "nope"})

        loaded = load_plugins_from_directory(tmp_path, registry)

        assert loaded == ["acme.jira"]
        assert registry.get_status("acme.jira") is PluginStatus.ACTIVE

    def test_configuration_layers(self, tmp_path, registry):
        plugin_dir = write_plugin(tmp_path, "jira", JIRA_MANIFEST, {"disabled_rules": ["mention"]})

        load_plugins_from_directory(
            tmp_path,
            registry,
            defaults=PluginConfiguration(max_memory_usage=1024),
            settings_by_id={"acme.jira": {"extra_applications": ["com.linear.*"]}},
        )
        configuration = registry.get_configuration("acme.jira")

        assert configuration.plugin_directory == plugin_dir
        assert configuration.max_execution_time == 0.5
        assert configuration.max_memory_usage == 1024
        assert configuration.settings == {
            "disabled_rules": ["mention"],
            "extra_applications": ["com.linear.*"],
        }

    def test_disabled_plugins_are_skipped(self, tmp_path, registry):
        write_plugin(tmp_path, "jira", JIRA_MANIFEST)
        write_plugin(
            tmp_path, "off", {**JIRA_MANIFEST, "identifier": "acme.off", "enabled": False}
        )

        loaded = load_plugins_from_directory(tmp_path, registry, disabled={"acme.jira"})

        assert loaded == []
        assert len(registry) == 0
