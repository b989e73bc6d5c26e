"""Tests for the plugin registry."""

import pytest

from screentrail.plugins.protocol import PluginCapability, PluginStatus
from screentrail.plugins.registry import PluginRegistry, get_registry, plugin_registry

from tests.helpers.builders import make_context
from tests.helpers.plugins import BrokenInitPlugin, RecordingPlugin


class TestRegistration:
    def test_register_initializes_plugin(self, registry):
        plugin = RecordingPlugin()

        registry.register(plugin)

        assert plugin.is_initialized
        assert registry.get_status("test.recording") is PluginStatus.ACTIVE
        assert registry.get_plugin("test.recording") is plugin
        assert len(registry) == 1

    def test_register_without_initialize(self, registry):
        plugin = RecordingPlugin()

        registry.register(plugin, initialize=False)

        assert registry.get_status("test.recording") is PluginStatus.UNINITIALIZED
        assert registry.applicable_plugins(make_context()) == []

    def test_duplicate_id_rejected(self, registry):
        registry.register(RecordingPlugin("dup"))

        with pytest.raises(ValueError, match="already registered"):
            registry.register(RecordingPlugin("dup"))

    def test_non_plugin_rejected(self, registry):
        with pytest.raises(TypeError):
            registry.register(object())

    def test_initialization_failure_isolates_plugin(self, registry):
        registry.register(BrokenInitPlugin("broken"))
        registry.register(RecordingPlugin("healthy"))

        assert registry.get_status("broken") is PluginStatus.FAILED
        assert [p.metadata.identifier for p in registry.applicable_plugins(make_context())] == [
            "healthy"
        ]
        assert registry.get_plugin_info()["broken"]["error"] == "missing API key"

    def test_unregister_cleans_up(self, registry):
        plugin = RecordingPlugin()
        registry.register(plugin)

        assert registry.unregister("test.recording")
        assert plugin.cleanups == 1
        assert registry.get_plugin("test.recording") is None
        assert not registry.unregister("test.recording")

    def test_cleanup_all_returns_plugins_to_uninitialized(self, registry):
        plugin = RecordingPlugin()
        registry.register(plugin)

        registry.cleanup_all()
        registry.cleanup_all()

        assert plugin.cleanups == 2
        assert registry.get_status("test.recording") is PluginStatus.UNINITIALIZED
        assert registry.initialize_plugin("test.recording")
        assert registry.get_status("test.recording") is PluginStatus.ACTIVE


class TestSelection:
    def test_selects_by_pattern_in_registration_order(self, registry):
        registry.register(RecordingPlugin("b", patterns=("com.example.*",)))
        registry.register(RecordingPlugin("other", patterns=("org.other.app",)))
        registry.register(RecordingPlugin("a", patterns=("com.example.app",)))

        selected = registry.applicable_plugins(make_context("com.example.app"))

        assert [p.metadata.identifier for p in selected] == ["b", "a"]

    def test_selects_by_capability(self, registry):
        registry.register(RecordingPlugin())

        assert registry.applicable_plugins(make_context(), PluginCapability.EVENT_DETECTION) == []

    def test_plugin_info(self, registry):
        registry.register(RecordingPlugin("info", patterns=("com.example.*",)))

        info = registry.get_plugin_info()["info"]

        assert info["status"] == "active"
        assert info["applications"] == ["com.example.*"]
        assert info["capabilities"] == ["parsing"]


class TestGlobalRegistry:
    def test_get_registry_returns_singleton(self):
        assert get_registry() is plugin_registry
        assert isinstance(plugin_registry, PluginRegistry)
