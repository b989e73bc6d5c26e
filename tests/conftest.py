"""Pytest configuration and fixtures for screentrail tests."""

import pytest

from screentrail.plugins.protocol import PluginConfiguration
from screentrail.plugins.registry import PluginRegistry

from tests.helpers.builders import make_context


def pytest_configure(config):
    """Register custom test markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests that do not require external dependencies"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests combining multiple components"
    )
    config.addinivalue_line("markers", "plugins: Tests for content plugins")
    config.addinivalue_line("markers", "evidence: Tests for evidence linking")
    config.addinivalue_line(
        "markers", "slow: Tests that take significant time (>5 seconds)"
    )


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep config and log files out of the real home directory."""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setattr("screentrail.config.DEFAULT_APP_DIR", tmp_path)
    monkeypatch.setattr(
        "screentrail.config.get_config_path", lambda: tmp_path / "config.toml"
    )
    monkeypatch.setattr("screentrail.cli.get_config_path", lambda: tmp_path / "config.toml")
    monkeypatch.setattr("screentrail.logging_config.DEFAULT_LOG_DIR", tmp_path / "logs")
    return tmp_path


@pytest.fixture
def registry():
    """Create a fresh plugin registry."""
    registry = PluginRegistry()
    yield registry
    registry.clear()


@pytest.fixture
def fast_budget():
    """Plugin configuration with a short time budget."""
    return PluginConfiguration(max_execution_time=0.2)


@pytest.fixture
def context():
    return make_context()
