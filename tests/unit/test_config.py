"""Tests for configuration loading and editing."""

import tomllib

import pytest

from pydantic import ValidationError

from screentrail.config import (
    get_config_path,
    load_config,
    load_settings,
    save_config,
    set_config_value,
)
from screentrail.constants import RecognitionConstants as RC


class TestLoadSettings:
    def test_defaults_without_file(self):
        settings = load_settings()

        assert settings.recognition.primary_engine == RC.PRIMARY_ENGINE
        assert settings.recognition.mode == "fallback"
        assert settings.evidence.missing_frame_confidence == 0.5
        assert settings.plugins.sandbox_enabled

    def test_sections_override_defaults(self):
        settings = load_settings(
            {
                "recognition": {"mode": "hybrid", "max_retry_attempts": 0},
                "events": {"importance_overrides": {"content_added": "high"}},
            }
        )

        assert settings.recognition.mode == "hybrid"
        assert settings.recognition.max_retry_attempts == 0
        assert settings.events.importance_overrides == {"content_added": "high"}

    def test_unknown_keys_are_ignored(self):
        settings = load_settings({"recognition": {"future_option": 1}, "extra": {}})

        assert settings.recognition.mode == "fallback"

    def test_invalid_value_raises(self):
        with pytest.raises(ValidationError):
            load_settings({"recognition": {"minimum_primary_confidence": 1.5}})


class TestConfigFile:
    def test_save_and_load(self):
        save_config({"recognition": {"mode": "hybrid"}})

        assert load_config() == {"recognition": {"mode": "hybrid"}}
        assert load_settings().recognition.mode == "hybrid"

    def test_corrupted_file_is_treated_as_empty(self):
        get_config_path().write_text("this is [not toml")

        assert load_config() == {}


class TestSetConfigValue:
    def test_coerces_toml_scalars(self):
        assert set_config_value("recognition.engine_timeout", "2.5") == 2.5
        assert set_config_value("plugins.sandbox_enabled", "false") is False
        assert set_config_value("recognition.mode", "hybrid") == "hybrid"

        with open(get_config_path(), "rb") as f:
            stored = tomllib.load(f)
        assert stored["recognition"] == {"engine_timeout": 2.5, "mode": "hybrid"}
        assert stored["plugins"] == {"sandbox_enabled": False}

    def test_nested_key(self):
        set_config_value("events.importance_overrides.content_added", "medium")

        settings = load_settings()

        assert settings.events.importance_overrides == {"content_added": "medium"}

    def test_invalid_value_is_not_written(self):
        with pytest.raises(ValidationError):
            set_config_value("recognition.mode", "sideways")

        assert not get_config_path().exists()

    @pytest.mark.parametrize("key", ["mode", "recognition.", ".mode"])
    def test_malformed_key(self, key):
        with pytest.raises(ValueError, match="section.name"):
            set_config_value(key, "x")
