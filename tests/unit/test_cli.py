"""Tests for the command-line interface."""

import json

import pytest

from click.testing import CliRunner

from screentrail import logging_config
from screentrail.cli import cli
from screentrail.evidence import EvidenceDocument, to_json
from screentrail.recognition.fallback import FallbackCoordinator

from tests.helpers.builders import make_event, make_frame_metadata, make_result, make_summary
from tests.helpers.engines import ScriptedEngine


def snapshot_json(*results) -> list[dict]:
    return [r.model_dump(mode="json") for r in results]


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(logging_config, "_logging_configured", True)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def plugin_dir(isolated_home, runner):
    directory = isolated_home / "plugins"
    runner.invoke(cli, ["config", "set", "plugins.plugin_directory", str(directory)])
    return directory


class TestDiff:
    def test_field_change(self, runner, tmp_path):
        previous = tmp_path / "previous.json"
        current = tmp_path / "current.json"
        previous.write_text(
            json.dumps(snapshot_json(make_result("Status:", x=0), make_result("Draft", x=100)))
        )
        current.write_text(
            json.dumps(
                {
                    "context": {"app_identifier": "com.example.mail", "window_title": "Compose"},
                    "results": snapshot_json(
                        make_result("Status:", x=0), make_result("Sent", x=100)
                    ),
                }
            )
        )

        result = runner.invoke(cli, ["diff", str(previous), str(current), "--no-plugins"])

        assert result.exit_code == 0, result.output
        (classified,) = json.loads(result.output)
        assert classified["event"]["type"] == "field_change"
        assert classified["event"]["value_before"] == "Draft"
        assert classified["event"]["app_identifier"] == "com.example.mail"
        assert classified["event"]["evidence_frames"] == ["previous", "current"]
        assert classified["classification"]["category"] == "data_modification"

    def test_plugin_events(self, runner, tmp_path, plugin_dir):
        previous = tmp_path / "a.json"
        current = tmp_path / "b.json"
        previous.write_text(json.dumps(snapshot_json(make_result("$ foo"))))
        current.write_text(
            json.dumps(
                snapshot_json(
                    make_result("$ foo"), make_result("bash: foo: command not found", y=30)
                )
            )
        )

        result = runner.invoke(
            cli, ["diff", str(previous), str(current), "--app", "com.apple.Terminal"]
        )

        assert result.exit_code == 0, result.output
        types = {c["event"]["type"] for c in json.loads(result.output)}
        assert types == {"error_display", "command_failed"}

    def test_invalid_snapshot(self, runner, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("[{")

        result = runner.invoke(cli, ["diff", str(bad), str(bad)])

        assert result.exit_code == 1
        assert "Invalid snapshot" in result.output


class TestTrace:
    @pytest.fixture
    def document(self, tmp_path):
        summary = make_summary("s1", [make_event("e1", 10, frames=["f1"])])
        path = tmp_path / "evidence.json"
        path.write_text(
            to_json(
                EvidenceDocument(summaries=[summary], frames=[make_frame_metadata("f1", 10)])
            )
        )
        return path

    def test_report(self, runner, document):
        result = runner.invoke(cli, ["trace", str(document), "s1"])

        assert result.exit_code == 0, result.output
        report = json.loads(result.output)
        assert report["evidenceTrace"]["traceComplete"] is True
        assert report["evidenceReference"]["directEvidenceFrames"] == ["f1"]

    def test_unknown_summary(self, runner, document):
        result = runner.invoke(cli, ["trace", str(document), "s9"])

        assert result.exit_code == 1
        assert "Available: s1" in result.output


class TestRecognize:
    def test_prints_text_and_elements(self, runner, tmp_path, monkeypatch, plugin_dir):
        image = tmp_path / "frame.png"
        image.write_bytes(b"not really a png")
        primary = ScriptedEngine("tesseract", [make_result("bash: foo: command not found")])
        monkeypatch.setattr(
            FallbackCoordinator,
            "from_settings",
            classmethod(lambda cls, settings: cls(primary, ScriptedEngine("easyocr"), settings)),
        )

        result = runner.invoke(cli, ["recognize", str(image), "--app", "com.apple.Terminal"])

        assert result.exit_code == 0, result.output
        assert "Engines: tesseract (1 attempt(s))" in result.output
        assert "bash: foo: command not found" in result.output
        assert "missing_command: foo" in result.output

    def test_total_failure_is_reported(self, runner, tmp_path, monkeypatch, plugin_dir):
        from screentrail.recognition.base import EngineError

        image = tmp_path / "frame.png"
        image.write_bytes(b"")
        monkeypatch.setattr(
            FallbackCoordinator,
            "from_settings",
            classmethod(
                lambda cls, settings: cls(
                    ScriptedEngine("tesseract", EngineError("missing binary")),
                    ScriptedEngine("easyocr", EngineError("missing model")),
                    settings,
                )
            ),
        )

        result = runner.invoke(cli, ["recognize", str(image)])

        assert result.exit_code == 1
        assert "Error" in result.output


class TestListings:
    def test_plugins(self, runner, plugin_dir):
        result = runner.invoke(cli, ["plugins"])

        assert result.exit_code == 0, result.output
        assert "builtin.terminal (1.0.0) [active]" in result.output
        assert "builtin.web" in result.output

    def test_engines(self, runner):
        result = runner.invoke(cli, ["engines"])

        assert result.exit_code == 0, result.output
        assert "tesseract [primary]" in result.output
        assert "easyocr [secondary]" in result.output


class TestConfigCommands:
    def test_show_defaults(self, runner):
        result = runner.invoke(cli, ["config", "show"])

        assert result.exit_code == 0, result.output
        assert "# Source: defaults (no config file)" in result.output
        assert "[recognition]" in result.output

    def test_set_then_show(self, runner, isolated_home):
        set_result = runner.invoke(cli, ["config", "set", "recognition.mode", "hybrid"])
        show_result = runner.invoke(cli, ["config", "show"])

        assert set_result.exit_code == 0, set_result.output
        assert "recognition.mode = 'hybrid'" in set_result.output
        assert str(isolated_home / "config.toml") in show_result.output
        assert 'mode = "hybrid"' in show_result.output

    def test_set_invalid_value(self, runner):
        result = runner.invoke(cli, ["config", "set", "recognition.mode", "sideways"])

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "screentrail" in result.output
