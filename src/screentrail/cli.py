"""
Command-line interface for screentrail.

Provides commands for running the perception pipeline on images, diffing
recognition snapshots, tracing evidence, and managing configuration.
"""

import asyncio
import json
import logging

from datetime import datetime
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path
from typing import Any

import click
import tomli_w

from pydantic import TypeAdapter, ValidationError

from screentrail.config import get_config_path, load_settings, set_config_value
from screentrail.logging_config import setup_logging
from screentrail.models.recognition import ApplicationContext, Frame, RecognitionResult

logger = logging.getLogger(__name__)

try:
    __version__ = get_version("screentrail")
except PackageNotFoundError:
    __version__ = "dev"

_RESULTS_ADAPTER = TypeAdapter(list[RecognitionResult])


def _load_settings_or_fail() -> Any:
    try:
        return load_settings()
    except ValidationError as e:
        raise click.ClickException(f"Invalid configuration in {get_config_path()}:\n{e}") from e


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


@click.group()
@click.version_option(__version__, prog_name="screentrail")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def cli(verbose: bool) -> None:
    """screentrail: screen text recognition to attributable activity evidence"""
    setup_logging(verbose=verbose, console_format="%(levelname)s: %(message)s")


# ============================================================================
# Pipeline Commands
# ============================================================================


@cli.command()
@click.argument("image", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--app", "app_identifier", default="unknown", help="Application identifier")
@click.option("--window", "window_title", default="", help="Window title")
@click.option("--language", default=None, help="Language hint (e.g. en, ja)")
@click.option(
    "--mode",
    type=click.Choice(["fallback", "hybrid"]),
    default=None,
    help="Override the configured recognition mode",
)
@click.option("--json", "as_json", is_flag=True, help="Print the full result as JSON")
def recognize(
    image: Path,
    app_identifier: str,
    window_title: str,
    language: str | None,
    mode: str | None,
    as_json: bool,
) -> None:
    """Run recognition and plugins on one image file."""
    from screentrail.pipeline import PerceptionPipeline
    from screentrail.recognition.base import RecognitionFailedError

    settings = _load_settings_or_fail()
    if mode:
        settings.recognition.mode = mode

    frame = Frame(
        image=image,
        context=ApplicationContext(app_identifier=app_identifier, window_title=window_title),
        language_hint=language,
    )

    async def run() -> Any:
        pipeline = PerceptionPipeline.from_settings(settings)
        try:
            return await pipeline.process_frame(frame)
        finally:
            await pipeline.close()

    try:
        result = asyncio.run(run())
    except RecognitionFailedError as e:
        raise click.ClickException(str(e)) from e
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        _echo_json(result.model_dump(mode="json", exclude={"context"}))
        return

    outcome = result.outcome
    click.echo(f"Engines: {', '.join(outcome.engines_used)} ({outcome.attempts} attempt(s))")
    if outcome.fallback_reason:
        click.echo(f"Fallback: {outcome.fallback_reason.value}")
    click.echo(f"Confidence: {outcome.confidence:.2f}" + (" (partial)" if outcome.partial else ""))
    click.echo(f"\nText ({len(outcome.results)} region(s)):")
    for r in outcome.results:
        click.echo(f"  [{r.confidence:.2f}] {r.text}")

    elements = result.dispatch.structured_elements
    if elements:
        click.echo(f"\nStructured elements ({len(elements)}):")
        for element in elements:
            click.echo(f"  {element.type}: {element.value}")
    for failure in result.dispatch.failures:
        click.echo(
            f"Plugin {failure.plugin_id} failed ({failure.reason}): {failure.message}",
            err=True,
        )


def _read_snapshot(path: Path) -> tuple[list[RecognitionResult], dict[str, Any]]:
    """Read a snapshot file: a list of results or ``{"context": ..., "results": [...]}``."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(data, list):
            return _RESULTS_ADAPTER.validate_python(data), {}
        return _RESULTS_ADAPTER.validate_python(data.get("results", [])), data.get(
            "context", {}
        )
    except (json.JSONDecodeError, ValidationError, AttributeError) as e:
        raise click.ClickException(f"Invalid snapshot {path}: {e}") from e


@cli.command()
@click.argument("previous", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("current", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--app", "app_identifier", default=None, help="Application identifier")
@click.option("--window", "window_title", default=None, help="Window title")
@click.option("--no-plugins", is_flag=True, help="Use base rules only")
def diff(
    previous: Path,
    current: Path,
    app_identifier: str | None,
    window_title: str | None,
    no_plugins: bool,
) -> None:
    """Detect events between two JSON recognition snapshots."""
    from screentrail.events.detector import EventDetector
    from screentrail.plugins.dispatcher import PluginDispatcher
    from screentrail.plugins.register_all import register_all_plugins
    from screentrail.plugins.registry import PluginRegistry

    settings = _load_settings_or_fail()
    previous_results, _ = _read_snapshot(previous)
    current_results, context_data = _read_snapshot(current)

    context_data = {"app_identifier": "unknown", **context_data}
    if app_identifier:
        context_data["app_identifier"] = app_identifier
    if window_title is not None:
        context_data["window_title"] = window_title
    try:
        context = ApplicationContext.model_validate(context_data)
    except ValidationError as e:
        raise click.ClickException(f"Invalid context in {current}: {e}") from e

    dispatcher = None
    if not no_plugins:
        registry = register_all_plugins(PluginRegistry(), settings.plugins)
        dispatcher = PluginDispatcher(registry)
    detector = EventDetector(settings.events, dispatcher)

    events = asyncio.run(
        detector.detect(
            previous_results,
            current_results,
            context,
            timestamp=datetime.now(),
            previous_frame=previous.stem,
            current_frame=current.stem,
        )
    )
    _echo_json([e.model_dump(mode="json") for e in events])


@cli.command()
@click.argument("document", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("summary_id")
def trace(document: Path, summary_id: str) -> None:
    """Link a JSON evidence document and print one summary's evidence report."""
    from screentrail.evidence import EvidenceLinker, evidence_report, link_document, load_document

    try:
        doc = load_document(document)
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    if summary_id not in {s.id for s in doc.summaries}:
        available = ", ".join(s.id for s in doc.summaries) or "none"
        raise click.ClickException(
            f"Summary '{summary_id}' not in {document}. Available: {available}"
        )

    settings = _load_settings_or_fail()
    linker = link_document(doc, EvidenceLinker(settings.evidence))
    _echo_json(evidence_report(linker, summary_id))


# ============================================================================
# Listing Commands
# ============================================================================


@cli.command()
def plugins() -> None:
    """List available plugins and their status."""
    from screentrail.plugins.register_all import register_all_plugins
    from screentrail.plugins.registry import PluginRegistry

    settings = _load_settings_or_fail()
    registry = register_all_plugins(PluginRegistry(), settings.plugins)
    info = registry.get_plugin_info()
    if not info:
        click.echo("No plugins registered.")
        return

    for plugin_id, details in info.items():
        click.echo(f"{plugin_id} ({details['version']}) [{details['status']}]")
        click.echo(f"  {details['name']}: {details['description']}")
        click.echo(f"  Applications: {', '.join(details['applications'])}")
        click.echo(f"  Capabilities: {', '.join(details['capabilities'])}")
        if details.get("error"):
            click.echo(f"  Error: {details['error']}")
    registry.cleanup_all()


@cli.command()
def engines() -> None:
    """List recognition engines."""
    from screentrail.recognition.engines import AVAILABLE_ENGINES

    settings = _load_settings_or_fail()
    roles = {
        settings.recognition.primary_engine: "primary",
        settings.recognition.secondary_engine: "secondary",
    }
    for name, engine_cls in AVAILABLE_ENGINES.items():
        role = roles.get(name)
        suffix = f" [{role}]" if role else ""
        click.echo(f"{name}{suffix}: {(engine_cls.__doc__ or '').strip()}")


# ============================================================================
# Configuration
# ============================================================================


@cli.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command("show")
def show_config_cmd() -> None:
    """Show effective settings (config file merged with defaults)."""
    config_path = get_config_path()
    source = config_path if config_path.exists() else "defaults (no config file)"
    click.echo(f"# Source: {source}\n")

    settings = _load_settings_or_fail()
    click.echo(tomli_w.dumps(settings.model_dump(mode="json", exclude_none=True)))


@config.command("set")
@click.argument("key")
@click.argument("value")
def set_config_cmd(key: str, value: str) -> None:
    """Set a setting by dotted key, e.g. 'recognition.mode hybrid'."""
    try:
        stored = set_config_value(key, value)
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"✓ {key} = {stored!r}")
    click.echo(f"  Config: {get_config_path()}")
