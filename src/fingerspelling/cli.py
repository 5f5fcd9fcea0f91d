"""FingerSpelling CLI.

Usage:
    fingerspelling detect       Replay a recorded session through the detector
    fingerspelling record       Save a template from a recorded frame
    fingerspelling list         List stored templates
    fingerspelling show         Show one template
    fingerspelling delete       Delete a template
    fingerspelling init-config  Write a default detector config
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from fingerspelling.errors import (
    CatalogLoadError,
    ConfigError,
    TemplateLoadError,
    TemplateNotFoundError,
    TemplateSaveError,
)

app = typer.Typer(
    name="fingerspelling",
    help="🤟 Contour-based hand gesture detection against recorded templates.",
    add_completion=False,
)

TEMPLATES_OPTION = typer.Option("gestures", "--templates", "-t", help="Template directory")


def _setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )


@app.command()
def detect(
    recording: str = typer.Argument(..., help="Path to a recorded session (.json)"),
    templates: str = TEMPLATES_OPTION,
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Detector config YAML"),
    interval: Optional[int] = typer.Option(None, help="Override tick interval (ms)"),
    speed: float = typer.Option(1.0, help="Playback speed multiplier"),
    log_level: str = typer.Option("warning", help="Log level"),
):
    """Run the detector on a recorded session and print recognized gestures."""
    from fingerspelling.catalog import TemplateCatalog
    from fingerspelling.config import DetectorConfig
    from fingerspelling.detection import DetectionLoop
    from fingerspelling.events import GestureFound, HandTooClose
    from fingerspelling.metrics import MetricsCollector
    from fingerspelling.profiler import DetectionProfiler
    from fingerspelling.recorder import ObservationPlayer, ReplayHandSource
    from fingerspelling.store import JsonTemplateStore

    _setup_logging(log_level)

    path = Path(recording)
    if not path.exists():
        typer.echo(f"❌ Recording not found: {recording}", err=True)
        raise typer.Exit(1)

    try:
        cfg = DetectorConfig.from_yaml(config) if config else DetectorConfig()
        if interval is not None:
            cfg.interval_ms = interval
            cfg.validate()
    except ConfigError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    player = ObservationPlayer.load(path)
    source = ReplayHandSource(player, speed=speed)
    metrics = MetricsCollector()
    profiler = DetectionProfiler()
    loop = DetectionLoop(
        TemplateCatalog(JsonTemplateStore(templates)),
        profiler=profiler,
        metrics=metrics,
    )

    @loop.events.on(GestureFound)
    def on_gesture(event):
        typer.echo(f"   🤟 {event.template.name} (h={event.distance:.1f})")

    @loop.events.on(HandTooClose)
    def on_too_close(event):
        typer.echo(f"   ⚠️  hand too close (depth={event.depth:.0f})")

    typer.echo(f"▶️  Replaying {path.name} ({player.frame_count} frames, {player.duration:.1f}s)")
    with loop:
        try:
            snapshot = loop.start(source, cfg).result()
        except CatalogLoadError as e:
            typer.echo(f"❌ Could not load templates: {e}", err=True)
            raise typer.Exit(1)

        typer.echo(f"📂 {len(snapshot)} templates loaded from {templates}")
        source.run()

    counts = metrics.gesture_counts
    typer.echo(f"\n✅ Replay complete. {sum(counts.values())} gestures in {metrics.ticks} ticks.")
    for name, count in sorted(counts.items()):
        typer.echo(f"   {name:20s} {count}")
    for name, stats in profiler.summary().items():
        typer.echo(f"   {name:15s} avg={stats['avg_ms']:.3f}ms  p95={stats['p95_ms']:.3f}ms")


@app.command()
def record(
    name: str = typer.Argument(..., help="Gesture name"),
    recording: str = typer.Argument(..., help="Recorded session to take the shape from"),
    templates: str = TEMPLATES_OPTION,
    frame: Optional[int] = typer.Option(None, help="Frame index (default: last frame with a hand)"),
):
    """Save a gesture template from a recorded frame."""
    from fingerspelling.recorder import ObservationPlayer
    from fingerspelling.store import JsonTemplateStore
    from fingerspelling.templates import GestureTemplate

    player = ObservationPlayer.load(recording)
    if frame is None:
        observation = player.last_observation()
    else:
        recorded = player.get_frame(frame)
        observation = recorded.observation if recorded else None

    if observation is None:
        typer.echo("❌ No hand in the selected frame.", err=True)
        raise typer.Exit(1)

    try:
        key = JsonTemplateStore(templates).save(GestureTemplate.from_observation(name, observation))
    except (TemplateSaveError, ValueError) as e:
        typer.echo(f"❌ Could not save gesture: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"💾 Saved '{key}' ({observation.finger_count} fingers, {len(observation.contour)} points)")


@app.command("list")
def list_templates(templates: str = TEMPLATES_OPTION):
    """List stored templates."""
    from fingerspelling.store import JsonTemplateStore

    try:
        found = JsonTemplateStore(templates).fetch_all()
    except TemplateLoadError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    if not found:
        typer.echo(f"No templates in {templates}")
        return
    for template in found:
        typer.echo(f"   {template.name:20s} fingers={template.finger_count}  points={len(template.contour_points)}")


@app.command()
def show(name: str = typer.Argument(..., help="Gesture name"), templates: str = TEMPLATES_OPTION):
    """Show a stored template."""
    import json

    from fingerspelling.store import JsonTemplateStore

    try:
        template = JsonTemplateStore(templates).read_by_name(name)
    except TemplateNotFoundError:
        typer.echo(f"❌ No gesture named '{name}'", err=True)
        raise typer.Exit(1)
    except TemplateLoadError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    typer.echo(json.dumps(template.to_dict(), indent=2))


@app.command()
def delete(name: str = typer.Argument(..., help="Gesture name"), templates: str = TEMPLATES_OPTION):
    """Delete a stored template."""
    from fingerspelling.store import JsonTemplateStore

    try:
        removed = JsonTemplateStore(templates).delete(name)
    except ValueError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    if not removed:
        typer.echo(f"❌ No gesture named '{name}'", err=True)
        raise typer.Exit(1)
    typer.echo(f"🗑  Deleted '{name}'")


@app.command("init-config")
def init_config(path: str = typer.Argument("detector.yml", help="Output path")):
    """Write a detector config with default values."""
    from fingerspelling.config import DetectorConfig

    DetectorConfig().to_yaml(path)
    typer.echo(f"💾 Wrote default config to {path}")


def main():
    app()


if __name__ == "__main__":
    main()
