"""Plano template commands."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from autoshorts_core.composition.geometry import Size
from autoshorts_core.composition.resolver import build_render_plan, probe_overlay_sizes
from autoshorts_core.errors import ShortsError
from autoshorts_core.models.plano import default_plano, load_plano, save_plano
from autoshorts_core.processors.renderer import VideoRenderer
from autoshorts_core.utils.time import parse_timestamp
from autoshorts_core.utils.video import media_size, probe_media
from autoshorts_cli.commands.jobs import exit_with_error
from autoshorts_cli.config.settings import load_user_config
from autoshorts_cli.output.table import print_plan


console = Console()


def _parse_size(value: str) -> tuple[int, int]:
    try:
        width, height = (int(v) for v in value.lower().split("x"))
    except ValueError:
        typer.echo(f"Error: Invalid size '{value}', expected WIDTHxHEIGHT", err=True)
        raise typer.Exit(1)
    if width <= 0 or height <= 0:
        typer.echo(f"Error: Invalid size '{value}'", err=True)
        raise typer.Exit(1)
    return width, height


def plano_validate_command(
    path: str = typer.Argument(..., help="Plano JSON file"),
) -> None:
    """Check that a plano template is valid."""
    try:
        plano = load_plano(Path(path))
    except ShortsError as e:
        exit_with_error(e)

    kinds = ", ".join(layer.type for layer in plano)
    console.print(f"[green]✓[/green] {path}: {len(plano)} layer(s) ({kinds})")


def plano_init_command(
    path: str = typer.Argument("plano.json", help="Where to write the template"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
) -> None:
    """Write the default plano template."""
    target = Path(path)
    if target.exists() and not force:
        typer.echo(f"Error: {path} already exists (use --force to overwrite)", err=True)
        raise typer.Exit(1)

    save_plano(default_plano(), target)
    console.print(f"[green]✓[/green] Wrote default plano to {target}")


def plano_preview_command(
    path: str = typer.Argument(..., help="Plano JSON file"),
    source: Optional[str] = typer.Option(None, "-s", "--source", help="Video to compose a preview frame from"),
    size: str = typer.Option("1920x1080", "--size", help="Source size when no video is given"),
    at: str = typer.Option("0", "--at", help="Timestamp of the preview frame"),
    output: str = typer.Option("preview.png", "-o", "--output", help="Preview image path"),
) -> None:
    """
    Show where each plano layer lands on the canvas.

    With --source, also renders one composed frame.

    Examples:
        autoshorts plano preview plano.json --size 1280x720
        autoshorts plano preview plano.json -s gameplay.mp4 --at 01:30
    """
    template = Path(path)
    config = load_user_config()

    try:
        plano = load_plano(template)
        source_size = probe_media(Path(source)).size if source else _parse_size(size)
        plan = build_render_plan(
            plano,
            source_size,
            canvas=Size(*config.render.canvas),
            media_sizes=probe_overlay_sizes(plano, template.parent, media_size),
            base_dir=template.parent,
        )
    except ShortsError as e:
        exit_with_error(e)

    print_plan(plan)
    if not source:
        return

    try:
        timestamp = parse_timestamp(at)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    renderer = VideoRenderer(config.render)
    result = renderer.render_preview(plan, Path(source), timestamp, Path(output))
    if not result.success:
        typer.echo(f"Error: Preview failed: {result.error}", err=True)
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Preview frame written to {output}")
