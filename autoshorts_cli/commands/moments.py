"""Moment review commands."""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from autoshorts_core import MomentStore
from autoshorts_core.errors import ShortsError
from autoshorts_cli.commands.jobs import exit_with_error, finish, run_with_spinner, get_machine, resolve_job_id
from autoshorts_cli.output.table import print_moments


console = Console()


def moments_command(
    job_id: str = typer.Argument(..., help="Job ID or prefix"),
    format: str = typer.Option("table", "-f", "--format", help="Output format: table, json, text"),
) -> None:
    """
    List the moments found for a job.

    Example:
        autoshorts moments 3f2a -f json > moments.json
    """
    machine = get_machine()
    try:
        job = machine.get_job(resolve_job_id(machine, job_id))
    except ShortsError as e:
        exit_with_error(e)

    match format:
        case "json":
            typer.echo(json.dumps([m.to_dict() for m in job.moments], indent=2, ensure_ascii=False))
        case "text":
            typer.echo(MomentStore(moments=job.moments).to_text(), nl=False)
        case "table":
            if not job.moments:
                typer.echo("No moments found")
                return
            print_moments(job.moments)
            total = sum(m.duration for m in job.moments)
            console.print(f"\n[dim]{len(job.moments)} moment(s), {total:.0f}s total[/dim]")
        case _:
            typer.echo(f"Error: Unknown format '{format}'", err=True)
            raise typer.Exit(1)


def confirm_command(
    job_id: str = typer.Argument(..., help="Job ID or prefix"),
    moments_file: Optional[str] = typer.Option(
        None, "-m", "--moments", help="Edited moments JSON replacing the found moments"
    ),
    drop: list[str] = typer.Option(None, "-d", "--drop", help="Moment IDs to discard"),
    run: bool = typer.Option(True, "--run/--no-run", help="Render right away"),
) -> None:
    """
    Confirm reviewed moments and start rendering.

    Examples:
        autoshorts confirm 3f2a                       # Keep every moment
        autoshorts confirm 3f2a -d 000-002 -d 001-000 # Discard two
        autoshorts confirm 3f2a -m edited.json        # Use an edited list
    """
    machine = get_machine()
    try:
        job_id = resolve_job_id(machine, job_id)
        moments = MomentStore.load(Path(moments_file)) if moments_file else None
        machine.confirm_moments(job_id, moments=moments, drop=drop or ())
    except ShortsError as e:
        exit_with_error(e)

    job = machine.get_job(job_id)
    console.print(f"[green]✓[/green] Confirmed {len(job.moments)} moment(s)")
    if run:
        finish(run_with_spinner(machine, job_id, machine.run))
