"""AutoShorts CLI - Main entry point."""

import logging
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from autoshorts_cli import __version__
from autoshorts_cli.commands import (
    create_command,
    run_command,
    advance_command,
    resume_command,
    retry_command,
    cancel_command,
    status_command,
    jobs_command,
    moments_command,
    confirm_command,
    plano_validate_command,
    plano_init_command,
    plano_preview_command,
    config_command,
)

console = Console()

app = typer.Typer(
    name="autoshorts",
    help="AutoShorts CLI - Turn long videos into vertical shorts",
    add_completion=True,
    no_args_is_help=True,
)

plano_app = typer.Typer(help="Work with plano layout templates.", no_args_is_help=True)
app.add_typer(plano_app, name="plano")


def setup_logging(verbose: bool) -> None:
    """Send library logs to the console."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=verbose, show_path=verbose)],
        force=True,
    )
    # Core progress lines are useful even without --verbose
    logging.getLogger("autoshorts_core").setLevel(logging.DEBUG if verbose else logging.INFO)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"autoshorts v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-v", help="Show version", callback=_version_callback, is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Verbose output"),
):
    """AutoShorts CLI."""
    setup_logging(verbose)


@app.command()
def create(
    source: str = typer.Argument(..., help="Video URL or local file"),
    template: Optional[str] = typer.Option(None, "-t", "--template", help="Plano template file"),
    output_dir: Optional[str] = typer.Option(None, "-o", "--output", help="Output directory"),
    run: bool = typer.Option(True, "--run/--no-run", help="Run until review"),
):
    """Create a job and run it up to moment review."""
    create_command(source, template, output_dir, run)


@app.command()
def run(job_id: str = typer.Argument(..., help="Job ID or prefix")):
    """Advance a job until it needs review, completes or fails."""
    run_command(job_id)


@app.command()
def advance(job_id: str = typer.Argument(..., help="Job ID or prefix")):
    """Execute exactly one phase of a job."""
    advance_command(job_id)


@app.command()
def resume(job_id: str = typer.Argument(..., help="Job ID or prefix")):
    """Continue an interrupted job."""
    resume_command(job_id)


@app.command()
def retry(
    job_id: str = typer.Argument(..., help="Job ID or prefix"),
    from_phase: Optional[str] = typer.Option(None, "-f", "--from", help="Phase to re-enter"),
):
    """Re-run a failed job."""
    retry_command(job_id, from_phase)


@app.command()
def cancel(job_id: str = typer.Argument(..., help="Job ID or prefix")):
    """Cancel a job."""
    cancel_command(job_id)


@app.command()
def status(
    job_id: str = typer.Argument(..., help="Job ID or prefix"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Show job details."""
    status_command(job_id, json_output)


@app.command()
def jobs(json_output: bool = typer.Option(False, "--json", help="Output as JSON")):
    """List jobs."""
    jobs_command(json_output)


@app.command()
def moments(
    job_id: str = typer.Argument(..., help="Job ID or prefix"),
    format: str = typer.Option("table", "-f", "--format", help="Output format: table, json, text"),
):
    """List the moments found for a job."""
    moments_command(job_id, format)


@app.command()
def confirm(
    job_id: str = typer.Argument(..., help="Job ID or prefix"),
    moments_file: Optional[str] = typer.Option(None, "-m", "--moments", help="Edited moments JSON"),
    drop: list[str] = typer.Option(None, "-d", "--drop", help="Moment IDs to discard"),
    run: bool = typer.Option(True, "--run/--no-run", help="Render right away"),
):
    """Confirm reviewed moments and render them."""
    confirm_command(job_id, moments_file, drop, run)


@plano_app.command("validate")
def plano_validate(path: str = typer.Argument(..., help="Plano JSON file")):
    """Check that a plano template is valid."""
    plano_validate_command(path)


@plano_app.command("init")
def plano_init(
    path: str = typer.Argument("plano.json", help="Where to write the template"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
):
    """Write the default plano template."""
    plano_init_command(path, force)


@plano_app.command("preview")
def plano_preview(
    path: str = typer.Argument(..., help="Plano JSON file"),
    source: Optional[str] = typer.Option(None, "-s", "--source", help="Video for a preview frame"),
    size: str = typer.Option("1920x1080", "--size", help="Source size when no video is given"),
    at: str = typer.Option("0", "--at", help="Timestamp of the preview frame"),
    output: str = typer.Option("preview.png", "-o", "--output", help="Preview image path"),
):
    """Show where each layer lands on the canvas."""
    plano_preview_command(path, source, size, at, output)


@app.command()
def config(
    key: Optional[str] = typer.Argument(None, help="Config key"),
    value: Optional[str] = typer.Argument(None, help="Config value"),
    list_all: bool = typer.Option(False, "-l", "--list", help="List all config"),
    edit: bool = typer.Option(False, "-e", "--edit", help="Open in editor"),
):
    """Manage configuration."""
    config_command(key, value, list_all, edit)


def main_entry():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main_entry()
