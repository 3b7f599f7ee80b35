"""Job lifecycle commands."""

import json
from typing import Optional

import typer
from rich.console import Console

from autoshorts_core import JobStateMachine, PhaseResult
from autoshorts_core.errors import JobNotFound, ShortsError
from autoshorts_core.models.job import JobPhase
from autoshorts_core.utils.video import check_dependencies
from autoshorts_cli.config.settings import load_user_config
from autoshorts_cli.output.progress import Spinner
from autoshorts_cli.output.table import print_job, print_jobs


console = Console()


def get_machine() -> JobStateMachine:
    """State machine wired from the user's settings."""
    return JobStateMachine.from_config(load_user_config())


def resolve_job_id(machine: JobStateMachine, job_id: str) -> str:
    """Accept a full id or a unique prefix."""
    if machine.store.exists(job_id):
        return job_id
    found = machine.store.find(job_id)
    if found is None:
        raise JobNotFound(job_id)
    return found


def exit_with_error(error: ShortsError) -> None:
    typer.echo(f"Error: {error.reason()}", err=True)
    raise typer.Exit(1)


def print_result(result: PhaseResult) -> None:
    """Report the outcome of a step or run."""
    short_id = result.job_id[:8]
    if not result.success:
        console.print(f"[red]✗[/red] Job {short_id} failed: {result.error}")
        return

    if result.summary:
        console.print(f"[green]✓[/green] {result.summary}")
    if result.needs_review:
        console.print()
        console.print(f"[bold yellow]Job {short_id} is waiting for review.[/bold yellow]")
        console.print(f"  Inspect:  [cyan]autoshorts moments[/cyan] {short_id}")
        console.print(f"  Confirm:  [cyan]autoshorts confirm[/cyan] {short_id}")
    elif result.phase == JobPhase.COMPLETED:
        console.print(f"[bold green]Job {short_id} complete![/bold green]")
    else:
        console.print(f"Job {short_id} is now [cyan]{result.phase.value}[/cyan]")


def run_with_spinner(machine: JobStateMachine, job_id: str, action) -> PhaseResult:
    try:
        with Spinner(f"Processing job {job_id[:8]}..."):
            return action(job_id)
    except KeyboardInterrupt:
        typer.echo(f"Interrupted. Continue with: autoshorts resume {job_id[:8]}", err=True)
        raise typer.Exit(130)


def finish(result: PhaseResult) -> None:
    print_result(result)
    if not result.success:
        raise typer.Exit(1)


def create_command(
    source: str = typer.Argument(..., help="Video URL or local file"),
    template: Optional[str] = typer.Option(None, "-t", "--template", help="Plano template file"),
    output_dir: Optional[str] = typer.Option(None, "-o", "--output", help="Output directory"),
    run: bool = typer.Option(True, "--run/--no-run", help="Run until review"),
) -> None:
    """
    Create a shorts job.

    Example:
        autoshorts create https://youtube.com/watch?v=xxx -t plano.json
    """
    config = load_user_config()
    if not config.analysis.is_configured:
        typer.echo(
            "Warning: no Gemini API keys configured; analysis will fail. "
            "Set them with: autoshorts config gemini_api_keys KEY1,KEY2",
            err=True,
        )
    missing = check_dependencies()
    if missing:
        typer.echo(f"Warning: missing external tools: {', '.join(missing)}", err=True)

    machine = JobStateMachine.from_config(config)
    try:
        job_id = machine.create_job(source, template=template, output_dir=output_dir)
    except ShortsError as e:
        exit_with_error(e)

    console.print(f"[green]✓[/green] Created job [bold]{job_id}[/bold]")
    if run:
        finish(run_with_spinner(machine, job_id, machine.run))


def run_command(job_id: str = typer.Argument(..., help="Job ID or prefix")) -> None:
    """Advance a job until it needs review, completes or fails."""
    machine = get_machine()
    try:
        job_id = resolve_job_id(machine, job_id)
        result = run_with_spinner(machine, job_id, machine.run)
    except ShortsError as e:
        exit_with_error(e)
    finish(result)


def advance_command(job_id: str = typer.Argument(..., help="Job ID or prefix")) -> None:
    """Execute exactly one phase of a job."""
    machine = get_machine()
    try:
        job_id = resolve_job_id(machine, job_id)
        result = run_with_spinner(machine, job_id, machine.advance)
    except ShortsError as e:
        exit_with_error(e)
    finish(result)


def resume_command(job_id: str = typer.Argument(..., help="Job ID or prefix")) -> None:
    """Continue an interrupted job from its saved phase."""
    machine = get_machine()
    try:
        job_id = resolve_job_id(machine, job_id)
        result = run_with_spinner(machine, job_id, machine.resume)
    except ShortsError as e:
        exit_with_error(e)
    finish(result)


def retry_command(
    job_id: str = typer.Argument(..., help="Job ID or prefix"),
    from_phase: Optional[str] = typer.Option(
        None, "-f", "--from", help="Phase to re-enter (default: the phase that failed)"
    ),
) -> None:
    """Re-run a failed job."""
    phase = None
    if from_phase:
        try:
            phase = JobPhase(from_phase)
        except ValueError:
            valid = ", ".join(p.value for p in JobPhase)
            typer.echo(f"Error: Unknown phase '{from_phase}'. Use one of: {valid}", err=True)
            raise typer.Exit(1)

    machine = get_machine()
    try:
        job_id = resolve_job_id(machine, job_id)
        result = run_with_spinner(machine, job_id, lambda jid: machine.retry(jid, from_phase=phase))
    except ShortsError as e:
        exit_with_error(e)
    finish(result)


def cancel_command(job_id: str = typer.Argument(..., help="Job ID or prefix")) -> None:
    """Cancel a job."""
    machine = get_machine()
    try:
        job_id = resolve_job_id(machine, job_id)
        machine.cancel(job_id)
    except ShortsError as e:
        exit_with_error(e)
    console.print(f"[yellow]Job {job_id[:8]} cancelled[/yellow]")


def status_command(
    job_id: str = typer.Argument(..., help="Job ID or prefix"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show one job in detail."""
    machine = get_machine()
    try:
        job = machine.get_job(resolve_job_id(machine, job_id))
    except ShortsError as e:
        exit_with_error(e)

    if json_output:
        typer.echo(json.dumps(job.to_dict(), indent=2))
        return
    print_job(job)


def jobs_command(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List all jobs, newest first."""
    jobs = get_machine().list_jobs()

    if json_output:
        typer.echo(json.dumps([j.to_dict() for j in jobs], indent=2))
        return
    if not jobs:
        typer.echo("No jobs yet. Create one with: autoshorts create <url>")
        return
    print_jobs(jobs)
