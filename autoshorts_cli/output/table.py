"""Table output formatting."""

from typing import Any, List, Optional

from rich.console import Console
from rich.table import Table as RichTable

from autoshorts_core.models.job import JobPhase
from autoshorts_core.utils.time import format_duration


console = Console()

PHASE_STYLE = {
    JobPhase.CREATED: "dim",
    JobPhase.DOWNLOADING: "cyan",
    JobPhase.CHUNKING: "cyan",
    JobPhase.ANALYZING: "cyan",
    JobPhase.AWAITING_REVIEW: "bold yellow",
    JobPhase.RENDERING: "cyan",
    JobPhase.COMPLETED: "green",
    JobPhase.FAILED: "red",
}


def print_table(headers: List[str], rows: List[List[str]], title: Optional[str] = None) -> None:
    """
    Print data as a formatted table.

    Args:
        headers: Column headers
        rows: Table rows
        title: Optional table title
    """
    table = RichTable(title=title)
    for header in headers:
        table.add_column(header)

    for row in rows:
        table.add_row(*row)

    console.print(table)


def _phase(phase: JobPhase) -> str:
    style = PHASE_STYLE.get(phase, "")
    return f"[{style}]{phase.value}[/{style}]" if style else phase.value


def print_jobs(jobs: List[Any]) -> None:
    """Print jobs as a table."""
    headers = ["ID", "Source", "Phase", "Chunks", "Moments", "Shorts", "Updated"]
    rows = []

    for job in jobs:
        shorts = sum(1 for r in job.renders if r.success)
        rows.append([
            job.id[:8],
            job.source[:40] + "..." if len(job.source) > 40 else job.source,
            _phase(job.phase),
            str(len(job.chunks)),
            str(len(job.moments)),
            str(shorts),
            job.updated_at.strftime("%Y-%m-%d %H:%M"),
        ])

    print_table(headers, rows)


def print_job(job: Any) -> None:
    """Print one job in detail."""
    console.print(f"[bold]{job.id}[/bold]  {_phase(job.phase)}")
    console.print(f"  Source:   {job.source}")
    console.print(f"  Template: {job.template}")
    console.print(f"  Output:   {job.output_dir}")
    if job.source_duration:
        console.print(
            f"  Media:    {format_duration(job.source_duration)} "
            f"{job.source_width}x{job.source_height}"
        )
    if job.error:
        console.print(f"  [red]Error:    {job.error}[/red]")

    if job.chunks:
        headers = ["#", "Range", "Status", "Attempts", "Moments", "Error"]
        rows = [
            [
                str(c.index),
                f"{format_duration(c.start)} - {format_duration(c.end)}",
                c.status.value,
                str(c.attempts),
                str(len(c.moments)),
                (c.error or "")[:50],
            ]
            for c in job.chunks
        ]
        print_table(headers, rows, title="Chunks")

    if job.renders:
        headers = ["Moment", "Result", "File / Error"]
        rows = [
            [r.moment_id, "[green]ok[/green]" if r.success else "[red]failed[/red]", r.path if r.success else (r.error or "")]
            for r in job.renders
        ]
        print_table(headers, rows, title="Renders")


def print_moments(moments: List[Any]) -> None:
    """Print moments as a table."""
    headers = ["ID", "Start", "End", "Duration", "Category", "Caption"]
    rows = []

    for moment in moments:
        rows.append([
            moment.id,
            moment.start_formatted,
            moment.end_formatted,
            f"{moment.duration:.0f}s",
            moment.category.value,
            (moment.caption or "")[:50],
        ])

    print_table(headers, rows)


def print_plan(plan: Any) -> None:
    """Print a render plan, bottom layer first."""
    headers = ["#", "Kind", "Source", "Destination", "Fit", "Extra"]
    rows = []

    for op in plan:
        source = ""
        if op.source_rect is not None:
            r = op.source_rect
            source = f"{r.width}x{r.height}+{r.x}+{r.y}"
        d = op.dest
        extra = []
        if op.opacity < 1.0:
            extra.append(f"opacity {op.opacity:g}")
        if op.effect is not None:
            extra.append(f"{op.effect.type} {op.effect.intensity}")
        if op.kind == "video":
            extra.append("loop" if op.loop_video else ("hold last" if op.keep_last_frame else "ends early"))
        rows.append([
            str(op.index),
            op.kind,
            source or (op.source_path.name if op.source_path else ""),
            f"{d.width}x{d.height}+{d.x}+{d.y}",
            op.fit.value if op.kind != "shader" else "",
            ", ".join(extra),
        ])

    print_table(headers, rows, title=f"Canvas {plan.canvas.width}x{plan.canvas.height}")
