"""Analysis pipeline stage."""

from pathlib import Path
from typing import Optional

from autoshorts_core.errors import AnalysisExhausted
from autoshorts_core.models.job import ChunkStatus, Job, JobPhase
from autoshorts_core.pipeline.base import PipelineStage, StageContext
from autoshorts_core.processors.analyzer import AnalysisCoordinator
from autoshorts_core.storage.moment_store import MomentStore


class AnalyzeStage(PipelineStage):
    """
    Analyze every chunk and merge the moments.

    Input: job.chunks with media files
    Output: job.moments, moments.json and moments.txt in job.output_dir
    """

    name = "analyze"
    phase = JobPhase.ANALYZING
    next_phase = JobPhase.AWAITING_REVIEW

    def __init__(self, coordinator: AnalysisCoordinator):
        self.coordinator = coordinator

    def validate(self, job: Job) -> tuple[bool, Optional[str]]:
        if not job.chunks:
            return False, "Job must have planned chunks"
        missing = [c.index for c in job.chunks if not c.is_terminal and not c.media_path]
        if missing:
            return False, f"Chunks without media: {missing}"
        return True, None

    def execute(self, job: Job, ctx: StageContext) -> str:
        self.coordinator.analyze(
            job.chunks,
            cancel_event=ctx.cancel_event,
            on_chunk_done=lambda _chunk: ctx.persist(job),
        )
        ctx.check_cancelled()

        failed = [c for c in job.chunks if c.status == ChunkStatus.FAILED]
        if len(failed) == len(job.chunks):
            last = failed[-1].error or "unknown error"
            raise AnalysisExhausted(f"all {len(failed)} chunk(s) failed; last error: {last}")

        store = MomentStore(self.coordinator.bounds)
        job.moments = store.merge(job.chunks)
        store.export(Path(job.output_dir))

        summary = f"Found {len(job.moments)} moment(s) in {len(job.chunks)} chunk(s)"
        if failed:
            summary += f", {len(failed)} chunk(s) failed"
        return summary
