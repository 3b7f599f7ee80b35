"""Chunking pipeline stage."""

import logging
from pathlib import Path
from typing import Optional

from autoshorts_core.models.config import ChunkConfig
from autoshorts_core.models.job import Job, JobPhase
from autoshorts_core.pipeline.base import PipelineStage, StageContext
from autoshorts_core.pipeline.chunks import plan_chunks
from autoshorts_core.processors.splitter import ChunkSplitter


logger = logging.getLogger(__name__)


class ChunkStage(PipelineStage):
    """
    Plan analysis chunks and cut one media file per chunk.

    Input: job.source_path, job.source_duration
    Output: job.chunks
    """

    name = "chunk"
    phase = JobPhase.CHUNKING
    next_phase = JobPhase.ANALYZING

    def __init__(self, splitter: ChunkSplitter, config: Optional[ChunkConfig] = None):
        self.splitter = splitter
        self.config = config or ChunkConfig()

    def validate(self, job: Job) -> tuple[bool, Optional[str]]:
        if not job.source_path:
            return False, "Job must have a downloaded source"
        if not job.source_duration or job.source_duration <= 0:
            return False, "Job must have a positive source duration"
        return True, None

    def execute(self, job: Job, ctx: StageContext) -> str:
        if not job.chunks:
            job.chunks = plan_chunks(
                job.source_duration,
                target=self.config.target_seconds,
                max_last=self.config.max_last_seconds,
            )
            logger.info("Planned %d chunk(s)", len(job.chunks))

        source = Path(job.source_path)
        if len(job.chunks) == 1:
            job.chunks[0].media_path = str(source)
            return "Source fits in a single chunk"

        chunk_dir = ctx.work_dir / "chunks"
        for chunk in job.chunks:
            ctx.check_cancelled()
            if chunk.media_path and Path(chunk.media_path).exists():
                continue
            chunk.media_path = str(self.splitter.split(source, chunk, chunk_dir))

        return f"Split into {len(job.chunks)} chunks"
