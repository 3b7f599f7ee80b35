"""Download pipeline stage."""

from pathlib import Path
from typing import Optional

from autoshorts_core.models.job import Job, JobPhase
from autoshorts_core.pipeline.base import PipelineStage, StageContext
from autoshorts_core.processors.downloader import VideoDownloader
from autoshorts_core.utils.time import format_duration


class DownloadStage(PipelineStage):
    """
    Acquire the analysis copy of the source.

    Input: job.source
    Output: job.source_path, job.source_duration, job.source_width/height
    """

    name = "download"
    phase = JobPhase.DOWNLOADING
    next_phase = JobPhase.CHUNKING

    def __init__(self, downloader: VideoDownloader, quality: str = "low"):
        self.downloader = downloader
        self.quality = quality

    def validate(self, job: Job) -> tuple[bool, Optional[str]]:
        """Validate job has a source."""
        if not job.source:
            return False, "Job must have a source"
        return True, None

    def execute(self, job: Job, ctx: StageContext) -> str:
        media = self.downloader.acquire(job.source, ctx.work_dir, quality=self.quality)

        job.source_path = str(media.path)
        job.source_duration = media.duration
        job.source_width = media.width
        job.source_height = media.height
        return f"Source ready: {format_duration(media.duration)} at {media.width}x{media.height}"

    def post_execute(self, job: Job, result: str) -> None:
        """Record where the analysis copy came from."""
        job.metadata["analysis_quality"] = self.quality
        if job.source_path and Path(job.source_path).exists():
            job.metadata["downloaded_at"] = Path(job.source_path).stat().st_mtime
