"""Prepare pipeline stage."""

from pathlib import Path
from typing import Optional

from autoshorts_core.models.job import Job, JobPhase
from autoshorts_core.models.plano import load_plano
from autoshorts_core.pipeline.base import PipelineStage, StageContext


class PrepareStage(PipelineStage):
    """
    Check the template and create output directories.

    Input: job.template, job.output_dir
    """

    name = "prepare"
    phase = JobPhase.CREATED
    next_phase = JobPhase.DOWNLOADING

    def validate(self, job: Job) -> tuple[bool, Optional[str]]:
        if not job.source:
            return False, "Job must have a source"
        if not job.template:
            return False, "Job must have a template"
        return True, None

    def execute(self, job: Job, ctx: StageContext) -> str:
        plano = load_plano(Path(job.template))
        Path(job.output_dir).mkdir(parents=True, exist_ok=True)
        ctx.work_dir.mkdir(parents=True, exist_ok=True)
        return f"Template has {len(plano)} layer(s)"
