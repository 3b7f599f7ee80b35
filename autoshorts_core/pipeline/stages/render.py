"""Render pipeline stage."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Optional

from autoshorts_core.composition.geometry import Size
from autoshorts_core.composition.resolver import RenderPlan, build_render_plan, probe_overlay_sizes
from autoshorts_core.errors import RenderFailed
from autoshorts_core.models.config import RenderConfig, SourceConfig
from autoshorts_core.models.job import Job, JobPhase, Moment, RenderedShort
from autoshorts_core.models.plano import load_plano
from autoshorts_core.pipeline.base import PipelineStage, StageContext
from autoshorts_core.processors.downloader import SourceMedia, VideoDownloader, is_url
from autoshorts_core.processors.renderer import RenderResult, VideoRenderer, output_filename
from autoshorts_core.utils.logs import submit_in_context
from autoshorts_core.utils.video import media_size


logger = logging.getLogger(__name__)

SHORTS_DIR = "shorts"


class RenderStage(PipelineStage):
    """
    Render every confirmed moment through the job's template.

    Input: job.moments, job.template, job.source_path
    Output: job.renders, files in <output_dir>/shorts
    """

    name = "render"
    phase = JobPhase.RENDERING
    next_phase = JobPhase.COMPLETED

    def __init__(
        self,
        renderer: VideoRenderer,
        downloader: VideoDownloader,
        config: Optional[RenderConfig] = None,
        source_config: Optional[SourceConfig] = None,
        probe: Callable[[Path], Optional[tuple[int, int]]] = media_size,
    ):
        self.renderer = renderer
        self.downloader = downloader
        self.config = config or RenderConfig()
        self.source_config = source_config or SourceConfig()
        self.probe = probe

    def validate(self, job: Job) -> tuple[bool, Optional[str]]:
        """Validate job has a source to cut moments from."""
        if not job.source_path:
            return False, "Job must have a downloaded source"
        return True, None

    def execute(self, job: Job, ctx: StageContext) -> str:
        if not job.moments:
            job.renders = []
            return "No moments to render"

        plano = load_plano(Path(job.template))
        source = self._render_source(job, ctx)
        plan = build_render_plan(
            plano,
            (source.width, source.height),
            canvas=Size(*self.config.canvas),
            media_sizes=probe_overlay_sizes(plano, Path(job.template).parent, self.probe),
            base_dir=Path(job.template).parent,
        )

        shorts_dir = Path(job.output_dir) / SHORTS_DIR
        results = {
            r.moment_id: r
            for r in job.renders
            if r.success and r.path and Path(r.path).exists()
        }
        todo = [(n, m) for n, m in enumerate(job.moments, 1) if m.id not in results]
        if len(todo) < len(job.moments):
            logger.info("Reusing %d finished render(s)", len(job.moments) - len(todo))

        workers = self.config.effective_workers
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="render") as executor:
            futures = {
                submit_in_context(
                    executor, self._render_one, plan, source.path, m, shorts_dir / output_filename(n, m), ctx
                ): m
                for n, m in todo
            }
            for future in as_completed(futures):
                moment = futures[future]
                result = future.result()
                if result is None:
                    continue
                results[moment.id] = RenderedShort(
                    moment_id=moment.id,
                    path=str(result.output_path),
                    success=result.success,
                    error=result.error,
                )
                job.renders = [results[m.id] for m in job.moments if m.id in results]
                ctx.persist(job)

        ctx.check_cancelled()
        job.renders = [results[m.id] for m in job.moments if m.id in results]

        succeeded = [r for r in job.renders if r.success]
        failed = [r for r in job.renders if not r.success]
        if not succeeded:
            last = failed[-1].error if failed else "nothing rendered"
            raise RenderFailed(f"all {len(job.moments)} render(s) failed; last error: {last}")

        summary = f"Rendered {len(succeeded)}/{len(job.moments)} short(s) to {shorts_dir}"
        if failed:
            summary += f" ({len(failed)} failed)"
        return summary

    def _render_one(
        self,
        plan: RenderPlan,
        source_path: Path,
        moment: Moment,
        output_path: Path,
        ctx: StageContext,
    ) -> Optional[RenderResult]:
        if ctx.cancelled:
            return None
        logger.info("Rendering %s [%s - %s]", moment.id, moment.start_formatted, moment.end_formatted)
        result = self.renderer.render(plan, source_path, moment, output_path)
        if result.success:
            logger.info("Rendered %s -> %s", moment.id, output_path.name)
        else:
            logger.error("Render of %s failed: %s", moment.id, result.error)
        return result

    def _render_source(self, job: Job, ctx: StageContext) -> SourceMedia:
        """High quality copy for URLs, the analysis file otherwise."""
        wants_better = self.source_config.render_quality != job.metadata.get(
            "analysis_quality", self.source_config.analysis_quality
        )
        if is_url(job.source) and wants_better:
            media = self.downloader.acquire(job.source, ctx.work_dir, quality=self.source_config.render_quality)
        else:
            media = SourceMedia(
                path=Path(job.source_path),
                duration=job.source_duration or 0.0,
                width=job.source_width or 0,
                height=job.source_height or 0,
            )
            if not media.width or not media.height:
                media = self.downloader.acquire(job.source_path, ctx.work_dir)

        job.render_source_path = str(media.path)
        return media
