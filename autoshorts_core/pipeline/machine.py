"""Job state machine.

Drives a job through its phases one step at a time. Every step runs on a
working copy of the persisted record; the copy is committed (saved) only
when the step finishes, so a crash mid-step leaves the record at the
phase that was running and ``resume`` simply runs it again.
"""

import copy
import logging
import threading
from pathlib import Path
from typing import Iterable, Optional

from autoshorts_core.ai.base import AIClient
from autoshorts_core.ai.gemini import GeminiClient
from autoshorts_core.ai.keys import KeyPool
from autoshorts_core.errors import (
    Cancelled,
    InvalidTransition,
    JobBusy,
    ShortsError,
    StateCorrupt,
)
from autoshorts_core.models.config import Config
from autoshorts_core.models.job import ChunkStatus, Job, JobPhase, Moment
from autoshorts_core.models.plano import default_plano, save_plano
from autoshorts_core.pipeline.base import PhaseResult, PipelineStage, StageContext
from autoshorts_core.pipeline.stages.analyze import AnalyzeStage
from autoshorts_core.pipeline.stages.chunk import ChunkStage
from autoshorts_core.pipeline.stages.download import DownloadStage
from autoshorts_core.pipeline.stages.prepare import PrepareStage
from autoshorts_core.pipeline.stages.render import RenderStage
from autoshorts_core.processors.analyzer import AnalysisCoordinator
from autoshorts_core.processors.downloader import VideoDownloader
from autoshorts_core.processors.renderer import VideoRenderer
from autoshorts_core.processors.splitter import ChunkSplitter
from autoshorts_core.storage.job_store import JobStore
from autoshorts_core.storage.moment_store import MomentStore
from autoshorts_core.utils.logs import job_log_handler


logger = logging.getLogger(__name__)

CANCELLED = "cancelled"


class JobStateMachine:
    """
    Own the lifecycle of shorts jobs.

    Front ends call ``create_job`` and then ``run``/``advance``; the machine
    stops at ``awaiting_review`` until ``confirm_moments`` is called.
    """

    def __init__(self, store: JobStore, stages: Iterable[PipelineStage], config: Optional[Config] = None):
        self.store = store
        self.config = config or Config()
        self.stages = {stage.phase: stage for stage in stages}
        self._running: dict[str, threading.Event] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: Config,
        client: Optional[AIClient] = None,
        downloader: Optional[VideoDownloader] = None,
        splitter: Optional[ChunkSplitter] = None,
        renderer: Optional[VideoRenderer] = None,
    ) -> "JobStateMachine":
        """Wire the default collaborators from configuration."""
        client = client or GeminiClient(
            model=config.analysis.model,
            temperature=config.analysis.temperature,
            upload_timeout=config.analysis.upload_timeout,
        )
        downloader = downloader or VideoDownloader(
            cookies_file=config.source.cookies_file, timeout=config.source.timeout
        )
        splitter = splitter or ChunkSplitter(timeout=config.source.split_timeout)
        renderer = renderer or VideoRenderer(config.render)
        coordinator = AnalysisCoordinator(
            client,
            KeyPool.from_values(config.analysis.api_keys),
            config=config.analysis,
            bounds=config.bounds,
        )

        stages = [
            PrepareStage(),
            DownloadStage(downloader, quality=config.source.analysis_quality),
            ChunkStage(splitter, config.chunks),
            AnalyzeStage(coordinator),
            RenderStage(renderer, downloader, config.render, config.source),
        ]
        return cls(JobStore(config.jobs_dir), stages, config)

    # Queries

    def get_job(self, job_id: str) -> Job:
        return self.store.load(job_id)

    def list_jobs(self) -> list[Job]:
        return self.store.list_jobs()

    # Commands

    def create_job(self, source: str, template: Optional[str] = None, output_dir: Optional[str] = None) -> str:
        """Persist a new job in ``created`` and return its id."""
        job = Job(source=source)
        if template is None:
            template_path = self._default_template()
        else:
            template_path = Path(template).expanduser().resolve()
        job.template = str(template_path)

        out = Path(output_dir) if output_dir else self.config.output_dir / job.id[:8]
        job.output_dir = str(out.expanduser().resolve())

        self.store.save(job)
        logger.info("Created job %s for %s", job.id, source)
        return job.id

    def advance(self, job_id: str) -> PhaseResult:
        """
        Execute exactly one phase of the job.

        Returns without doing anything when the job is terminal or waiting
        for review.
        """
        job = self._load_or_fail(job_id)
        if isinstance(job, PhaseResult):
            return job

        if job.is_terminal:
            return self._result(job, summary=f"Job is {job.phase.value}")
        if job.phase == JobPhase.AWAITING_REVIEW:
            return self._result(job, summary="Waiting for moment confirmation")

        stage = self.stages.get(job.phase)
        if stage is None:
            raise InvalidTransition(job.phase.value, "next")

        event = self._register(job_id)
        working = copy.deepcopy(job)

        def persist(current: Job) -> None:
            # A record ended by another process (e.g. `autoshorts cancel`) stays ended
            if self._ended_elsewhere(job_id) is not None:
                event.set()
                return
            self.store.save(current)

        ctx = StageContext(
            job_dir=self.store.job_dir(job_id),
            work_dir=self.store.work_dir(job_id),
            cancel_event=event,
            persist=persist,
        )

        summary = ""
        reason = None
        kind = None
        try:
            with job_log_handler(ctx.job_dir):
                logger.info("Job %s: %s started", job_id, stage.name)
                valid, error = stage.validate(working)
                if not valid:
                    raise StateCorrupt(f"{stage.name} cannot start: {error}")
                stage.pre_execute(working)
                summary = stage.execute(working, ctx)
                stage.post_execute(working, summary)
                logger.info("Job %s: %s finished: %s", job_id, stage.name, summary)
        except Cancelled:
            pass
        except ShortsError as e:
            reason, kind = e.reason(), e.kind
            logger.error("Job %s: %s failed: %s", job_id, stage.name, reason)
        except Exception as e:
            reason, kind = f"{type(e).__name__}: {e}", type(e).__name__
            logger.exception("Job %s: %s crashed", job_id, stage.name)
        finally:
            self._unregister(job_id)

        stored = self._ended_elsewhere(job_id)
        if stored is not None:
            logger.info("Job %s was %s elsewhere; discarding %s", job_id, stored.phase.value, stage.name)
            kind = Cancelled.kind if stored.error == CANCELLED else None
            return self._result(stored, error_kind=kind)

        if event.is_set():
            # Results of a cancelled step are discarded
            job.fail(CANCELLED)
            self.store.save(job)
            logger.info("Job %s cancelled during %s", job_id, stage.name)
            return self._result(job, error=CANCELLED, error_kind=Cancelled.kind)

        if reason is not None:
            working.fail(reason)
            self.store.save(working)
            return self._result(working, error=reason, error_kind=kind)

        working.transition(stage.next_phase)
        self.store.save(working)
        return self._result(working, summary=summary)

    def run(self, job_id: str) -> PhaseResult:
        """Advance until the job needs review, completes or fails."""
        while True:
            result = self.advance(job_id)
            if not result.success or result.is_terminal or result.needs_review:
                return result

    def confirm_moments(
        self,
        job_id: str,
        moments: Optional[list[Moment]] = None,
        drop: Iterable[str] = (),
    ) -> None:
        """
        Accept the reviewed moments and move the job to ``rendering``.

        Args:
            job_id: Job awaiting review
            moments: Edited replacement list; None keeps the analyzed moments
            drop: Ids of moments to remove

        Raises:
            InvalidTransition: If the job is not awaiting review
            InvalidMoment: If an edited moment is invalid; the job is unchanged
        """
        job = self.store.load(job_id)
        if job.phase != JobPhase.AWAITING_REVIEW:
            raise InvalidTransition(job.phase.value, JobPhase.RENDERING.value)

        store = MomentStore(self.config.bounds)
        store.replace(job.moments if moments is None else moments)
        drop = list(drop)
        if drop:
            store.remove(drop)

        job.moments = store.moments
        job.renders = []
        store.export(Path(job.output_dir))
        job.transition(JobPhase.RENDERING)
        self.store.save(job)
        logger.info("Job %s: %d moment(s) confirmed", job_id, len(job.moments))

    def cancel(self, job_id: str) -> None:
        """
        Cancel a job.

        A step running in this process finishes its in-flight work, starts
        nothing new and is discarded. An idle job fails immediately.
        """
        with self._lock:
            event = self._running.get(job_id)
        if event is not None:
            event.set()
            logger.info("Cancellation requested for running job %s", job_id)
            return

        job = self.store.load(job_id)
        if job.is_terminal:
            raise InvalidTransition(job.phase.value, JobPhase.FAILED.value)
        job.fail(CANCELLED)
        self.store.save(job)
        logger.info("Job %s cancelled", job_id)

    def resume(self, job_id: str) -> PhaseResult:
        """Continue a job from its persisted phase."""
        job = self._load_or_fail(job_id)
        if isinstance(job, PhaseResult):
            return job
        if job.phase == JobPhase.FAILED:
            return self._result(job, summary="Job failed; use retry to re-enter a phase")
        logger.info("Resuming job %s at %s", job_id, job.phase.value)
        return self.run(job_id)

    def retry(self, job_id: str, from_phase: Optional[JobPhase] = None) -> PhaseResult:
        """
        Re-enter a failed job at ``from_phase`` (default: the phase that failed).

        Raises:
            InvalidTransition: If the job is not failed or the phase is not enterable
            StateCorrupt: If the failed record cannot be retried
        """
        job = self.store.load(job_id)
        if job.phase != JobPhase.FAILED:
            raise InvalidTransition(job.phase.value, (from_phase or job.phase).value)

        phase = from_phase or job.failed_phase
        if phase is None:
            raise StateCorrupt("record has no failed phase; recreate the job")
        if phase == JobPhase.CREATED:
            phase = JobPhase.DOWNLOADING
        self._reset_for(job, phase)
        job.reopen(phase)
        self.store.save(job)
        logger.info("Retrying job %s from %s", job_id, phase.value)
        return self.run(job_id)

    # Internals

    def _reset_for(self, job: Job, phase: JobPhase) -> None:
        """Clear everything produced at or after ``phase``."""
        if phase == JobPhase.DOWNLOADING:
            job.source_path = None
            job.render_source_path = None
            job.source_duration = None
            job.source_width = None
            job.source_height = None
        if phase in (JobPhase.DOWNLOADING, JobPhase.CHUNKING):
            job.chunks = []
        if phase == JobPhase.ANALYZING:
            for chunk in job.chunks:
                if chunk.status != ChunkStatus.DONE:
                    chunk.status = ChunkStatus.PENDING
                    chunk.error = None
                    chunk.attempts = 0
        if phase in (JobPhase.DOWNLOADING, JobPhase.CHUNKING, JobPhase.ANALYZING):
            job.moments = []
        if phase == JobPhase.RENDERING:
            job.renders = [r for r in job.renders if r.success]
        else:
            job.renders = []

        if phase in (JobPhase.ANALYZING, JobPhase.AWAITING_REVIEW, JobPhase.RENDERING) and not job.chunks:
            raise InvalidTransition(JobPhase.FAILED.value, phase.value)
        if phase == JobPhase.AWAITING_REVIEW and not all(c.is_terminal for c in job.chunks):
            raise InvalidTransition(JobPhase.FAILED.value, phase.value)

    def _load_or_fail(self, job_id: str):
        """Load a job; a corrupt record becomes a failed job result."""
        try:
            return self.store.load(job_id)
        except StateCorrupt as e:
            job = self.store.mark_corrupt(job_id, e.message)
            return self._result(job, error=job.error, error_kind=StateCorrupt.kind)

    def _ended_elsewhere(self, job_id: str) -> Optional[Job]:
        """The stored record, if it reached a terminal phase while a step ran."""
        try:
            stored = self.store.load(job_id)
        except StateCorrupt:
            return None
        return stored if stored.is_terminal else None

    def _register(self, job_id: str) -> threading.Event:
        with self._lock:
            if job_id in self._running:
                raise JobBusy(f"job {job_id} is already running")
            event = threading.Event()
            self._running[job_id] = event
            return event

    def _unregister(self, job_id: str) -> None:
        with self._lock:
            self._running.pop(job_id, None)

    def _default_template(self) -> Path:
        path = self.config.jobs_dir / "default_plano.json"
        if not path.exists():
            save_plano(default_plano(), path)
        return path.resolve()

    @staticmethod
    def _result(
        job: Job,
        summary: str = "",
        error: Optional[str] = None,
        error_kind: Optional[str] = None,
    ) -> PhaseResult:
        failed = job.phase == JobPhase.FAILED
        return PhaseResult(
            job_id=job.id,
            phase=job.phase,
            success=not failed,
            summary=summary,
            error=error or (job.error if failed else None),
            error_kind=error_kind,
        )
