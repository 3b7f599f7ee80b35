"""Base pipeline stage abstractions."""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from autoshorts_core.errors import Cancelled
from autoshorts_core.models.job import Job, JobPhase, TERMINAL_PHASES


@dataclass
class PhaseResult:
    """Outcome of one state machine step."""

    job_id: str
    phase: JobPhase  # Phase the job is in after the step
    success: bool
    summary: str = ""
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @property
    def needs_review(self) -> bool:
        return self.phase == JobPhase.AWAITING_REVIEW

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES


@dataclass
class StageContext:
    """Per-step resources handed to a stage."""

    job_dir: Path
    work_dir: Path
    cancel_event: threading.Event
    persist: Callable[[Job], None]

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def check_cancelled(self) -> None:
        """Raise Cancelled if cancellation was requested."""
        if self.cancel_event.is_set():
            raise Cancelled()


class PipelineStage(ABC):
    """
    Abstract base class for pipeline stages.

    Each stage performs the work of exactly one job phase and names the
    phase the job moves to when the work succeeds.
    """

    name: str = "base_stage"
    phase: JobPhase = JobPhase.CREATED
    next_phase: JobPhase = JobPhase.FAILED

    @abstractmethod
    def execute(self, job: Job, ctx: StageContext) -> str:
        """
        Execute the stage logic.

        Args:
            job: Working copy of the job, mutated in place
            ctx: Directories, cancellation and persistence for this step

        Returns:
            Short human-readable summary

        Raises:
            ShortsError: On a job-level failure
        """
        pass

    @abstractmethod
    def validate(self, job: Job) -> tuple[bool, Optional[str]]:
        """
        Validate that the job is ready for this stage.

        Returns:
            Tuple of (is_valid, error_message)
        """
        pass

    def pre_execute(self, job: Job) -> None:
        """Hook called before execution."""
        pass

    def post_execute(self, job: Job, result: Any) -> None:
        """Hook called after execution."""
        pass
