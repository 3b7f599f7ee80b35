"""
AutoShorts Core

Pure Python library that turns long videos into vertical shorts.
No CLI, no UI - just the job state machine and its collaborators.
"""

from autoshorts_core.errors import ShortsError
from autoshorts_core.models.job import Job, JobPhase, Chunk, ChunkStatus, Moment, MomentCategory
from autoshorts_core.models.config import Config, ChunkConfig, MomentBounds, AnalysisConfig, RenderConfig, SourceConfig
from autoshorts_core.models.plano import Plano, load_plano, default_plano
from autoshorts_core.composition.resolver import RenderPlan, build_render_plan
from autoshorts_core.pipeline.base import PhaseResult
from autoshorts_core.pipeline.chunks import plan_chunks
from autoshorts_core.pipeline.machine import JobStateMachine
from autoshorts_core.storage.job_store import JobStore
from autoshorts_core.storage.moment_store import MomentStore

__version__ = "0.1.0"

__all__ = [
    # Models
    "Job",
    "JobPhase",
    "Chunk",
    "ChunkStatus",
    "Moment",
    "MomentCategory",
    "Config",
    "ChunkConfig",
    "MomentBounds",
    "AnalysisConfig",
    "RenderConfig",
    "SourceConfig",
    "Plano",
    "load_plano",
    "default_plano",
    # Composition
    "RenderPlan",
    "build_render_plan",
    # Pipeline
    "PhaseResult",
    "plan_chunks",
    "JobStateMachine",
    # Storage
    "JobStore",
    "MomentStore",
    # Errors
    "ShortsError",
]
