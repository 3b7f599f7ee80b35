"""Domain models."""

from autoshorts_core.models.job import Job, JobPhase, Chunk, ChunkStatus, Moment, MomentCategory, RenderedShort
from autoshorts_core.models.config import Config

__all__ = ["Job", "JobPhase", "Chunk", "ChunkStatus", "Moment", "MomentCategory", "RenderedShort", "Config"]
