"""Job pipeline: stages and the state machine that drives them."""

from autoshorts_core.pipeline.base import PhaseResult, PipelineStage, StageContext
from autoshorts_core.pipeline.chunks import plan_chunks

__all__ = ["PhaseResult", "PipelineStage", "StageContext", "plan_chunks"]
