"""Pipeline stages, one per job phase."""

from autoshorts_core.pipeline.stages.prepare import PrepareStage
from autoshorts_core.pipeline.stages.download import DownloadStage
from autoshorts_core.pipeline.stages.chunk import ChunkStage
from autoshorts_core.pipeline.stages.analyze import AnalyzeStage
from autoshorts_core.pipeline.stages.render import RenderStage

__all__ = ["PrepareStage", "DownloadStage", "ChunkStage", "AnalyzeStage", "RenderStage"]
