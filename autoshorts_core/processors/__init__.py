"""Video processors."""

from autoshorts_core.processors.analyzer import AnalysisCoordinator
from autoshorts_core.processors.downloader import VideoDownloader
from autoshorts_core.processors.renderer import VideoRenderer
from autoshorts_core.processors.splitter import ChunkSplitter

__all__ = ["AnalysisCoordinator", "VideoDownloader", "VideoRenderer", "ChunkSplitter"]
