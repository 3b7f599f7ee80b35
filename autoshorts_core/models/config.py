"""Configuration models for AutoShorts Core."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


CANVAS_WIDTH = 1080
CANVAS_HEIGHT = 1920


@dataclass
class ChunkConfig:
    """How the source is cut into analysis chunks."""

    target_seconds: float = 30 * 60
    max_last_seconds: float = 45 * 60  # Final chunk may grow up to this length


@dataclass
class MomentBounds:
    """Accepted duration range for a moment, in seconds."""

    min_seconds: float = 10.0
    max_seconds: float = 90.0

    def accepts(self, start: float, end: float) -> bool:
        duration = end - start
        return end > start and self.min_seconds <= duration <= self.max_seconds


@dataclass
class AnalysisConfig:
    """Configuration for the content-analysis service."""

    api_keys: list[str] = field(default_factory=list)
    model: str = "gemini-2.5-flash"
    parallelism: int = 2
    max_attempts_per_chunk: int = 5
    timeout: int = 600  # Per request, seconds
    upload_timeout: int = 120  # Waiting for an uploaded file to become active
    temperature: float = 0.4
    retry_backoff: float = 2.0  # Base delay between transient retries

    @property
    def is_configured(self) -> bool:
        return any(k.strip() for k in self.api_keys)


@dataclass
class RenderConfig:
    """Configuration for rendering shorts."""

    canvas_width: int = CANVAS_WIDTH
    canvas_height: int = CANVAS_HEIGHT
    fps: int = 30
    workers: int = 2
    use_gpu: bool = False
    max_gpu_sessions: int = 3  # Consumer NVENC session limit
    timeout: int = 900  # Per render, seconds
    retries: int = 1  # Extra attempts after a timeout
    crf: int = 23
    preset: str = "medium"
    audio_bitrate: str = "192k"

    @property
    def canvas(self) -> tuple[int, int]:
        return self.canvas_width, self.canvas_height

    @property
    def effective_workers(self) -> int:
        """Concurrent renders, capped by the GPU session limit when encoding on GPU."""
        workers = max(1, self.workers)
        if self.use_gpu:
            workers = min(workers, max(1, self.max_gpu_sessions))
        return workers


@dataclass
class SourceConfig:
    """Configuration for source acquisition."""

    analysis_quality: str = "low"  # Analysis only needs a small file
    render_quality: str = "best"
    cookies_file: Optional[Path] = None
    timeout: int = 3600
    split_timeout: int = 600


@dataclass
class Config:
    """Main configuration object."""

    chunks: ChunkConfig = field(default_factory=ChunkConfig)
    bounds: MomentBounds = field(default_factory=MomentBounds)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    source: SourceConfig = field(default_factory=SourceConfig)

    jobs_dir: Path = field(default_factory=lambda: Path.home() / ".autoshorts" / "jobs")
    output_dir: Path = field(default_factory=lambda: Path("./shorts"))
