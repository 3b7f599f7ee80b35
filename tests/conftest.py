"""Shared fixtures and in-process fakes for the external tools."""

import json
import threading
from pathlib import Path

import pytest

from autoshorts_core.ai.base import AIClient, AIResponse
from autoshorts_core.ai.keys import KeyPool
from autoshorts_core.models.config import (
    AnalysisConfig,
    ChunkConfig,
    Config,
    MomentBounds,
    RenderConfig,
    SourceConfig,
)
from autoshorts_core.models.plano import default_plano, save_plano
from autoshorts_core.pipeline.machine import JobStateMachine
from autoshorts_core.pipeline.stages import AnalyzeStage, ChunkStage, DownloadStage, PrepareStage, RenderStage
from autoshorts_core.processors.analyzer import AnalysisCoordinator
from autoshorts_core.processors.downloader import SourceMedia
from autoshorts_core.processors.renderer import RenderResult
from autoshorts_core.storage.job_store import JobStore


class FakeDownloader:
    """Writes a placeholder file instead of calling yt-dlp."""

    def __init__(self, duration=600.0, width=1920, height=1080, error=None):
        self.duration = duration
        self.width = width
        self.height = height
        self.error = error
        self.calls = []

    def acquire(self, source, work_dir, quality="best"):
        self.calls.append((source, quality))
        if self.error is not None:
            raise self.error
        work_dir.mkdir(parents=True, exist_ok=True)
        path = work_dir / f"source_{quality}.mp4"
        path.write_bytes(b"video")
        return SourceMedia(path=path, duration=self.duration, width=self.width, height=self.height)


class FakeSplitter:
    """Writes one placeholder file per chunk instead of calling ffmpeg."""

    def __init__(self):
        self.calls = []

    def split(self, source, chunk, out_dir):
        self.calls.append(chunk.index)
        out_dir.mkdir(parents=True, exist_ok=True)
        path = out_dir / f"chunk_{chunk.index:03d}.mp4"
        path.write_bytes(b"chunk")
        return path


class FakeAnalysisClient(AIClient):
    """
    Scripted analysis service.

    ``script`` maps a media file name to a list of outcomes consumed one per
    request; an outcome is an exception to raise or a payload to return.
    Files without a script get ``default``.
    """

    def __init__(self, script=None, default=None):
        super().__init__("fake-model")
        self.script = {name: list(outcomes) for name, outcomes in (script or {}).items()}
        self.default = default if default is not None else {"moments": []}
        self.calls = []
        self._lock = threading.Lock()

    def get_default_model(self):
        return "fake-model"

    def analyze_media(self, media_path, prompt, api_key, timeout=600):
        with self._lock:
            self.calls.append((Path(media_path).name, api_key.name))
            outcomes = self.script.get(Path(media_path).name)
            outcome = outcomes.pop(0) if outcomes else self.default
        if isinstance(outcome, Exception):
            raise outcome
        content = outcome if isinstance(outcome, str) else json.dumps(outcome)
        return AIResponse(content=content, model=self.get_model())


class FakeRenderer:
    """Writes a placeholder short; moments listed in ``fail`` fail."""

    def __init__(self, fail=()):
        self.fail = set(fail)
        self.rendered = []
        self._lock = threading.Lock()

    def render(self, plan, source_path, moment, output_path):
        with self._lock:
            self.rendered.append(moment.id)
        if moment.id in self.fail:
            return RenderResult(output_path, moment.duration, success=False, error="encoder exploded")
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(b"short")
        return RenderResult(output_path, moment.duration, success=True)


def moment_payload(*spans, category="Funny"):
    """Analysis payload with one moment per (start, end) span, chunk-relative."""
    return {
        "moments": [
            {"start_time": start, "end_time": end, "category": category, "description": f"moment at {start}"}
            for start, end in spans
        ]
    }


@pytest.fixture
def plano_file(tmp_path):
    path = tmp_path / "templates" / "plano.json"
    save_plano(default_plano(), path)
    return path


@pytest.fixture
def config(tmp_path):
    return Config(
        chunks=ChunkConfig(target_seconds=300, max_last_seconds=450),
        bounds=MomentBounds(10, 90),
        analysis=AnalysisConfig(api_keys=["k1", "k2"], parallelism=2, max_attempts_per_chunk=3, retry_backoff=0),
        render=RenderConfig(workers=2),
        source=SourceConfig(analysis_quality="low", render_quality="low"),
        jobs_dir=tmp_path / "jobs",
        output_dir=tmp_path / "out",
    )


@pytest.fixture
def downloader():
    return FakeDownloader()


@pytest.fixture
def splitter():
    return FakeSplitter()


@pytest.fixture
def client():
    return FakeAnalysisClient()


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def machine(config, downloader, splitter, client, renderer):
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
        RenderStage(renderer, downloader, config.render, config.source, probe=lambda path: None),
    ]
    return JobStateMachine(JobStore(config.jobs_dir), stages, config)
