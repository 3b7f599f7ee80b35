"""Tests for the job, chunk and moment models."""

import pytest

from autoshorts_core.errors import InvalidTransition
from autoshorts_core.models.config import Config, RenderConfig
from autoshorts_core.models.job import (
    Chunk,
    ChunkStatus,
    Job,
    JobPhase,
    Moment,
    MomentCategory,
    RenderedShort,
    moment_id,
)


def test_job_creation():
    """Test basic job creation and defaults."""
    job = Job(source="https://youtube.com/watch?v=dQw4w9WgXcQ")
    assert job.id
    assert job.phase == JobPhase.CREATED
    assert job.chunks == []
    assert job.moments == []
    assert job.error is None
    assert not job.is_terminal


def test_job_transitions_follow_table():
    job = Job(source="video.mp4")
    job.transition(JobPhase.DOWNLOADING)
    assert job.phase == JobPhase.DOWNLOADING

    with pytest.raises(InvalidTransition):
        job.transition(JobPhase.RENDERING)


def test_job_fail_records_phase():
    job = Job(source="video.mp4", phase=JobPhase.CHUNKING)
    job.fail("SourceUnavailable: disk full")
    assert job.phase == JobPhase.FAILED
    assert job.failed_phase == JobPhase.CHUNKING
    assert job.error == "SourceUnavailable: disk full"
    assert job.is_terminal

    # A second failure keeps the first reason
    job.fail("something else")
    assert job.error == "SourceUnavailable: disk full"


def test_terminal_jobs_have_no_transitions():
    job = Job(source="video.mp4", phase=JobPhase.COMPLETED)
    with pytest.raises(InvalidTransition):
        job.transition(JobPhase.FAILED)


def test_reopen_only_from_failed():
    job = Job(source="video.mp4", phase=JobPhase.ANALYZING)
    with pytest.raises(InvalidTransition):
        job.reopen(JobPhase.ANALYZING)

    job.fail("AnalysisExhausted: all keys exhausted")
    with pytest.raises(InvalidTransition):
        job.reopen(JobPhase.COMPLETED)

    job.reopen(JobPhase.ANALYZING)
    assert job.phase == JobPhase.ANALYZING
    assert job.error is None
    assert job.failed_phase is None


def test_job_round_trip_keeps_everything():
    job = Job(source="video.mp4", template="/t/plano.json", output_dir="/out")
    job.source_duration = 600.0
    job.chunks = [Chunk(0, 0.0, 600.0, status=ChunkStatus.DONE, attempts=2, media_path="/v.mp4")]
    job.chunks[0].moments = [Moment("000-001", 10.0, 40.0, MomentCategory.FUNNY, "lol")]
    job.moments = list(job.chunks[0].moments)
    job.renders = [RenderedShort("000-001", "/out/short_01_funny.mp4", success=True)]
    job.fail("RenderFailed: boom")

    restored = Job.from_dict(job.to_dict())
    assert restored == job


def test_moment_properties():
    moment = Moment(id="001-002", start=3725.0, end=3755.5)
    assert moment.duration == 30.5
    assert moment.start_formatted == "01:02:05"
    assert moment.category == MomentCategory.OTHER
    assert moment.with_times(10.0, 20.0).duration == 10.0


def test_moment_ids_are_deterministic():
    assert moment_id(0, 1) == "000-001"
    assert moment_id(12, 3) == "012-003"


@pytest.mark.parametrize(
    "label,expected",
    [
        ("Funny", MomentCategory.FUNNY),
        ("incredible play", MomentCategory.INCREDIBLE_PLAY),
        ("Incredible_Play", MomentCategory.INCREDIBLE_PLAY),
        ("CINEMATIC", MomentCategory.CINEMATIC),
        ("Spooky", MomentCategory.OTHER),
        (None, MomentCategory.OTHER),
    ],
)
def test_category_from_label(label, expected):
    assert MomentCategory.from_label(label) == expected


def test_category_slug():
    assert MomentCategory.INCREDIBLE_PLAY.slug == "incredible_play"
    assert MomentCategory.FUNNY.slug == "funny"


def test_config_defaults():
    """Test default configuration."""
    config = Config()
    assert config.chunks.target_seconds == 1800
    assert config.chunks.max_last_seconds == 2700
    assert config.bounds.accepts(0, 10)
    assert not config.bounds.accepts(0, 91)
    assert config.render.canvas == (1080, 1920)
    assert not config.analysis.is_configured


def test_gpu_workers_capped_by_sessions():
    assert RenderConfig(workers=8, use_gpu=True, max_gpu_sessions=3).effective_workers == 3
    assert RenderConfig(workers=8, use_gpu=False).effective_workers == 8
    assert RenderConfig(workers=0).effective_workers == 1
