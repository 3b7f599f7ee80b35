"""Tests for moment parsing and the analysis coordinator."""

import threading

import pytest

from autoshorts_core.ai.keys import KeyPool
from autoshorts_core.errors import (
    AnalysisExhausted,
    AnalysisRequestError,
    CredentialRejected,
    QuotaExceeded,
    TransientAnalysisError,
)
from autoshorts_core.models.config import AnalysisConfig, MomentBounds
from autoshorts_core.models.job import Chunk, ChunkStatus, MomentCategory
from autoshorts_core.processors.analyzer import AnalysisCoordinator, parse_moments

from conftest import FakeAnalysisClient, moment_payload


def _chunk(index=1, start=1800.0, end=3600.0, media="chunk.mp4"):
    return Chunk(index=index, start=start, end=end, media_path=media)


def _coordinator(client, keys=("k1", "k2"), **overrides):
    config = AnalysisConfig(api_keys=list(keys), retry_backoff=0, **overrides)
    return AnalysisCoordinator(client, KeyPool.from_values(keys), config=config, bounds=MomentBounds(10, 90))


def test_parse_moments_offsets_to_global_time():
    payload = {
        "moments": [
            {"start_time": "00:01:00", "end_time": "00:01:30", "category": "Incredible Play", "description": " ace "},
        ]
    }
    moments = parse_moments(payload, _chunk(), MomentBounds(10, 90))
    assert len(moments) == 1
    m = moments[0]
    assert (m.start, m.end) == (1860.0, 1890.0)
    assert m.id == "001-001"
    assert m.category == MomentCategory.INCREDIBLE_PLAY
    assert m.caption == "ace"
    assert m.source_chunk == 1


def test_parse_moments_drops_bad_entries():
    payload = [
        {"start_time": "00:00:10", "end_time": "00:00:12"},  # too short
        {"start_time": "00:00:10", "end_time": "00:05:00"},  # too long
        {"start_time": "bogus", "end_time": "00:00:30"},
        {"start_time": "00:29:50", "end_time": "00:40:00"},  # past the chunk end
        "not an object",
        {"start": 100, "end": 130, "category": "Funny"},
    ]
    moments = parse_moments(payload, _chunk(), MomentBounds(10, 90))
    assert [(m.start, m.end, m.id) for m in moments] == [(1900.0, 1930.0, "001-001")]


def test_parse_moments_clamps_small_overshoot():
    payload = [{"start_time": "00:29:40", "end_time": "00:30:00.5"}]
    moments = parse_moments(payload, _chunk(), MomentBounds(10, 90))
    assert moments[0].end == 3600.0


def test_parse_moments_requires_list():
    with pytest.raises(TransientAnalysisError):
        parse_moments({"answer": "none"}, _chunk(), MomentBounds())


def test_chunk_done_on_first_try():
    client = FakeAnalysisClient(default=moment_payload((0, 30)))
    chunk = _coordinator(client).analyze_chunk(_chunk())
    assert chunk.status == ChunkStatus.DONE
    assert chunk.attempts == 1
    assert len(chunk.moments) == 1


def test_quota_rotates_to_next_key():
    client = FakeAnalysisClient(script={"chunk.mp4": [QuotaExceeded("429"), moment_payload((0, 30))]})
    coordinator = _coordinator(client)
    chunk = coordinator.analyze_chunk(_chunk())

    assert chunk.status == ChunkStatus.DONE
    assert [key for _, key in client.calls] == ["key-1", "key-2"]
    assert coordinator.key_pool.current.name == "key-2"


def test_all_keys_exhausted_fails_chunk():
    client = FakeAnalysisClient(default=CredentialRejected("invalid key"))
    chunk = _coordinator(client, keys=("k1", "k2", "k3")).analyze_chunk(_chunk())

    assert chunk.status == ChunkStatus.FAILED
    assert chunk.error == "AnalysisExhausted: all 3 key(s) exhausted"
    assert len(client.calls) == 3


def test_transient_errors_retry_same_key():
    client = FakeAnalysisClient(
        script={"chunk.mp4": [TransientAnalysisError("503"), "not json at all", moment_payload((0, 30))]}
    )
    chunk = _coordinator(client, max_attempts_per_chunk=5).analyze_chunk(_chunk())
    assert chunk.status == ChunkStatus.DONE
    assert chunk.attempts == 3
    assert {key for _, key in client.calls} == {"key-1"}


def test_transient_errors_give_up_after_max_attempts():
    client = FakeAnalysisClient(default=TransientAnalysisError("timeout"))
    chunk = _coordinator(client, max_attempts_per_chunk=3).analyze_chunk(_chunk())
    assert chunk.status == ChunkStatus.FAILED
    assert chunk.attempts == 3
    assert chunk.error == "TransientAnalysisError: timeout"


def test_request_error_fails_immediately():
    client = FakeAnalysisClient(default=AnalysisRequestError("file too large"))
    chunk = _coordinator(client).analyze_chunk(_chunk())
    assert chunk.status == ChunkStatus.FAILED
    assert chunk.attempts == 1
    assert chunk.error.startswith("AnalysisRequestError")


def test_backoff_uses_sleep():
    delays = []
    client = FakeAnalysisClient(script={"chunk.mp4": [TransientAnalysisError("x"), moment_payload((0, 30))]})
    config = AnalysisConfig(api_keys=["k1"], retry_backoff=1.5)
    coordinator = AnalysisCoordinator(client, KeyPool.from_values(["k1"]), config=config, sleep=delays.append)
    coordinator.analyze_chunk(_chunk())
    assert delays == [1.5]


def test_cancelled_chunk_goes_back_to_pending():
    event = threading.Event()
    event.set()
    client = FakeAnalysisClient()
    chunk = _coordinator(client).analyze_chunk(_chunk(), cancel_event=event)
    assert chunk.status == ChunkStatus.PENDING
    assert client.calls == []


def test_analyze_skips_terminal_chunks_and_reports_progress():
    client = FakeAnalysisClient(default=moment_payload((0, 30)))
    done = _chunk(index=0, start=0.0, end=1800.0, media="a.mp4")
    done.status = ChunkStatus.DONE
    pending = [_chunk(index=i, start=i * 1800.0, end=(i + 1) * 1800.0, media=f"c{i}.mp4") for i in (1, 2, 3)]
    finished = []

    _coordinator(client, parallelism=3).analyze([done, *pending], on_chunk_done=finished.append)

    assert sorted(name for name, _ in client.calls) == ["c1.mp4", "c2.mp4", "c3.mp4"]
    assert sorted(c.index for c in finished) == [1, 2, 3]
    assert all(c.status == ChunkStatus.DONE for c in pending)


def test_analyze_without_keys_is_exhausted():
    coordinator = AnalysisCoordinator(FakeAnalysisClient(), KeyPool([]))
    with pytest.raises(AnalysisExhausted):
        coordinator.analyze([_chunk()])


def test_max_attempts_covers_every_key():
    coordinator = _coordinator(FakeAnalysisClient(), keys=tuple(f"k{i}" for i in range(8)), max_attempts_per_chunk=2)
    assert coordinator.max_attempts == 8
