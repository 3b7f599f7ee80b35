"""Tests for chunk planning."""

import pytest

from autoshorts_core.pipeline.chunks import chunks_tile, plan_chunks


def _spans(chunks):
    return [(c.start, c.end) for c in chunks]


def test_long_source_gets_longer_final_chunk():
    """100 minutes -> 30, 30, 40."""
    chunks = plan_chunks(100 * 60)
    assert _spans(chunks) == [(0.0, 1800.0), (1800.0, 3600.0), (3600.0, 6000.0)]
    assert [c.index for c in chunks] == [0, 1, 2]


def test_up_to_max_last_is_single_chunk():
    assert _spans(plan_chunks(45 * 60)) == [(0.0, 2700.0)]
    assert _spans(plan_chunks(20 * 60)) == [(0.0, 1200.0)]


def test_just_over_max_last_splits():
    chunks = plan_chunks(45 * 60 + 1)
    assert _spans(chunks) == [(0.0, 1800.0), (1800.0, 2701.0)]


def test_final_chunk_at_limit():
    chunks = plan_chunks(75 * 60)
    assert _spans(chunks) == [(0.0, 1800.0), (1800.0, 4500.0)]


def test_zero_duration_has_no_chunks():
    assert plan_chunks(0) == []


@pytest.mark.parametrize("duration", [1, 599.5, 2700, 6000, 10_000.25, 36_000])
def test_chunks_always_tile(duration):
    chunks = plan_chunks(duration)
    assert chunks_tile(chunks, duration)
    assert all(c.duration <= 2700 for c in chunks)


@pytest.mark.parametrize(
    "duration,target,max_last",
    [(-1, 1800, 2700), (100, 0, 2700), (100, 1800, 900)],
)
def test_invalid_arguments(duration, target, max_last):
    with pytest.raises(ValueError):
        plan_chunks(duration, target, max_last)


def test_tile_detects_gaps():
    chunks = plan_chunks(6000)
    chunks[1].start += 5
    assert not chunks_tile(chunks, 6000)
    assert not chunks_tile(plan_chunks(6000), 5000)
