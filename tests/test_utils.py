"""Tests for time, file and source helpers."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from autoshorts_core.errors import SourceUnavailable, UnsupportedSource
from autoshorts_core.processors.downloader import VideoDownloader, is_url
from autoshorts_core.utils.files import atomic_write_text
from autoshorts_core.utils.logs import PROGRESS_LOG, job_log_handler, submit_in_context
from autoshorts_core.utils.time import format_duration, format_timestamp, parse_timestamp


def test_format_duration():
    assert format_duration(65) == "1:05"
    assert format_duration(3725) == "1:02:05"


def test_format_timestamp():
    assert format_timestamp(3725) == "01:02:05"
    assert format_timestamp(90.5, "precise") == "00:01:30.500"
    assert format_timestamp(90.5, "ffmpeg") == "90.500"
    with pytest.raises(ValueError):
        format_timestamp(1, "roman")


@pytest.mark.parametrize(
    "value,expected",
    [
        (12, 12.0),
        (1.5, 1.5),
        ("42", 42.0),
        ("01:30", 90.0),
        ("1:02:03", 3723.0),
        ("00:00:07.25", 7.25),
        ("00:00:07,5", 7.5),
        ("75:00", 4500.0),
    ],
)
def test_parse_timestamp(value, expected):
    assert parse_timestamp(value) == expected


@pytest.mark.parametrize("value", [True, -1, "-3", "1:60", "1:61:00", "abc", None, ""])
def test_parse_timestamp_rejects(value):
    with pytest.raises(ValueError):
        parse_timestamp(value)


def test_atomic_write_replaces(tmp_path):
    path = tmp_path / "nested" / "file.txt"
    atomic_write_text(path, "one")
    atomic_write_text(path, "two")
    assert path.read_text(encoding="utf-8") == "two"
    assert [p.name for p in path.parent.iterdir()] == ["file.txt"]


def test_is_url():
    assert is_url("https://youtube.com/watch?v=x")
    assert not is_url("/videos/game.mp4")


def test_missing_local_source(tmp_path):
    with pytest.raises(SourceUnavailable):
        VideoDownloader().acquire(str(tmp_path / "missing.mp4"), tmp_path)


def test_classify_download_failure():
    unsupported = VideoDownloader._classify_failure("WARNING: x\nERROR: [youtube] abc: Private video\n")
    assert isinstance(unsupported, UnsupportedSource)
    assert unsupported.message == "ERROR: [youtube] abc: Private video"

    transient = VideoDownloader._classify_failure("ERROR: Unable to download webpage: timed out")
    assert type(transient) is SourceUnavailable


def test_progress_logs_stay_with_their_job(tmp_path):
    """Two jobs logging at the same time each write only their own lines."""
    logger = logging.getLogger("autoshorts_core.jobs")
    barrier = threading.Barrier(2)

    def step(name):
        job_dir = tmp_path / name
        with job_log_handler(job_dir):
            barrier.wait()
            logger.info("step of %s", name)
            with ThreadPoolExecutor(max_workers=1) as executor:
                submit_in_context(executor, logger.info, "worker of %s", name).result()
            barrier.wait()
        return (job_dir / PROGRESS_LOG).read_text(encoding="utf-8")

    with ThreadPoolExecutor(max_workers=2) as executor:
        logs = dict(zip("ab", executor.map(step, "ab")))

    assert "step of a" in logs["a"] and "worker of a" in logs["a"]
    assert "step of b" in logs["b"] and "worker of b" in logs["b"]
    assert " b" not in logs["a"]
    assert " a" not in logs["b"]
