"""Tests for durable job records."""

import json

import pytest

from autoshorts_core.errors import JobNotFound, StateCorrupt
from autoshorts_core.models.job import Chunk, ChunkStatus, Job, JobPhase
from autoshorts_core.storage.job_store import CORRUPT_SUFFIX, JOB_FILE, JobStore, checksum


@pytest.fixture
def store(tmp_path):
    return JobStore(tmp_path / "jobs")


def _analyzed_job():
    job = Job(source="video.mp4", phase=JobPhase.ANALYZING)
    job.source_duration = 600.0
    job.chunks = [Chunk(0, 0.0, 300.0), Chunk(1, 300.0, 600.0)]
    return job


def _rewrite(store, job_id, mutate):
    path = store.path_for(job_id)
    envelope = json.loads(path.read_text(encoding="utf-8"))
    mutate(envelope)
    path.write_text(json.dumps(envelope), encoding="utf-8")


def test_save_and_load(store):
    job = _analyzed_job()
    store.save(job)
    assert store.exists(job.id)
    assert store.load(job.id) == job


def test_envelope_has_version_and_checksum(store):
    job = _analyzed_job()
    store.save(job)
    envelope = json.loads(store.path_for(job.id).read_text(encoding="utf-8"))
    assert envelope["version"] == 1
    assert envelope["checksum"] == checksum(envelope["job"])


def test_save_leaves_no_temp_files(store):
    job = _analyzed_job()
    store.save(job)
    store.save(job)
    assert [p.name for p in store.job_dir(job.id).iterdir()] == [JOB_FILE]


def test_missing_job(store):
    with pytest.raises(JobNotFound):
        store.load("nope")


@pytest.mark.parametrize(
    "mutate",
    [
        lambda env: env["job"].update(source="other.mp4"),
        lambda env: env.update(version=99),
        lambda env: env.pop("checksum"),
    ],
)
def test_tampered_record_is_corrupt(store, mutate):
    job = _analyzed_job()
    store.save(job)
    _rewrite(store, job.id, mutate)
    with pytest.raises(StateCorrupt):
        store.load(job.id)


def test_truncated_record_is_corrupt(store):
    job = _analyzed_job()
    store.save(job)
    path = store.path_for(job.id)
    path.write_text(path.read_text(encoding="utf-8")[:40], encoding="utf-8")
    with pytest.raises(StateCorrupt):
        store.load(job.id)


def test_gapped_chunks_are_corrupt(store):
    job = _analyzed_job()
    job.chunks[1].start = 310.0
    store.save(job)
    with pytest.raises(StateCorrupt):
        store.load(job.id)


def test_review_with_unfinished_chunks_is_corrupt(store):
    job = _analyzed_job()
    job.phase = JobPhase.AWAITING_REVIEW
    job.chunks[0].status = ChunkStatus.DONE
    store.save(job)
    with pytest.raises(StateCorrupt):
        store.load(job.id)


def test_mark_corrupt_keeps_original(store):
    job = _analyzed_job()
    store.save(job)
    stub = store.mark_corrupt(job.id, "checksum mismatch")

    assert stub.phase == JobPhase.FAILED
    assert stub.error == "StateCorrupt: checksum mismatch"
    assert (store.job_dir(job.id) / (JOB_FILE + CORRUPT_SUFFIX)).exists()
    assert store.load(job.id).phase == JobPhase.FAILED


def test_list_and_find(store):
    first, second = _analyzed_job(), _analyzed_job()
    store.save(first)
    store.save(second)
    corrupt = _analyzed_job()
    store.save(corrupt)
    store.path_for(corrupt.id).write_text("{", encoding="utf-8")

    assert {j.id for j in store.list_jobs()} == {first.id, second.id}
    assert store.find(first.id[:12]) == first.id
    assert store.find("") is None
