"""Durable job records.

Each job lives in ``<root>/<job_id>/job.json``. The file wraps the job in an
envelope carrying a format version and a SHA-256 checksum of the canonical
job JSON, so a truncated or hand-mangled record is detected on load instead
of being resumed from a guessed state.
"""

import hashlib
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Optional

from autoshorts_core.errors import JobNotFound, StateCorrupt
from autoshorts_core.models.job import ChunkStatus, Job, JobPhase
from autoshorts_core.pipeline.chunks import chunks_tile
from autoshorts_core.utils.files import atomic_write_text


logger = logging.getLogger(__name__)

FORMAT_VERSION = 1
JOB_FILE = "job.json"
CORRUPT_SUFFIX = ".corrupt"


def _canonical(data: dict[str, Any]) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def checksum(data: dict[str, Any]) -> str:
    return hashlib.sha256(_canonical(data).encode("utf-8")).hexdigest()


class JobStore:
    """Persist and load job records atomically."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self._lock = threading.Lock()

    def job_dir(self, job_id: str) -> Path:
        return self.root / job_id

    def work_dir(self, job_id: str) -> Path:
        return self.job_dir(job_id) / "work"

    def path_for(self, job_id: str) -> Path:
        return self.job_dir(job_id) / JOB_FILE

    def exists(self, job_id: str) -> bool:
        return self.path_for(job_id).exists()

    def save(self, job: Job) -> None:
        """Write the job record; readers never observe a partial file."""
        data = job.to_dict()
        envelope = {"version": FORMAT_VERSION, "checksum": checksum(data), "job": data}
        with self._lock:
            atomic_write_text(self.path_for(job.id), json.dumps(envelope, indent=2) + "\n")
        logger.debug("Saved job %s at phase %s", job.id, job.phase.value)

    def load(self, job_id: str) -> Job:
        """
        Load and validate a job record.

        Raises:
            JobNotFound: If no record exists
            StateCorrupt: If the record fails integrity validation
        """
        path = self.path_for(job_id)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise JobNotFound(job_id) from None
        except OSError as e:
            raise StateCorrupt(f"cannot read {path}: {e}") from e

        try:
            envelope = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StateCorrupt(f"job record is not valid JSON ({e.msg} at line {e.lineno})") from e

        if not isinstance(envelope, dict) or "job" not in envelope:
            raise StateCorrupt("job record has no envelope")
        if envelope.get("version") != FORMAT_VERSION:
            raise StateCorrupt(f"unsupported record version {envelope.get('version')!r}")

        data = envelope["job"]
        if not isinstance(data, dict) or envelope.get("checksum") != checksum(data):
            raise StateCorrupt("checksum mismatch")

        try:
            job = Job.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise StateCorrupt(f"malformed job record: {e}") from e

        self._validate(job, job_id)
        return job

    def _validate(self, job: Job, job_id: str) -> None:
        if job.id != job_id:
            raise StateCorrupt(f"record belongs to job {job.id}")

        if job.chunks:
            if job.source_duration is None or not chunks_tile(job.chunks, job.source_duration):
                raise StateCorrupt("chunks do not tile the source duration")
        elif job.phase in (JobPhase.ANALYZING, JobPhase.AWAITING_REVIEW, JobPhase.RENDERING):
            raise StateCorrupt(f"phase {job.phase.value} requires planned chunks")

        if job.phase in (JobPhase.AWAITING_REVIEW, JobPhase.RENDERING):
            if any(c.status not in (ChunkStatus.DONE, ChunkStatus.FAILED) for c in job.chunks):
                raise StateCorrupt("analysis finished with unfinished chunks")

        for moment in job.moments:
            if moment.end <= moment.start:
                raise StateCorrupt(f"moment {moment.id} ends before it starts")

    def mark_corrupt(self, job_id: str, reason: str) -> Job:
        """
        Move a corrupt record aside and replace it with a failed stub.

        The original file is kept as ``job.json.corrupt`` for inspection.
        """
        path = self.path_for(job_id)
        if path.exists():
            os.replace(path, path.with_name(JOB_FILE + CORRUPT_SUFFIX))
        logger.error("Job %s record is corrupt: %s", job_id, reason)

        job = Job(id=job_id, source="<unknown>", phase=JobPhase.FAILED)
        job.failed_phase = None
        job.error = f"{StateCorrupt.kind}: {reason}"
        self.save(job)
        return job

    def list_ids(self) -> list[str]:
        if not self.root.exists():
            return []
        return sorted(p.parent.name for p in self.root.glob(f"*/{JOB_FILE}"))

    def list_jobs(self) -> list[Job]:
        """Load every readable job, newest first. Corrupt records are skipped."""
        jobs = []
        for job_id in self.list_ids():
            try:
                jobs.append(self.load(job_id))
            except StateCorrupt as e:
                logger.warning("Skipping job %s: %s", job_id, e)
        return sorted(jobs, key=lambda j: j.created_at, reverse=True)

    def find(self, prefix: str) -> Optional[str]:
        """Resolve a unique job id prefix."""
        matches = [job_id for job_id in self.list_ids() if job_id.startswith(prefix)]
        return matches[0] if len(matches) == 1 else None
