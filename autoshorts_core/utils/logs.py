"""Per-job progress log."""

import contextvars
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Optional


PROGRESS_LOG = "progress.log"

# Job directory of the step running in the current context
_current_job: contextvars.ContextVar[Optional[Path]] = contextvars.ContextVar("autoshorts_job_dir", default=None)
_level_lock = threading.Lock()


class _ProgressFormatter(logging.Formatter):
    def __init__(self):
        super().__init__("[%(asctime)s] %(levelname)s %(message)s", datefmt="%H:%M:%S")


class _JobFilter(logging.Filter):
    """Pass only records emitted while ``job_dir``'s step is current."""

    def __init__(self, job_dir: Path):
        super().__init__()
        self.job_dir = job_dir

    def filter(self, record: logging.LogRecord) -> bool:
        return _current_job.get() == self.job_dir


def _ensure_level(logger: logging.Logger, level: int) -> None:
    with _level_lock:
        if logger.getEffectiveLevel() > level:
            logger.setLevel(level)


def submit_in_context(executor, fn, *args):
    """``executor.submit`` that carries the current job context into the worker."""
    return executor.submit(contextvars.copy_context().run, fn, *args)


@contextmanager
def job_log_handler(job_dir: Path, level: int = logging.INFO):
    """
    Mirror ``autoshorts_core`` log records into ``<job_dir>/progress.log``.

    Only records from this job's step are written, including those from
    worker threads started with ``submit_in_context``. Steps of other jobs
    running at the same time go to their own files.

    Args:
        job_dir: Directory of the job being processed
        level: Minimum level written to the file
    """
    job_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(job_dir / PROGRESS_LOG, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(_ProgressFormatter())
    handler.addFilter(_JobFilter(job_dir))

    root = logging.getLogger("autoshorts_core")
    _ensure_level(root, level)
    token = _current_job.set(job_dir)
    root.addHandler(handler)
    try:
        yield handler
    finally:
        root.removeHandler(handler)
        _current_job.reset(token)
        handler.close()
