"""Job and moment persistence."""

from autoshorts_core.storage.job_store import JobStore
from autoshorts_core.storage.moment_store import MomentStore

__all__ = ["JobStore", "MomentStore"]
