"""Exception hierarchy for AutoShorts jobs.

Job-level failures subclass ShortsError and carry a ``kind`` that is stored
on the failed job record. Analysis failures that the coordinator can recover
from (key rotation, retry) subclass AnalysisError and never reach the job.
"""


class ShortsError(Exception):
    """Base class for every error that can fail a job."""

    kind: str = "ShortsError"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def reason(self) -> str:
        """Single-line failure reason recorded on the job."""
        if self.message:
            return f"{self.kind}: {self.message}"
        return self.kind


class SourceUnavailable(ShortsError):
    """Source could not be reached, read or downloaded."""

    kind = "SourceUnavailable"


class UnsupportedSource(SourceUnavailable):
    """Source exists but cannot be processed (private, restricted, unknown site)."""

    kind = "UnsupportedSource"


class UnsupportedTemplate(ShortsError):
    """Plano template is malformed or has no clip layer."""

    kind = "UnsupportedTemplate"


class AnalysisExhausted(ShortsError):
    """Every credential key was exhausted or every chunk failed."""

    kind = "AnalysisExhausted"


class RenderFailed(ShortsError):
    """Encoder failed for every confirmed moment."""

    kind = "RenderFailed"


class StateCorrupt(ShortsError):
    """Persisted job record cannot be trusted."""

    kind = "StateCorrupt"


class InvalidTransition(ShortsError):
    """Requested phase transition is not in the transition table."""

    kind = "InvalidTransition"

    def __init__(self, current: str, target: str):
        super().__init__(f"cannot move from '{current}' to '{target}'")
        self.current = current
        self.target = target


class JobNotFound(ShortsError):
    """No job with the given id exists in the store."""

    kind = "JobNotFound"


class JobBusy(ShortsError):
    """Job already has a phase running in this process."""

    kind = "JobBusy"


class InvalidMoment(ShortsError):
    """Moment violates ordering or duration bounds."""

    kind = "InvalidMoment"


class Cancelled(ShortsError):
    """Job was cancelled by the user."""

    kind = "Cancelled"

    def reason(self) -> str:
        return "cancelled"


class AnalysisError(Exception):
    """Failure of a single analysis request."""


class CredentialRejected(AnalysisError):
    """Key was rejected by the service (invalid, revoked, forbidden)."""


class QuotaExceeded(CredentialRejected):
    """Key ran out of quota or hit its rate limit."""


class TransientAnalysisError(AnalysisError):
    """Timeout, server error or unparseable payload; worth retrying."""


class AnalysisRequestError(AnalysisError):
    """Request itself was rejected; retrying will not help."""
