"""Domain entity models for jobs, chunks, and moments."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from autoshorts_core.errors import InvalidTransition
from autoshorts_core.utils.time import format_timestamp


def _now() -> datetime:
    return datetime.now(timezone.utc)


class JobPhase(str, Enum):
    """Phase of a shorts job. The phase names the step that runs next."""

    CREATED = "created"
    DOWNLOADING = "downloading"
    CHUNKING = "chunking"
    ANALYZING = "analyzing"
    AWAITING_REVIEW = "awaiting_review"
    RENDERING = "rendering"
    COMPLETED = "completed"
    FAILED = "failed"


PHASE_ORDER = [
    JobPhase.CREATED,
    JobPhase.DOWNLOADING,
    JobPhase.CHUNKING,
    JobPhase.ANALYZING,
    JobPhase.AWAITING_REVIEW,
    JobPhase.RENDERING,
    JobPhase.COMPLETED,
]

VALID_TRANSITIONS: dict[JobPhase, set[JobPhase]] = {
    JobPhase.CREATED: {JobPhase.DOWNLOADING, JobPhase.FAILED},
    JobPhase.DOWNLOADING: {JobPhase.CHUNKING, JobPhase.FAILED},
    JobPhase.CHUNKING: {JobPhase.ANALYZING, JobPhase.FAILED},
    JobPhase.ANALYZING: {JobPhase.AWAITING_REVIEW, JobPhase.FAILED},
    JobPhase.AWAITING_REVIEW: {JobPhase.RENDERING, JobPhase.FAILED},
    JobPhase.RENDERING: {JobPhase.COMPLETED, JobPhase.FAILED},
    JobPhase.COMPLETED: set(),
    JobPhase.FAILED: set(),
}

TERMINAL_PHASES = {JobPhase.COMPLETED, JobPhase.FAILED}

# Phases a failed job may be re-entered at
RETRY_PHASES = [
    JobPhase.DOWNLOADING,
    JobPhase.CHUNKING,
    JobPhase.ANALYZING,
    JobPhase.AWAITING_REVIEW,
    JobPhase.RENDERING,
]


class ChunkStatus(str, Enum):
    """Analysis status of a chunk."""

    PENDING = "pending"
    SUBMITTED = "submitted"
    DONE = "done"
    FAILED = "failed"


class MomentCategory(str, Enum):
    """Highlight category reported by the analysis service."""

    FUNNY = "Funny"
    INTERESTING = "Interesting"
    INCREDIBLE_PLAY = "IncrediblePlay"
    CINEMATIC = "Cinematic"
    OTHER = "Other"

    @classmethod
    def from_label(cls, label: Any) -> "MomentCategory":
        """Map a free-form label to a category; unknown labels become OTHER."""
        if isinstance(label, cls):
            return label
        if not isinstance(label, str):
            return cls.OTHER
        key = label.replace(" ", "").replace("_", "").replace("-", "").lower()
        for category in cls:
            if category.value.lower() == key:
                return category
        return cls.OTHER

    @property
    def slug(self) -> str:
        """Lowercase underscore form used in output file names."""
        return {
            MomentCategory.INCREDIBLE_PLAY: "incredible_play",
        }.get(self, self.value.lower())


@dataclass(frozen=True)
class Moment:
    """A highlight span in global source coordinates."""

    id: str
    start: float  # Start time in seconds
    end: float  # End time in seconds
    category: MomentCategory = MomentCategory.OTHER
    caption: Optional[str] = None
    source_chunk: int = 0

    @property
    def duration(self) -> float:
        return self.end - self.start

    @property
    def start_formatted(self) -> str:
        """Format start time as HH:MM:SS."""
        return format_timestamp(self.start)

    @property
    def end_formatted(self) -> str:
        """Format end time as HH:MM:SS."""
        return format_timestamp(self.end)

    def with_times(self, start: float, end: float) -> "Moment":
        """Return a re-timed copy."""
        return replace(self, start=start, end=end)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "start": self.start,
            "end": self.end,
            "category": self.category.value,
            "caption": self.caption,
            "source_chunk": self.source_chunk,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Moment":
        return cls(
            id=str(data["id"]),
            start=float(data["start"]),
            end=float(data["end"]),
            category=MomentCategory.from_label(data.get("category")),
            caption=data.get("caption"),
            source_chunk=int(data.get("source_chunk", 0)),
        )


def moment_id(chunk_index: int, ordinal: int) -> str:
    """Deterministic moment id so re-analysis yields the same ids."""
    return f"{chunk_index:03d}-{ordinal:03d}"


@dataclass
class Chunk:
    """A contiguous slice of the source submitted for analysis."""

    index: int
    start: float
    end: float
    status: ChunkStatus = ChunkStatus.PENDING
    attempts: int = 0
    error: Optional[str] = None
    media_path: Optional[str] = None
    moments: list[Moment] = field(default_factory=list)

    @property
    def duration(self) -> float:
        return self.end - self.start

    @property
    def is_terminal(self) -> bool:
        return self.status in (ChunkStatus.DONE, ChunkStatus.FAILED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "start": self.start,
            "end": self.end,
            "status": self.status.value,
            "attempts": self.attempts,
            "error": self.error,
            "media_path": self.media_path,
            "moments": [m.to_dict() for m in self.moments],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Chunk":
        return cls(
            index=int(data["index"]),
            start=float(data["start"]),
            end=float(data["end"]),
            status=ChunkStatus(data.get("status", ChunkStatus.PENDING.value)),
            attempts=int(data.get("attempts", 0)),
            error=data.get("error"),
            media_path=data.get("media_path"),
            moments=[Moment.from_dict(m) for m in data.get("moments", [])],
        )


@dataclass
class RenderedShort:
    """Outcome of rendering one confirmed moment."""

    moment_id: str
    path: Optional[str] = None
    success: bool = False
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "moment_id": self.moment_id,
            "path": self.path,
            "success": self.success,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RenderedShort":
        return cls(
            moment_id=str(data["moment_id"]),
            path=data.get("path"),
            success=bool(data.get("success", False)),
            error=data.get("error"),
        )


@dataclass
class Job:
    """A shorts job - one source video from acquisition to rendered clips."""

    id: str = field(default_factory=lambda: str(uuid4()))
    source: str = ""
    template: str = ""
    output_dir: str = ""
    phase: JobPhase = JobPhase.CREATED
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)
    error: Optional[str] = None
    failed_phase: Optional[JobPhase] = None

    # Acquired media
    source_path: Optional[str] = None
    render_source_path: Optional[str] = None
    source_duration: Optional[float] = None
    source_width: Optional[int] = None
    source_height: Optional[int] = None

    # Analysis and review results
    chunks: list[Chunk] = field(default_factory=list)
    moments: list[Moment] = field(default_factory=list)
    renders: list[RenderedShort] = field(default_factory=list)

    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    @property
    def source_size(self) -> Optional[tuple[int, int]]:
        if self.source_width and self.source_height:
            return self.source_width, self.source_height
        return None

    def transition(self, target: JobPhase) -> None:
        """Move to ``target`` if the transition table allows it."""
        if target not in VALID_TRANSITIONS[self.phase]:
            raise InvalidTransition(self.phase.value, target.value)
        self.phase = target
        self.updated_at = _now()

    def fail(self, reason: str) -> None:
        """Move to FAILED and record the single root-cause reason."""
        if self.phase == JobPhase.FAILED:
            return
        self.failed_phase = self.phase
        self.transition(JobPhase.FAILED)
        self.error = reason

    def reopen(self, phase: JobPhase) -> None:
        """Re-enter a failed job at ``phase``."""
        if self.phase != JobPhase.FAILED:
            raise InvalidTransition(self.phase.value, phase.value)
        if phase not in RETRY_PHASES:
            raise InvalidTransition(self.phase.value, phase.value)
        self.phase = phase
        self.error = None
        self.failed_phase = None
        self.updated_at = _now()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "source": self.source,
            "template": self.template,
            "output_dir": self.output_dir,
            "phase": self.phase.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "error": self.error,
            "failed_phase": self.failed_phase.value if self.failed_phase else None,
            "source_path": self.source_path,
            "render_source_path": self.render_source_path,
            "source_duration": self.source_duration,
            "source_width": self.source_width,
            "source_height": self.source_height,
            "chunks": [c.to_dict() for c in self.chunks],
            "moments": [m.to_dict() for m in self.moments],
            "renders": [r.to_dict() for r in self.renders],
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Job":
        """Create from dictionary. Raises KeyError/ValueError on malformed data."""
        failed_phase = data.get("failed_phase")
        return cls(
            id=str(data["id"]),
            source=data["source"],
            template=data.get("template", ""),
            output_dir=data.get("output_dir", ""),
            phase=JobPhase(data["phase"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
            error=data.get("error"),
            failed_phase=JobPhase(failed_phase) if failed_phase else None,
            source_path=data.get("source_path"),
            render_source_path=data.get("render_source_path"),
            source_duration=data.get("source_duration"),
            source_width=data.get("source_width"),
            source_height=data.get("source_height"),
            chunks=[Chunk.from_dict(c) for c in data.get("chunks", [])],
            moments=[Moment.from_dict(m) for m in data.get("moments", [])],
            renders=[RenderedShort.from_dict(r) for r in data.get("renders", [])],
            metadata=dict(data.get("metadata", {})),
        )
