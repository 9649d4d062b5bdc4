"""Domain models for generation jobs and their images."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from profileperfect.domain.errors import InvalidTransitionError


class JobKind(StrEnum):
    """Kinds of work a job can represent."""

    GENERATION = "generation"
    RETOUCH = "retouch"


class JobStatus(StrEnum):
    """Lifecycle states of a job."""

    PROCESSING = "processing"
    GENERATING = "generating"
    RETOUCHING = "retouching"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})
IN_FLIGHT_STATUSES = frozenset(
    {JobStatus.PROCESSING, JobStatus.GENERATING, JobStatus.RETOUCHING}
)

_ALLOWED_TRANSITIONS: dict[JobKind, dict[JobStatus, frozenset[JobStatus]]] = {
    JobKind.GENERATION: {
        JobStatus.PROCESSING: frozenset({JobStatus.GENERATING, JobStatus.FAILED}),
        JobStatus.GENERATING: TERMINAL_STATUSES,
    },
    JobKind.RETOUCH: {
        JobStatus.PROCESSING: frozenset({JobStatus.RETOUCHING, JobStatus.FAILED}),
        JobStatus.RETOUCHING: TERMINAL_STATUSES,
    },
}


def working_status(kind: JobKind) -> JobStatus:
    """Return the in-flight label used while the backend is working."""
    if kind is JobKind.RETOUCH:
        return JobStatus.RETOUCHING
    return JobStatus.GENERATING


def can_transition(kind: JobKind, current: JobStatus, target: JobStatus) -> bool:
    """Return whether a job of the given kind may move from current to target."""
    return target in _ALLOWED_TRANSITIONS[kind].get(current, frozenset())


def ensure_transition(kind: JobKind, current: JobStatus, target: JobStatus) -> None:
    """Raise if the transition is not part of the job state machine."""
    if not can_transition(kind, current, target):
        raise InvalidTransitionError(
            f"Cannot move {kind} job from {current} to {target}"
        )


@dataclass(frozen=True)
class JobRecord:
    """A persisted generation or retouch job."""

    id: int
    owner_id: str
    kind: JobKind
    status: JobStatus
    name: str
    input_refs: list[str]
    credits_charged: int
    created_at: datetime
    updated_at: datetime
    parent_image_id: int | None = None
    params: dict[str, object] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        """Whether the job has finished, successfully or not."""
        return self.status in TERMINAL_STATUSES


@dataclass(frozen=True)
class NewImage:
    """Image produced by the backend and about to be stored."""

    url: str
    parent_image_id: int | None = None
    style_preset: str | None = None
    background_preset: str | None = None
    source: str = "profileperfect-ai"


@dataclass(frozen=True)
class ImageRecord:
    """A stored image belonging to a job."""

    id: int
    job_id: int
    url: str
    created_at: datetime
    favorited: bool = False
    parent_image_id: int | None = None
    style_preset: str | None = None
    background_preset: str | None = None
    source: str = "profileperfect-ai"


@dataclass(frozen=True)
class JobStatusReport:
    """A job with the images currently linked to it."""

    job: JobRecord
    images: list[ImageRecord]
