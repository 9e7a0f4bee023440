"""Data model shared by the compiler, sequencer, and job lifecycle.

Everything produced by the timeline compiler and frame sequencer is a
frozen dataclass. RenderJob is the one mutable-by-replacement record; it
is owned by the job store and only ever replaced through a state
transition (see jobstore.check_transition).
"""

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class ContentItem:
    """One learning item, e.g. a letter and its example word."""
    label: str
    caption: str


@dataclass(frozen=True)
class TimelineRequest:
    """Typed compiler input, built once from a raw payload."""
    type: str = "ABCS"
    title: str = ""
    duration_target_minutes: float = 4
    items: tuple[ContentItem, ...] = ()


@dataclass(frozen=True)
class SceneDescriptor:
    duration_seconds: float
    background: str
    title: str
    subtitle: str

    def __post_init__(self):
        if self.duration_seconds <= 0:
            raise ValueError(
                f"Scene duration must be > 0, got {self.duration_seconds}"
            )


@dataclass(frozen=True)
class FrameDescriptor:
    """A single rasterizable instant: which scene, and how far into it."""
    scene_index: int
    phase: float


class JobState(str, Enum):
    QUEUED = "queued"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.COMPLETED, JobState.FAILED)


@dataclass(frozen=True)
class RenderJob:
    """A job record. The payload is copied in, so later changes to the
    caller's dict do not reach the record; nested values are shared."""
    id: str
    payload: dict = field(default_factory=dict)
    state: JobState = JobState.QUEUED
    artifact_ref: str | None = None
    error_reason: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "payload", dict(self.payload))
