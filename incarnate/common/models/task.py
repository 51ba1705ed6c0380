"""Long-running provider task models (video synthesis, 3D conversion)."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from incarnate.common.models.base import BaseEntity, generate_id


class TaskPhase(str, Enum):
    """Coarse poller state. PENDING is the only non-terminal phase."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class TaskStatus(str, Enum):
    """Raw status vocabulary reported by task providers."""

    QUEUED = "queued"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    BANNED = "banned"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: str | None) -> TaskStatus:
        """Map a provider string onto the vocabulary; unrecognized is UNKNOWN."""
        try:
            return cls((raw or "").lower())
        except ValueError:
            return cls.UNKNOWN

    @property
    def phase(self) -> TaskPhase:
        if self in (TaskStatus.QUEUED, TaskStatus.RUNNING):
            return TaskPhase.PENDING
        if self is TaskStatus.SUCCESS:
            return TaskPhase.SUCCESS
        return TaskPhase.FAILED

    @property
    def is_terminal(self) -> bool:
        return self.phase is not TaskPhase.PENDING


class TaskSnapshot(BaseModel):
    """One observation of a provider task."""

    model_config = ConfigDict(frozen=True)

    task_id: str
    status: TaskStatus
    progress: float = Field(default=0.0, ge=0.0, le=100.0)
    output: dict[str, Any] = Field(default_factory=dict)
    detail: str = ""
    retryable: bool = False  # Failure looks transient; a fresh task may succeed


class ModelConversionOptions(BaseModel):
    """Image-to-3D conversion switches."""

    textured: bool = True
    pbr: bool = True
    auto_size: bool = True
    model_version: str | None = None


class VideoResult(BaseEntity):
    """Turnaround clip fetched right after the provider task finished."""

    id: str = Field(default_factory=lambda: generate_id("video"))

    uri: str
    data: bytes
    mime_type: str = "video/mp4"


class Model3DResult(BaseEntity):
    """Textured mesh fetched right after the conversion task finished."""

    id: str = Field(default_factory=lambda: generate_id("model3d"))

    task_id: str
    model_url: str
    pbr_model_url: str | None = None
    rendered_image_url: str | None = None
    model_data: bytes
    rendered_image_data: bytes | None = None
