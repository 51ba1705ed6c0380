"""Session log and status models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from incarnate.common.models.base import utcnow


class EventSeverity(str, Enum):
    """Severity of a user-facing generation event."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class GenerationEvent(BaseModel):
    """One entry of the append-only session log."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=utcnow)
    message: str
    severity: EventSeverity = EventSeverity.INFO


class GenerationStep(str, Enum):
    """Caller-visible lifecycle of one brief."""

    INPUT = "input"
    OPTIMIZING_PROMPT = "optimizing_prompt"
    GENERATING_IMAGE = "generating_image"
    CRITIQUING = "critiquing"
    REFINING = "refining"
    AWAITING_APPROVAL = "awaiting_approval"  # Loop exhausted, human must approve
    GENERATING_VIDEO = "generating_video"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_busy(self) -> bool:
        return self not in (
            GenerationStep.INPUT,
            GenerationStep.AWAITING_APPROVAL,
            GenerationStep.COMPLETE,
            GenerationStep.ERROR,
        )
