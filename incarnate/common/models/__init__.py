"""Data models for the incarnate avatar pipeline."""

from incarnate.common.models.base import BaseEntity, generate_id, utcnow
from incarnate.common.models.brief import (
    BackgroundMode,
    GenerationBrief,
    ReferenceImage,
)
from incarnate.common.models.image import (
    AutomaticCritique,
    CritiqueResult,
    GeneratedImage,
    HumanFeedback,
    RefinementTrigger,
)
from incarnate.common.models.session import (
    EventSeverity,
    GenerationEvent,
    GenerationStep,
)
from incarnate.common.models.task import (
    Model3DResult,
    ModelConversionOptions,
    TaskPhase,
    TaskSnapshot,
    TaskStatus,
    VideoResult,
)

__all__ = [
    # Base
    "BaseEntity",
    "generate_id",
    "utcnow",
    # Brief
    "BackgroundMode",
    "GenerationBrief",
    "ReferenceImage",
    # Image / critique
    "AutomaticCritique",
    "CritiqueResult",
    "GeneratedImage",
    "HumanFeedback",
    "RefinementTrigger",
    # Session
    "EventSeverity",
    "GenerationEvent",
    "GenerationStep",
    # Tasks
    "Model3DResult",
    "ModelConversionOptions",
    "TaskPhase",
    "TaskSnapshot",
    "TaskStatus",
    "VideoResult",
]
