"""Character brief models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from incarnate.common.models.base import BaseEntity, generate_id


class BackgroundMode(str, Enum):
    """How the character is staged in the generated portrait."""

    STUDIO = "STUDIO"  # Neutral backdrop, easiest for 3D/video models
    IMMERSIVE = "IMMERSIVE"  # Character placed inside the scenario
    GAMEPLAY = "GAMEPLAY"  # Third-person game screenshot


class ReferenceImage(BaseModel):
    """User-supplied image used to condition likeness."""

    model_config = ConfigDict(frozen=True)

    data: bytes
    mime_type: str = "image/jpeg"


class GenerationBrief(BaseEntity):
    """Immutable character description driving one generation session."""

    id: str = Field(default_factory=lambda: generate_id("brief"))

    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    style: str = ""
    scenario: str = ""
    background_mode: BackgroundMode = BackgroundMode.STUDIO
    reference_image: ReferenceImage | None = None

    @property
    def has_reference(self) -> bool:
        return self.reference_image is not None

    def summary(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "background_mode": self.background_mode.value,
            "has_reference": self.has_reference,
        }
