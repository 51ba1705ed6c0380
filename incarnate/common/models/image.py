"""Generated image, critique and refinement trigger models."""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from incarnate.common.models.base import BaseEntity, generate_id


class GeneratedImage(BaseEntity):
    """A candidate portrait returned by the image provider.

    Each refinement iteration produces a new instance; instances are never
    mutated, so the id identifies a candidate across the loop.
    """

    id: str = Field(default_factory=lambda: generate_id("img"))

    data: bytes
    mime_type: str = "image/png"
    prompt: str = ""

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class CritiqueResult(BaseModel):
    """Structured quality assessment of a candidate image."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=100)
    feedback: str = ""
    suggestions: str = ""

    @field_validator("score", mode="before")
    @classmethod
    def clamp_score(cls, value: object) -> object:
        """Critics occasionally return floats or out-of-range numbers."""
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return max(0, min(100, int(round(value))))
        return value


# =============================================================================
# Refinement Triggers
# =============================================================================


class AutomaticCritique(BaseModel):
    """Refine because the critic scored the last candidate below threshold."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["critique"] = "critique"
    critique: CritiqueResult


class HumanFeedback(BaseModel):
    """Refine because a person asked for changes."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["human"] = "human"
    text: str = Field(min_length=1)

    @field_validator("text")
    @classmethod
    def strip_text(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("feedback text must not be blank")
        return stripped


RefinementTrigger = Annotated[
    Union[AutomaticCritique, HumanFeedback],
    Field(discriminator="kind"),
]
