"""Base model class for all entities."""

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def generate_id(prefix: str) -> str:
    """Generate a unique ID with a given prefix."""
    return f"{prefix}_{uuid4().hex[:12]}"


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class BaseEntity(BaseModel):
    """Base class for immutable domain entities."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    id: str = Field(default_factory=lambda: generate_id("entity"))
    created_at: datetime = Field(default_factory=utcnow)

    def summary(self) -> dict[str, Any]:
        """Return a summary dict for logging."""
        return {
            "id": self.id,
            "type": self.__class__.__name__,
        }
