"""Image Critic - scores a candidate against the original brief."""

from __future__ import annotations

import json
from typing import Any

from google.genai import types
from pydantic import BaseModel, ValidationError

from incarnate.common.models import CritiqueResult, GeneratedImage
from incarnate.providers.base import BaseProvider, NoCritiqueError, ProviderConfig
from incarnate.providers.gemini import image_part, response_text, text_part


class ImageCriticInput(BaseModel):
    """Input for the Image Critic."""

    original_brief: str
    image: GeneratedImage


class CritiqueSchema(BaseModel):
    """Response schema handed to the model for constrained JSON output."""

    score: int
    feedback: str
    suggestions: str


def build_critic_prompt(original_brief: str) -> str:
    return (
        "You are a Senior Art Director.\n"
        f'Compare the generated image (attached) with the original brief: "{original_brief}".\n\n'
        "Evaluate 3 criteria:\n"
        "1. Accuracy to description (and likeness to face if implied).\n"
        "2. Consistency of the character views (front/side/back).\n"
        "3. Visual quality (clarity, lighting).\n\n"
        "Provide a JSON response with:\n"
        "- score: integer (0-100)\n"
        "- feedback: short string explaining the main issue or success.\n"
        "- suggestions: specific details to add to the prompt to fix issues."
    )


def parse_critique(response: Any) -> CritiqueResult:
    """Turn a structured-output response into a CritiqueResult."""
    parsed = getattr(response, "parsed", None)
    if isinstance(parsed, BaseModel):
        payload: Any = parsed.model_dump()
    elif isinstance(parsed, dict):
        payload = parsed
    else:
        text = response_text(response)
        if not text:
            raise NoCritiqueError()
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise NoCritiqueError(f"Critique was not valid JSON: {e}") from e

    if not isinstance(payload, dict) or "score" not in payload:
        raise NoCritiqueError("Critique is missing a score")

    try:
        return CritiqueResult.model_validate(payload)
    except ValidationError as e:
        raise NoCritiqueError(f"Critique failed validation: {e}") from e


class ImageCritic(BaseProvider[ImageCriticInput, CritiqueResult]):
    """Asks a multimodal model for a 0-100 quality score."""

    def __init__(self, client: Any, model: str = "gemini-3-pro-preview"):
        super().__init__(ProviderConfig(name="ImageCritic", model=model))
        self.client = client

    async def execute(self, request: ImageCriticInput) -> CritiqueResult:
        response = await self.client.aio.models.generate_content(
            model=self.config.model,
            contents=[
                text_part(build_critic_prompt(request.original_brief)),
                image_part(request.image.data, request.image.mime_type),
            ],
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=CritiqueSchema,
            ),
        )
        return parse_critique(response)
