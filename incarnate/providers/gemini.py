"""Shared helpers for adapters backed by the Google GenAI SDK."""

from __future__ import annotations

from typing import Any

from google import genai
from google.genai import types

from incarnate.common.config import Settings


def create_client(settings: Settings) -> genai.Client:
    """Build the GenAI client shared by every Gemini/Veo adapter."""
    return genai.Client(api_key=settings.google_api_key or None)


def text_part(text: str) -> types.Part:
    return types.Part.from_text(text=text)


def image_part(data: bytes, mime_type: str) -> types.Part:
    return types.Part.from_bytes(data=data, mime_type=mime_type)


def response_text(response: Any) -> str:
    """Concatenated text of a GenerateContentResponse, stripped."""
    text = getattr(response, "text", None)
    return (text or "").strip()


def first_inline_image(response: Any) -> tuple[bytes, str | None] | None:
    """Return (bytes, mime_type) of the first inline-data part, if any."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    for part in getattr(content, "parts", None) or []:
        inline = getattr(part, "inline_data", None)
        if inline is not None and inline.data:
            return inline.data, inline.mime_type
    return None
