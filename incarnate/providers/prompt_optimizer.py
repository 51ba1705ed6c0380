"""Prompt Optimizer - turns a character brief into an image-generation prompt."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from incarnate.common.models import BackgroundMode, GenerationBrief
from incarnate.providers.base import BaseProvider, NoContentError, ProviderConfig
from incarnate.providers.gemini import image_part, response_text, text_part


class PromptOptimizerInput(BaseModel):
    """Input for the Prompt Optimizer."""

    brief: GenerationBrief


def background_instruction(mode: BackgroundMode, scenario: str) -> str:
    """Staging requirement for the turnaround sheet."""
    if mode is BackgroundMode.IMMERSIVE:
        return (
            f'The character MUST be integrated into the requested scenario: "{scenario}". '
            "The background should be highly detailed and match the environment description."
        )
    if mode is BackgroundMode.GAMEPLAY:
        return (
            "The image must look like a third-person video game screenshot (gameplay view). "
            f'The character is in the scenario: "{scenario}". '
            "Include environmental details consistent with a game level."
        )
    return (
        "It must ask for a neutral, solid background (dark grey or black) "
        "to make it easy for the video model to understand the 3D form."
    )


def build_optimizer_prompt(brief: GenerationBrief) -> str:
    """Instruction sent to the text model."""
    requirements = [
        background_instruction(brief.background_mode, brief.scenario),
        "It must specify high fidelity, perfect lighting, 4k resolution, and clear details.",
        "Focus heavily on the visual aesthetic defined by the style.",
        "Ensure the character design is consistent across all views.",
    ]
    likeness = ""
    if brief.has_reference:
        likeness = (
            "CRITICAL INSTRUCTION: The user has provided a reference image containing a "
            "specific face/person. The output character MUST bear a strong facial "
            "resemblance to this person (maintain likeness, ethnicity, and facial "
            "structure) while adapting them into the requested Art Style and costume.\n\n"
        )
        requirements.append("Emphasize that the face must match the reference image provided.")

    numbered = "\n".join(f"{i}. {req}" for i, req in enumerate(requirements, start=1))

    return (
        "You are an expert concept artist and prompt engineer.\n"
        "I need to generate a character reference sheet for a video generation model.\n\n"
        f"Character Name: {brief.name}\n"
        f"Description: {brief.description}\n"
        f"Art Style: {brief.style}\n"
        f"Scenario/Vibe: {brief.scenario}\n\n"
        f"{likeness}"
        "Task: Write a highly detailed image generation prompt.\n"
        'The prompt must describe a "Character Turnaround Sheet" featuring the character '
        "in a full-body view.\n"
        "It should include a front view, side view, and back view arranged horizontally.\n\n"
        f"Key requirements for the output prompt:\n{numbered}\n\n"
        "Return ONLY the raw prompt text, no markdown formatting or explanations."
    )


class PromptOptimizer(BaseProvider[PromptOptimizerInput, str]):
    """Writes the initial turnaround-sheet prompt for a brief."""

    def __init__(self, client: Any, model: str = "gemini-3-pro-preview"):
        super().__init__(ProviderConfig(name="PromptOptimizer", model=model))
        self.client = client

    async def execute(self, request: PromptOptimizerInput) -> str:
        brief = request.brief
        contents = [text_part(build_optimizer_prompt(brief))]
        if brief.reference_image is not None:
            contents.append(
                image_part(brief.reference_image.data, brief.reference_image.mime_type)
            )

        response = await self.client.aio.models.generate_content(
            model=self.config.model,
            contents=contents,
        )

        prompt = response_text(response)
        if not prompt:
            raise NoContentError("Prompt optimizer returned empty text")
        return prompt
