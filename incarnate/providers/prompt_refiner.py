"""Prompt Refiner - rewrites the generation prompt after critique or feedback."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from incarnate.common.models import AutomaticCritique, HumanFeedback, RefinementTrigger
from incarnate.providers.base import BaseProvider, ProviderConfig
from incarnate.providers.gemini import response_text


class PromptRefinerInput(BaseModel):
    """Input for the Prompt Refiner."""

    current_prompt: str
    trigger: RefinementTrigger


def trigger_instructions(trigger: AutomaticCritique | HumanFeedback) -> str:
    if isinstance(trigger, HumanFeedback):
        return (
            f'USER FEEDBACK (HIGHEST PRIORITY): "{trigger.text}"\n'
            "Make sure to incorporate this feedback immediately."
        )
    return (
        f'Critique of previous output: "{trigger.critique.feedback}"\n'
        f'Suggestions for improvement: "{trigger.critique.suggestions}"'
    )


def build_refiner_prompt(current_prompt: str, trigger: AutomaticCritique | HumanFeedback) -> str:
    return (
        "You are an expert Prompt Engineer.\n\n"
        f'Current Prompt: "{current_prompt}"\n\n'
        f"{trigger_instructions(trigger)}\n\n"
        "Task: Rewrite the current prompt to address the critique/feedback and improve "
        "the output quality.\n"
        "Keep the core requirements (Character Turnaround Sheet, background instructions, 4k).\n"
        "Enhance the descriptive details based on the suggestions.\n\n"
        "Return ONLY the raw new prompt text."
    )


class PromptRefiner(BaseProvider[PromptRefinerInput, str]):
    """
    Produces the next prompt.

    An empty model answer keeps the current prompt rather than failing the
    loop.
    """

    def __init__(self, client: Any, model: str = "gemini-3-pro-preview"):
        super().__init__(ProviderConfig(name="PromptRefiner", model=model))
        self.client = client

    async def execute(self, request: PromptRefinerInput) -> str:
        response = await self.client.aio.models.generate_content(
            model=self.config.model,
            contents=build_refiner_prompt(request.current_prompt, request.trigger),
        )

        refined = response_text(response)
        if not refined:
            self.logger.warning("refiner_empty_response", provider=self.name)
            return request.current_prompt
        return refined
