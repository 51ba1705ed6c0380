"""Image Generator - renders a portrait candidate from a prompt."""

from __future__ import annotations

from typing import Any

from google.genai import types
from pydantic import BaseModel

from incarnate.common.models import GeneratedImage, ReferenceImage
from incarnate.providers.base import BaseProvider, NoImageDataError, ProviderConfig
from incarnate.providers.gemini import first_inline_image, image_part, text_part


class ImageGeneratorInput(BaseModel):
    """Input for the Image Generator."""

    prompt: str
    reference_image: ReferenceImage | None = None


class ImageGenerator(BaseProvider[ImageGeneratorInput, GeneratedImage]):
    """
    Generates one candidate image per call.

    Aspect ratio and size are fixed at construction time; every candidate
    in a session shares them.
    """

    def __init__(
        self,
        client: Any,
        model: str = "gemini-3-pro-image-preview",
        aspect_ratio: str = "1:1",
        image_size: str = "2K",
    ):
        super().__init__(ProviderConfig(name="ImageGenerator", model=model))
        self.client = client
        self.aspect_ratio = aspect_ratio
        self.image_size = image_size

    def _generation_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            response_modalities=["TEXT", "IMAGE"],
            image_config=types.ImageConfig(
                aspect_ratio=self.aspect_ratio,
                image_size=self.image_size,
            ),
        )

    async def execute(self, request: ImageGeneratorInput) -> GeneratedImage:
        contents = [text_part(request.prompt)]
        if request.reference_image is not None:
            contents.append(
                image_part(request.reference_image.data, request.reference_image.mime_type)
            )

        response = await self.client.aio.models.generate_content(
            model=self.config.model,
            contents=contents,
            config=self._generation_config(),
        )

        found = first_inline_image(response)
        if found is None:
            raise NoImageDataError()

        data, mime_type = found
        return GeneratedImage(
            data=data,
            mime_type=mime_type or "image/png",
            prompt=request.prompt,
        )
