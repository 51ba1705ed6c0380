"""Construction of the provider adapters used by one workflow."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from incarnate.common.config import Settings, get_settings
from incarnate.providers.downloader import ArtifactDownloader
from incarnate.providers.gemini import create_client
from incarnate.providers.image_critic import ImageCritic
from incarnate.providers.image_generator import ImageGenerator
from incarnate.providers.model_converter import ModelConverter
from incarnate.providers.prompt_optimizer import PromptOptimizer
from incarnate.providers.prompt_refiner import PromptRefiner
from incarnate.providers.video_generator import VideoGenerator


@dataclass
class ProviderSuite:
    """Stateless adapters shared by reference across briefs."""

    optimizer: PromptOptimizer
    generator: ImageGenerator
    critic: ImageCritic
    refiner: PromptRefiner
    video: VideoGenerator | None = None
    converter: ModelConverter | None = None
    downloader: ArtifactDownloader | None = None


def build_providers(
    settings: Settings | None = None,
    http: httpx.AsyncClient | None = None,
) -> ProviderSuite:
    """Wire every adapter from settings.

    The caller owns ``http`` and is responsible for closing it.
    """
    settings = settings or get_settings()
    client = create_client(settings)
    http = http or httpx.AsyncClient(timeout=settings.http_timeout_seconds)

    converter = None
    if settings.tripo_api_key:
        converter = ModelConverter(
            http,
            api_key=settings.tripo_api_key,
            base_url=settings.tripo_api_base,
            model_version=settings.tripo_model_version,
        )

    return ProviderSuite(
        optimizer=PromptOptimizer(client, model=settings.text_model),
        generator=ImageGenerator(
            client,
            model=settings.image_model,
            aspect_ratio=settings.image_aspect_ratio,
            image_size=settings.image_size,
        ),
        critic=ImageCritic(client, model=settings.text_model),
        refiner=PromptRefiner(client, model=settings.text_model),
        video=VideoGenerator(
            client,
            model=settings.video_model,
            resolution=settings.video_resolution,
            aspect_ratio=settings.video_aspect_ratio,
        ),
        converter=converter,
        downloader=ArtifactDownloader(http, google_api_key=settings.google_api_key),
    )
