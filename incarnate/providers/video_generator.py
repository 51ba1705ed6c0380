"""Video Generator - starts and observes turnaround video jobs on Veo."""

from __future__ import annotations

from typing import Any

from google.genai import types
from pydantic import BaseModel

from incarnate.common.models import (
    BackgroundMode,
    GeneratedImage,
    TaskSnapshot,
    TaskStatus,
)
from incarnate.providers.base import (
    BaseProvider,
    NoContentError,
    ProviderConfig,
    classify_message,
    normalize_error,
)


class VideoGeneratorInput(BaseModel):
    """Input for the Video Generator."""

    image: GeneratedImage
    character_name: str
    background_mode: BackgroundMode = BackgroundMode.STUDIO
    scenario: str = ""


def build_video_prompt(mode: BackgroundMode, scenario: str) -> str:
    """Camera direction for the turnaround clip."""
    if mode is BackgroundMode.IMMERSIVE:
        return (
            f"Cinematic 360-degree camera orbit around the character in a {scenario} "
            "environment. Detailed background, atmospheric lighting. 4k."
        )
    if mode is BackgroundMode.GAMEPLAY:
        return (
            "Video game character showcase. 360-degree rotating camera view of the "
            f"character in a {scenario}. Third-person perspective, game engine style."
        )
    return (
        "Cinematic 360-degree turntable shot of the character. Smooth camera rotation "
        "around the subject. Neutral studio lighting. 4k."
    )


def _failed(task_id: str, detail: str) -> TaskSnapshot:
    # Transient Veo faults are retried with a fresh job
    return TaskSnapshot(
        task_id=task_id,
        status=TaskStatus.FAILED,
        detail=detail,
        retryable=classify_message(detail),
    )


def snapshot_from_operation(operation: Any) -> TaskSnapshot:
    """Translate a Veo long-running operation into a TaskSnapshot."""
    task_id = operation.name or ""
    metadata = operation.metadata or {}

    error_message = (operation.error or {}).get("message") or "Unknown error"

    if str(metadata.get("state", "")).upper() == "FAILED":
        return _failed(task_id, f"Veo state FAILED: {error_message}")

    if operation.error:
        return _failed(task_id, f"Veo operation error: {error_message}")

    if not operation.done:
        return TaskSnapshot(task_id=task_id, status=TaskStatus.RUNNING)

    videos = getattr(operation.response, "generated_videos", None) or []
    video = videos[0].video if videos else None
    if video is None or not video.uri:
        raise NoContentError("Video URI not found in response")

    return TaskSnapshot(
        task_id=task_id,
        status=TaskStatus.SUCCESS,
        progress=100.0,
        output={"uri": video.uri, "mime_type": video.mime_type or "video/mp4"},
    )


class VideoGenerator(BaseProvider[VideoGeneratorInput, str]):
    """
    Veo image-to-video adapter.

    ``invoke`` starts a job and returns its operation name; ``get_status``
    fetches the operation by name, so no operation objects are held
    between calls.
    """

    def __init__(
        self,
        client: Any,
        model: str = "veo-3.1-generate-preview",
        resolution: str = "720p",
        aspect_ratio: str = "16:9",
    ):
        super().__init__(ProviderConfig(name="VideoGenerator", model=model))
        self.client = client
        self.resolution = resolution
        self.aspect_ratio = aspect_ratio

    async def execute(self, request: VideoGeneratorInput) -> str:
        reference = types.VideoGenerationReferenceImage(
            image=types.Image(
                image_bytes=request.image.data,
                mime_type=request.image.mime_type,
            ),
            reference_type=types.VideoGenerationReferenceType.ASSET,
        )

        operation = await self.client.aio.models.generate_videos(
            model=self.config.model,
            prompt=build_video_prompt(request.background_mode, request.scenario),
            config=types.GenerateVideosConfig(
                number_of_videos=1,
                reference_images=[reference],
                resolution=self.resolution,
                aspect_ratio=self.aspect_ratio,
            ),
        )

        if not operation.name:
            raise NoContentError("Video operation has no name")

        self.logger.info("video_operation_started", operation=operation.name)
        return operation.name

    async def get_status(self, task_id: str) -> TaskSnapshot:
        """Fetch the current state of a video operation."""
        try:
            operation = await self.client.aio.operations.get(
                types.GenerateVideosOperation(name=task_id)
            )
            return snapshot_from_operation(operation)
        except Exception as e:
            raise normalize_error(e) from e
