"""Video synthesis and 3D conversion of an accepted portrait."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable

from incarnate.common.logging import get_logger
from incarnate.common.models import (
    GeneratedImage,
    Model3DResult,
    ModelConversionOptions,
    TaskStatus,
    VideoResult,
)
from incarnate.orchestration.polling import Clock, PollingConfig, poll_until_terminal
from incarnate.orchestration.retry import RetryPolicy, Sleep, with_retry
from incarnate.providers.base import NoContentError
from incarnate.providers.downloader import ArtifactDownloader
from incarnate.providers.model_converter import (
    ModelConversionInput,
    ModelConverter,
    file_type_for,
)
from incarnate.providers.video_generator import VideoGenerator, VideoGeneratorInput

logger = get_logger(__name__)

StageProgress = Callable[[str, float], None]

# 3D progress bands: upload, task start, then task progress rescaled into 20-90.
UPLOAD_PROGRESS = 10.0
START_PROGRESS = 20.0
TASK_PROGRESS_SPAN = 70.0


async def generate_turnaround_video(
    generator: VideoGenerator,
    downloader: ArtifactDownloader,
    request: VideoGeneratorInput,
    retry: RetryPolicy | None = None,
    polling: PollingConfig | None = None,
    on_progress: StageProgress | None = None,
    *,
    sleep: Sleep = asyncio.sleep,
    clock: Clock = time.monotonic,
) -> VideoResult:
    """
    Start a turnaround video, wait for it and fetch the bytes.

    Each retry attempt starts a fresh provider job. The URI expires quickly,
    so the clip is downloaded before returning.
    """
    polling = polling or PollingConfig(poll_interval_seconds=5.0)

    def report(progress: float, status: TaskStatus) -> None:
        if on_progress is not None:
            on_progress(f"Rendering turnaround video ({status.value})...", progress)

    async def attempt():
        task_id = await generator.invoke(request)
        return await poll_until_terminal(
            task_id,
            generator.get_status,
            report,
            polling,
            sleep=sleep,
            clock=clock,
        )

    snapshot = await with_retry(attempt, retry, sleep=sleep, label="video_generation")

    uri = snapshot.output.get("uri")
    if not uri:
        raise NoContentError("Video URI not found in response")

    data = await downloader.fetch(uri)
    logger.info("video_ready", task_id=snapshot.task_id, size_bytes=len(data))
    if on_progress is not None:
        on_progress("Turnaround video ready", 100.0)

    return VideoResult(
        uri=uri,
        data=data,
        mime_type=snapshot.output.get("mime_type") or "video/mp4",
    )


async def convert_to_model(
    converter: ModelConverter,
    downloader: ArtifactDownloader,
    image: GeneratedImage,
    options: ModelConversionOptions | None = None,
    polling: PollingConfig | None = None,
    on_progress: StageProgress | None = None,
    *,
    sleep: Sleep = asyncio.sleep,
    clock: Clock = time.monotonic,
) -> Model3DResult:
    """Upload ``image``, convert it to a textured mesh and fetch the files."""
    options = options or ModelConversionOptions()

    def stage(message: str, progress: float) -> None:
        if on_progress is not None:
            on_progress(message, progress)

    stage("Uploading image for 3D conversion...", UPLOAD_PROGRESS)
    token = await converter.upload(image)

    stage("Starting 3D model generation...", START_PROGRESS)
    task_id = await converter.invoke(
        ModelConversionInput(
            image_token=token,
            options=options,
            file_type=file_type_for(image.mime_type),
        )
    )

    def report(progress: float, status: TaskStatus) -> None:
        scaled = START_PROGRESS + progress * TASK_PROGRESS_SPAN / 100.0
        stage(f"Generating 3D model ({status.value})...", scaled)

    snapshot = await poll_until_terminal(
        task_id,
        converter.get_status,
        report,
        polling,
        sleep=sleep,
        clock=clock,
    )

    output = snapshot.output
    pbr_model_url = output.get("pbr_model")
    model_url = pbr_model_url or output.get("model")
    if not model_url:
        raise NoContentError("No model URL in response")

    model_data = await downloader.fetch(model_url)

    rendered_url = output.get("rendered_image")
    rendered_data = await downloader.fetch(rendered_url) if rendered_url else None

    stage("3D model ready!", 100.0)
    logger.info("model_ready", task_id=task_id, size_bytes=len(model_data))

    return Model3DResult(
        task_id=task_id,
        model_url=model_url,
        pbr_model_url=pbr_model_url,
        rendered_image_url=rendered_url,
        model_data=model_data,
        rendered_image_data=rendered_data,
    )
