"""Unit tests for video synthesis and 3D conversion."""

from types import SimpleNamespace

import httpx
import pytest

from incarnate.common.models import GeneratedImage, TaskSnapshot, TaskStatus
from incarnate.orchestration import (
    PollingConfig,
    RetryPolicy,
    convert_to_model,
    generate_turnaround_video,
)
from incarnate.providers import (
    ArtifactDownloader,
    NoContentError,
    ProviderError,
    TaskFailedError,
    VideoGenerator,
    VideoGeneratorInput,
)
from incarnate.providers.video_generator import snapshot_from_operation


def downloader(body=b"artifact"):
    seen = []

    def handler(request):
        seen.append(str(request.url))
        return httpx.Response(200, content=body)

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    result = ArtifactDownloader(http)
    result.seen = seen
    return result


class VeoOperations(VideoGenerator):
    """Serves Veo operations: the first ``failures`` jobs end with ``error_message``."""

    def __init__(self, failures: int, error_message: str):
        super().__init__(client=None)
        self.failures = failures
        self.error_message = error_message
        self.starts: list[VideoGeneratorInput] = []
        self.polls: dict[str, int] = {}

    async def execute(self, request: VideoGeneratorInput) -> str:
        self.starts.append(request)
        name = f"operations/veo-{len(self.starts)}"
        self.polls[name] = 0
        return name

    async def get_status(self, task_id: str) -> TaskSnapshot:
        self.polls[task_id] += 1
        job = int(task_id.rsplit("-", 1)[-1])
        if job <= self.failures:
            op = SimpleNamespace(
                name=task_id,
                done=True,
                error={"message": self.error_message},
                metadata=None,
                response=None,
            )
        elif self.polls[task_id] == 1:
            op = SimpleNamespace(name=task_id, done=False, error=None, metadata=None, response=None)
        else:
            video = SimpleNamespace(uri="https://videos.example.test/veo.mp4", mime_type="video/mp4")
            op = SimpleNamespace(
                name=task_id,
                done=True,
                error=None,
                metadata=None,
                response=SimpleNamespace(generated_videos=[SimpleNamespace(video=video)]),
            )
        return snapshot_from_operation(op)


@pytest.fixture
def video_request():
    return VideoGeneratorInput(image=GeneratedImage(data=b"img"), character_name="Nova")


class TestTurnaroundVideo:
    """Tests for generate_turnaround_video."""

    @pytest.mark.asyncio
    async def test_downloads_on_success(self, make_video, video_request, fake_clock):
        """Test the clip is fetched as soon as the job succeeds."""
        generator = make_video()
        fetcher = downloader(b"mp4")
        progress = []

        video = await generate_turnaround_video(
            generator,
            fetcher,
            video_request,
            on_progress=lambda message, pct: progress.append((message, pct)),
            sleep=fake_clock.sleep,
            clock=fake_clock,
        )

        assert video.data == b"mp4"
        assert video.uri == "https://videos.example.test/clip.mp4"
        assert fetcher.seen == [video.uri]
        assert fake_clock.sleeps == [5.0]
        assert progress[-1] == ("Turnaround video ready", 100.0)

    @pytest.mark.asyncio
    async def test_transient_start_failure_retried(self, make_video, video_request, fake_clock):
        """Test a transient start error starts a fresh job after the fixed delay."""
        generator = make_video(start_errors=[ProviderError("500 internal", retryable=True)])

        await generate_turnaround_video(
            generator,
            downloader(),
            video_request,
            sleep=fake_clock.sleep,
            clock=fake_clock,
        )

        assert len(generator.starts) == 2
        assert fake_clock.sleeps == [4.0, 5.0]

    @pytest.mark.asyncio
    async def test_failed_job_not_retried(self, make_video, video_request, fake_clock):
        """Test a job that ends failed is reported without another attempt."""
        generator = make_video(statuses=[TaskStatus.FAILED])

        with pytest.raises(TaskFailedError):
            await generate_turnaround_video(
                generator,
                downloader(),
                video_request,
                RetryPolicy(max_attempts=3),
                sleep=fake_clock.sleep,
                clock=fake_clock,
            )

        assert len(generator.starts) == 1

    @pytest.mark.asyncio
    async def test_internal_operation_error_retried(self, video_request, fake_clock):
        """Test jobs ending with an internal Veo error are restarted."""
        generator = VeoOperations(failures=2, error_message="Internal error encountered.")

        video = await generate_turnaround_video(
            generator,
            downloader(),
            video_request,
            RetryPolicy(),
            sleep=fake_clock.sleep,
            clock=fake_clock,
        )

        assert len(generator.starts) == 3
        assert fake_clock.sleeps == [4.0, 4.0, 5.0]
        assert video.uri == "https://videos.example.test/veo.mp4"

    @pytest.mark.asyncio
    async def test_internal_operation_error_exhausts(self, video_request, fake_clock):
        """Test the last internal failure surfaces once attempts are spent."""
        generator = VeoOperations(failures=3, error_message="Internal error encountered.")

        with pytest.raises(TaskFailedError, match="Internal error") as exc_info:
            await generate_turnaround_video(
                generator,
                downloader(),
                video_request,
                RetryPolicy(max_attempts=3),
                sleep=fake_clock.sleep,
                clock=fake_clock,
            )

        assert exc_info.value.retryable is True
        assert len(generator.starts) == 3

    @pytest.mark.asyncio
    async def test_permanent_operation_error_not_retried(self, video_request, fake_clock):
        """Test a non-transient Veo error stops after one job."""
        generator = VeoOperations(failures=1, error_message="Prompt blocked by safety filter")

        with pytest.raises(TaskFailedError):
            await generate_turnaround_video(
                generator,
                downloader(),
                video_request,
                sleep=fake_clock.sleep,
                clock=fake_clock,
            )

        assert len(generator.starts) == 1
        assert fake_clock.sleeps == []

    @pytest.mark.asyncio
    async def test_missing_uri(self, make_video, video_request, fake_clock):
        """Test success without a URI is a NoContentError."""
        generator = make_video(uri="")

        with pytest.raises(NoContentError, match="Video URI not found"):
            await generate_turnaround_video(
                generator,
                downloader(),
                video_request,
                sleep=fake_clock.sleep,
                clock=fake_clock,
            )


class TestConvertToModel:
    """Tests for convert_to_model."""

    @pytest.mark.asyncio
    async def test_progress_is_rescaled(self, make_converter, fake_clock):
        """Test task progress is mapped into the 20-90 band."""
        converter = make_converter()
        progress = []

        await convert_to_model(
            converter,
            downloader(),
            GeneratedImage(data=b"img"),
            on_progress=lambda message, pct: progress.append(pct),
            sleep=fake_clock.sleep,
            clock=fake_clock,
        )

        assert progress == [10.0, 20.0, 55.0, 90.0, 100.0]

    @pytest.mark.asyncio
    async def test_prefers_pbr_model(self, make_converter, fake_clock):
        """Test the PBR model and render are both downloaded."""
        converter = make_converter()
        fetcher = downloader(b"glb")

        result = await convert_to_model(
            converter,
            fetcher,
            GeneratedImage(data=b"img", mime_type="image/jpeg"),
            sleep=fake_clock.sleep,
            clock=fake_clock,
        )

        assert result.model_url == "https://cdn.example.test/model.glb"
        assert result.pbr_model_url == result.model_url
        assert result.model_data == b"glb"
        assert result.rendered_image_data == b"glb"
        assert fetcher.seen == [
            "https://cdn.example.test/model.glb",
            "https://cdn.example.test/render.webp",
        ]
        assert converter.requests[0].file_type == "jpg"

    @pytest.mark.asyncio
    async def test_plain_model_without_render(self, make_converter, fake_clock):
        """Test the plain model URL is used when no PBR model exists."""
        converter = make_converter(output={"model": "https://cdn.example.test/plain.glb"})

        result = await convert_to_model(
            converter,
            downloader(),
            GeneratedImage(data=b"img"),
            sleep=fake_clock.sleep,
            clock=fake_clock,
        )

        assert result.model_url.endswith("plain.glb")
        assert result.pbr_model_url is None
        assert result.rendered_image_data is None

    @pytest.mark.asyncio
    async def test_no_model_url(self, make_converter, fake_clock):
        """Test success without any model URL is an error."""
        converter = make_converter(output={"rendered_image": "https://cdn.example.test/r.webp"})

        with pytest.raises(NoContentError):
            await convert_to_model(
                converter,
                downloader(),
                GeneratedImage(data=b"img"),
                sleep=fake_clock.sleep,
                clock=fake_clock,
            )

    @pytest.mark.asyncio
    async def test_banned_task(self, make_converter, fake_clock):
        """Test a banned task raises TaskFailedError."""
        converter = make_converter(steps=[(TaskStatus.BANNED, 0.0)])

        with pytest.raises(TaskFailedError, match="banned"):
            await convert_to_model(
                converter,
                downloader(),
                GeneratedImage(data=b"img"),
                polling=PollingConfig(poll_interval_seconds=1.0),
                sleep=fake_clock.sleep,
                clock=fake_clock,
            )
