"""Pytest configuration and fixtures."""

from __future__ import annotations

import httpx
import pytest

from incarnate.common.models import (
    BackgroundMode,
    CritiqueResult,
    GeneratedImage,
    GenerationBrief,
    TaskSnapshot,
    TaskStatus,
)
from incarnate.orchestration import IterativeRefinementController, RefinementConfig
from incarnate.providers import (
    ArtifactDownloader,
    ImageCritic,
    ImageCriticInput,
    ImageGenerator,
    ImageGeneratorInput,
    ModelConversionInput,
    ModelConverter,
    PromptOptimizer,
    PromptOptimizerInput,
    PromptRefiner,
    PromptRefinerInput,
    ProviderError,
    ProviderSuite,
    VideoGenerator,
    VideoGeneratorInput,
)


# =============================================================================
# Time
# =============================================================================


class FakeClock:
    """Monotonic clock advanced only by the fake sleep."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


# =============================================================================
# Provider fakes
# =============================================================================


class FakeOptimizer(PromptOptimizer):
    def __init__(self, prompt: str = "turnaround sheet of Nova"):
        super().__init__(client=None)
        self.prompt = prompt
        self.calls: list[PromptOptimizerInput] = []

    async def execute(self, request: PromptOptimizerInput) -> str:
        self.calls.append(request)
        return self.prompt


class FakeGenerator(ImageGenerator):
    """Returns a distinct image per call; ``fail_on`` is a 1-based call number."""

    def __init__(self, fail_on: int | None = None):
        super().__init__(client=None)
        self.calls: list[ImageGeneratorInput] = []
        self.images: list[GeneratedImage] = []
        self.fail_on = fail_on

    async def execute(self, request: ImageGeneratorInput) -> GeneratedImage:
        self.calls.append(request)
        if self.fail_on == len(self.calls):
            raise ProviderError("content blocked by safety filter")
        image = GeneratedImage(data=f"image-{len(self.calls)}".encode(), prompt=request.prompt)
        self.images.append(image)
        return image


class ScriptedCritic(ImageCritic):
    """Returns the scripted scores in order."""

    def __init__(self, scores: list[int]):
        super().__init__(client=None)
        self.scores = list(scores)
        self.critiqued: list[str] = []

    async def execute(self, request: ImageCriticInput) -> CritiqueResult:
        index = len(self.critiqued)
        self.critiqued.append(request.image.id)
        score = self.scores[index]
        return CritiqueResult(
            score=score,
            feedback=f"cycle {index + 1} scored {score}",
            suggestions="sharper lighting",
        )


class FakeRefiner(PromptRefiner):
    def __init__(self):
        super().__init__(client=None)
        self.calls: list[PromptRefinerInput] = []

    async def execute(self, request: PromptRefinerInput) -> str:
        self.calls.append(request)
        return f"{request.current_prompt} +r{len(self.calls)}"


class ScriptedVideoGenerator(VideoGenerator):
    """Each started job walks through ``statuses``; ``start_errors`` fail starts first."""

    def __init__(
        self,
        statuses: list[TaskStatus] | None = None,
        start_errors: list[Exception] | None = None,
        uri: str = "https://videos.example.test/clip.mp4",
    ):
        super().__init__(client=None)
        self.statuses = statuses or [TaskStatus.RUNNING, TaskStatus.SUCCESS]
        self.start_errors = list(start_errors or [])
        self.uri = uri
        self.starts: list[VideoGeneratorInput] = []
        self._polls: dict[str, int] = {}

    async def execute(self, request: VideoGeneratorInput) -> str:
        self.starts.append(request)
        if self.start_errors:
            raise self.start_errors.pop(0)
        task_id = f"operations/video-{len(self.starts)}"
        self._polls[task_id] = 0
        return task_id

    async def get_status(self, task_id: str) -> TaskSnapshot:
        index = self._polls[task_id]
        self._polls[task_id] = index + 1
        status = self.statuses[min(index, len(self.statuses) - 1)]
        output = {"uri": self.uri} if status is TaskStatus.SUCCESS else {}
        return TaskSnapshot(task_id=task_id, status=status, output=output)


class ScriptedConverter(ModelConverter):
    """Walks ``steps`` of (status, progress) and reports ``output`` on success."""

    def __init__(self, steps=None, output=None):
        super().__init__(http=None, api_key="tsk_test")
        self.steps = steps or [(TaskStatus.RUNNING, 50.0), (TaskStatus.SUCCESS, 100.0)]
        self.output = output if output is not None else {
            "pbr_model": "https://cdn.example.test/model.glb",
            "rendered_image": "https://cdn.example.test/render.webp",
        }
        self.uploads: list[GeneratedImage] = []
        self.requests: list[ModelConversionInput] = []
        self.polls = 0

    async def upload(self, image: GeneratedImage) -> str:
        self.uploads.append(image)
        return "tok-1"

    async def execute(self, request: ModelConversionInput) -> str:
        self.requests.append(request)
        return "task-1"

    async def get_status(self, task_id: str) -> TaskSnapshot:
        status, progress = self.steps[min(self.polls, len(self.steps) - 1)]
        self.polls += 1
        output = self.output if status is TaskStatus.SUCCESS else {}
        return TaskSnapshot(task_id=task_id, status=status, progress=progress, output=output)


def bytes_transport(body: bytes = b"payload", status_code: int = 200) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, content=body)

    return httpx.MockTransport(handler)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def sample_brief():
    """The brief used throughout the loop scenarios."""
    return GenerationBrief(
        name="Nova",
        description="hacker",
        style="cyberpunk",
        scenario="neon alley",
        background_mode=BackgroundMode.STUDIO,
    )


@pytest.fixture
def make_controller():
    """Build a controller around fakes with the given critic scores."""

    def _make(scores, config=None, session=None, fail_on=None):
        providers = {
            "optimizer": FakeOptimizer(),
            "generator": FakeGenerator(fail_on=fail_on),
            "critic": ScriptedCritic(scores),
            "refiner": FakeRefiner(),
        }
        controller = IterativeRefinementController(
            config=config or RefinementConfig(),
            session=session,
            **providers,
        )
        return controller, providers

    return _make


@pytest.fixture
def make_suite():
    """Build a ProviderSuite of fakes with an in-memory downloader."""

    def _make(scores, video=None, converter=None, download_status=200, fail_on=None):
        http = httpx.AsyncClient(transport=bytes_transport(b"artifact", download_status))
        return ProviderSuite(
            optimizer=FakeOptimizer(),
            generator=FakeGenerator(fail_on=fail_on),
            critic=ScriptedCritic(scores),
            refiner=FakeRefiner(),
            video=video if video is not None else ScriptedVideoGenerator(),
            converter=converter,
            downloader=ArtifactDownloader(http),
        )

    return _make


@pytest.fixture
def make_video():
    """Factory for scripted video generators."""
    return ScriptedVideoGenerator


@pytest.fixture
def make_converter():
    """Factory for scripted 3D converters."""
    return ScriptedConverter
