"""Session-level driver: brief → refined portrait → video / 3D model."""

from __future__ import annotations

import asyncio
import time

from pydantic import BaseModel, Field

from incarnate.common.config import Settings
from incarnate.common.logging import bind_brief_context, clear_brief_context, get_logger
from incarnate.common.models import (
    GeneratedImage,
    GenerationBrief,
    GenerationStep,
    HumanFeedback,
    Model3DResult,
    ModelConversionOptions,
    VideoResult,
)
from incarnate.orchestration.polling import Clock, PollingConfig
from incarnate.orchestration.postprocess import convert_to_model, generate_turnaround_video
from incarnate.orchestration.refinement import (
    IterativeRefinementController,
    RefinementConfig,
    RefinementResult,
)
from incarnate.orchestration.retry import RetryPolicy, Sleep
from incarnate.orchestration.session import GenerationSession, SessionStateError
from incarnate.providers.base import ProviderError
from incarnate.providers.suite import ProviderSuite
from incarnate.providers.video_generator import VideoGeneratorInput

logger = get_logger(__name__)


class WorkflowConfig(BaseModel):
    """Configuration for a workflow session."""

    refinement: RefinementConfig = Field(default_factory=RefinementConfig)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    task_polling: PollingConfig = Field(default_factory=PollingConfig)
    video_polling: PollingConfig = Field(
        default_factory=lambda: PollingConfig(poll_interval_seconds=5.0)
    )
    auto_video: bool = True  # Start video as soon as the loop is satisfied

    @classmethod
    def from_settings(cls, settings: Settings) -> WorkflowConfig:
        return cls(
            refinement=RefinementConfig.from_settings(settings),
            retry=RetryPolicy.from_settings(settings),
            task_polling=PollingConfig.from_settings(settings),
            video_polling=PollingConfig.from_settings(settings, video=True),
        )


class AvatarWorkflow:
    """
    Runs one brief at a time through the generation lifecycle.

    INPUT → OPTIMIZING_PROMPT → GENERATING_IMAGE → CRITIQUING ⇄ REFINING
    → AWAITING_APPROVAL | GENERATING_VIDEO → COMPLETE, with ERROR reachable
    from anywhere. Failures in the refinement loop end in ERROR and are
    re-raised; video and 3D failures are logged as warnings and leave the
    accepted image in place.
    """

    def __init__(
        self,
        providers: ProviderSuite,
        session: GenerationSession | None = None,
        config: WorkflowConfig | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.monotonic,
    ):
        self.providers = providers
        self.session = session or GenerationSession()
        self.config = config or WorkflowConfig()
        self._sleep = sleep
        self._clock = clock

        self.controller = IterativeRefinementController(
            optimizer=providers.optimizer,
            generator=providers.generator,
            critic=providers.critic,
            refiner=providers.refiner,
            config=self.config.refinement,
            session=self.session,
        )

        self.brief: GenerationBrief | None = None
        self.result: RefinementResult | None = None
        self.video: VideoResult | None = None
        self.model: Model3DResult | None = None

    @property
    def status(self) -> GenerationStep:
        return self.session.status

    @property
    def image(self) -> GeneratedImage | None:
        return self.result.image if self.result else None

    @property
    def prompt(self) -> str:
        return self.result.prompt if self.result else ""

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    async def run(self, brief: GenerationBrief) -> RefinementResult:
        """Fresh start for a new brief."""
        self.reset()
        self.brief = brief
        bind_brief_context(brief.id, brief.name)
        logger.info("workflow_started", **brief.summary())
        return await self._run_loop()

    async def submit_feedback(self, text: str) -> RefinementResult:
        """Re-run the loop from the last prompt with human feedback."""
        if self.brief is None or self.result is None:
            raise SessionStateError("No result to refine yet")
        if self.status not in (GenerationStep.AWAITING_APPROVAL, GenerationStep.COMPLETE):
            raise SessionStateError(f"Cannot accept feedback while {self.status.value}")

        feedback = HumanFeedback(text=text)
        logger.info("feedback_submitted", length=len(feedback.text))
        return await self._run_loop(prompt=self.result.prompt, feedback=feedback.text)

    async def approve(self, with_video: bool = True) -> VideoResult | None:
        """Accept an image the loop could not get past the threshold.

        With ``with_video=False`` the session completes on the image alone.
        """
        if self.status is not GenerationStep.AWAITING_APPROVAL or self.image is None:
            raise SessionStateError(f"Nothing awaiting approval (status {self.status.value})")

        self.session.success("Concept approved.")
        if not with_video:
            self.session.transition(GenerationStep.COMPLETE)
            return None
        return await self._generate_video(self.image)

    async def generate_model(
        self,
        options: ModelConversionOptions | None = None,
    ) -> Model3DResult | None:
        """Convert the accepted image into a textured 3D model."""
        if self.status is not GenerationStep.COMPLETE or self.image is None:
            raise SessionStateError(f"No accepted image to convert (status {self.status.value})")

        converter = self.providers.converter
        downloader = self.providers.downloader
        if converter is None or downloader is None:
            self.session.warning("3D conversion is not configured.")
            return None

        self.session.info("Starting 3D conversion...")
        try:
            self.model = await convert_to_model(
                converter,
                downloader,
                self.image,
                options,
                self.config.task_polling,
                self._progress_logger(),
                sleep=self._sleep,
                clock=self._clock,
            )
        except ProviderError as e:
            logger.warning("model_conversion_failed", error=str(e), kind=e.kind.value)
            self.session.warning(f"3D Model Error: {e}")
            return None

        self.session.success("3D model ready.")
        return self.model

    def reset(self) -> None:
        """Discard the brief, results and log."""
        self.brief = None
        self.result = None
        self.video = None
        self.model = None
        self.session.reset()
        clear_brief_context()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _run_loop(
        self,
        prompt: str | None = None,
        feedback: str | None = None,
    ) -> RefinementResult:
        assert self.brief is not None
        self.video = None
        self.model = None

        try:
            result = await self.controller.run(self.brief, prompt=prompt, feedback=feedback)
        except Exception as e:
            logger.error("workflow_failed", error_type=type(e).__name__, error=str(e))
            self.session.fail(f"Error: {e}")
            raise

        self.result = result

        if not result.satisfied:
            self.session.transition(GenerationStep.AWAITING_APPROVAL)
            return result

        if self.config.auto_video:
            await self._generate_video(result.image)
        else:
            self.session.transition(GenerationStep.COMPLETE)
        return result

    async def _generate_video(self, image: GeneratedImage) -> VideoResult | None:
        assert self.brief is not None
        self.session.transition(GenerationStep.GENERATING_VIDEO)

        generator = self.providers.video
        downloader = self.providers.downloader
        if generator is None or downloader is None:
            self.session.warning("Video generation is not configured.")
            self.session.transition(GenerationStep.COMPLETE)
            return None

        self.session.info("Initializing 360-degree video engine...")
        request = VideoGeneratorInput(
            image=image,
            character_name=self.brief.name,
            background_mode=self.brief.background_mode,
            scenario=self.brief.scenario,
        )
        try:
            self.video = await generate_turnaround_video(
                generator,
                downloader,
                request,
                self.config.retry,
                self.config.video_polling,
                self._progress_logger(),
                sleep=self._sleep,
                clock=self._clock,
            )
        except ProviderError as e:
            logger.warning("video_generation_failed", error=str(e), kind=e.kind.value)
            self.session.warning(f"Video Error: {e}")
            self.session.transition(GenerationStep.COMPLETE)
            return None
        except Exception as e:
            logger.error("video_generation_crashed", error_type=type(e).__name__, error=str(e))
            self.session.fail(f"Video Error: {e}")
            raise

        self.session.success("Final asset ready.")
        self.session.transition(GenerationStep.COMPLETE)
        return self.video

    def _progress_logger(self):
        """Progress callback that logs each distinct stage message once."""
        last_message: str | None = None

        def on_progress(message: str, progress: float) -> None:
            nonlocal last_message
            if message == last_message:
                return
            last_message = message
            self.session.info(f"{message} {progress:.0f}%")

        return on_progress
