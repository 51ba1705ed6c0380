"""Iterative critique-and-refine controller for portrait quality."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from incarnate.common.config import Settings
from incarnate.common.logging import get_logger
from incarnate.common.models import (
    AutomaticCritique,
    CritiqueResult,
    GeneratedImage,
    GenerationBrief,
    GenerationStep,
    HumanFeedback,
    generate_id,
    utcnow,
)
from incarnate.orchestration.session import GenerationSession
from incarnate.providers.image_critic import ImageCritic, ImageCriticInput
from incarnate.providers.image_generator import ImageGenerator, ImageGeneratorInput
from incarnate.providers.prompt_optimizer import PromptOptimizer, PromptOptimizerInput
from incarnate.providers.prompt_refiner import PromptRefiner, PromptRefinerInput

logger = get_logger(__name__)

MAX_REFINEMENT_LOOPS = 3
QUALITY_THRESHOLD = 85


class RefinementStatus(str, Enum):
    """Status of refinement process."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SATISFIED = "satisfied"  # Quality threshold met
    MAX_ITERATIONS = "max_iterations"  # Hit iteration cap, needs human approval


class RefinementConfig(BaseModel):
    """Configuration for refinement loop."""

    max_iterations: int = Field(default=MAX_REFINEMENT_LOOPS, ge=0)
    quality_threshold: int = Field(default=QUALITY_THRESHOLD, ge=0, le=100)

    @classmethod
    def from_settings(cls, settings: Settings) -> RefinementConfig:
        return cls(
            max_iterations=settings.max_refinement_loops,
            quality_threshold=settings.quality_threshold,
        )

    def meets_threshold(self, score: int) -> bool:
        return score >= self.quality_threshold


# =============================================================================
# Loop State
# =============================================================================


class LoopState(BaseModel):
    """
    Working state of one brief's loop.

    Updated only through ``model_copy`` so each transition is a value; the
    best-so-far fields change only via ``track_best``.
    """

    model_config = ConfigDict(frozen=True)

    prompt: str
    current_image: GeneratedImage
    best_image: GeneratedImage
    best_score: int = 0
    iterations: int = 0
    satisfied: bool = False
    last_critique: CritiqueResult | None = None

    @classmethod
    def start(cls, prompt: str, image: GeneratedImage) -> LoopState:
        return cls(prompt=prompt, current_image=image, best_image=image)

    @property
    def showing_best(self) -> bool:
        return self.current_image.id == self.best_image.id


def track_best(state: LoopState, score: int, image: GeneratedImage) -> LoopState:
    """Record ``image`` as best only if ``score`` strictly beats the incumbent.

    Ties keep the earlier image.
    """
    if score > state.best_score:
        return state.model_copy(update={"best_score": score, "best_image": image})
    return state


def restore_best(state: LoopState) -> LoopState:
    """Make the best-scoring candidate current again."""
    if state.showing_best:
        return state
    return state.model_copy(update={"current_image": state.best_image})


# =============================================================================
# Results
# =============================================================================


class RefinementIteration(BaseModel):
    """Record of a single critique cycle."""

    iteration: int
    timestamp: datetime = Field(default_factory=utcnow)

    image_id: str
    prompt: str
    score: int
    feedback: str = ""
    suggestions: str = ""
    new_best: bool = False
    regenerated_image_id: str | None = None


class RefinementResult(BaseModel):
    """Result of the refinement process."""

    id: str = Field(default_factory=lambda: generate_id("refine"))
    status: RefinementStatus = RefinementStatus.NOT_STARTED
    stop_reason: str = ""
    started_at: datetime | None = None
    completed_at: datetime | None = None

    # Outcome
    image: GeneratedImage | None = None
    prompt: str = ""
    best_score: int = 0
    satisfied: bool = False
    restored_best: bool = False
    final_critique: CritiqueResult | None = None

    # Progress
    iterations_completed: int = 0
    resumed_with_feedback: bool = False
    iterations: list[RefinementIteration] = Field(default_factory=list)

    @property
    def needs_approval(self) -> bool:
        return self.status == RefinementStatus.MAX_ITERATIONS


# =============================================================================
# Controller
# =============================================================================


class IterativeRefinementController:
    """
    Controls the Generate → Critique → Refine loop.

    Features:
    - Iteration cap with human-approval fallback
    - Inclusive quality threshold
    - Best-candidate tracking and restoration
    - Resumption with human feedback

    Every provider call is awaited in sequence; any exception aborts the
    run and propagates with no partial result.
    """

    def __init__(
        self,
        optimizer: PromptOptimizer,
        generator: ImageGenerator,
        critic: ImageCritic,
        refiner: PromptRefiner,
        config: RefinementConfig | None = None,
        session: GenerationSession | None = None,
    ):
        self.optimizer = optimizer
        self.generator = generator
        self.critic = critic
        self.refiner = refiner
        self.config = config or RefinementConfig()
        self.session = session

    def _step(self, step: GenerationStep) -> None:
        if self.session is not None:
            self.session.transition(step)

    def _info(self, message: str) -> None:
        if self.session is not None:
            self.session.info(message)

    def _success(self, message: str) -> None:
        if self.session is not None:
            self.session.success(message)

    def _warning(self, message: str) -> None:
        if self.session is not None:
            self.session.warning(message)

    async def run(
        self,
        brief: GenerationBrief,
        prompt: str | None = None,
        feedback: str | None = None,
    ) -> RefinementResult:
        """
        Run the refinement loop for ``brief``.

        Args:
            brief: The character brief
            prompt: Prompt from a previous run; omitted for a fresh start
            feedback: Human feedback to fold into ``prompt`` before generating

        Returns:
            RefinementResult holding the best candidate seen
        """
        if feedback is not None and prompt is None:
            raise ValueError("feedback requires the prompt it should refine")

        result = RefinementResult(
            status=RefinementStatus.IN_PROGRESS,
            started_at=utcnow(),
            resumed_with_feedback=feedback is not None,
        )
        logger.info(
            "refinement_started",
            brief_id=brief.id,
            resumed=prompt is not None,
            max_iterations=self.config.max_iterations,
        )

        current_prompt = await self._establish_prompt(brief, prompt, feedback)

        self._step(GenerationStep.GENERATING_IMAGE)
        self._info("Generating Concept (V1)...")
        image = await self.generator.invoke(
            ImageGeneratorInput(prompt=current_prompt, reference_image=brief.reference_image)
        )
        self._info("Concept V1 generated.")

        state = LoopState.start(current_prompt, image)
        history: list[RefinementIteration] = []

        while state.iterations < self.config.max_iterations and not state.satisfied:
            state, record = await self._run_iteration(brief, state)
            history.append(record)

        if not state.showing_best:
            self._success("Restoring best performing version...")
            logger.info(
                "best_candidate_restored",
                best_image=state.best_image.id,
                discarded_image=state.current_image.id,
                best_score=state.best_score,
            )
        restored = not state.showing_best
        state = restore_best(state)

        if state.satisfied:
            status = RefinementStatus.SATISFIED
            reason = f"quality_threshold_met: {state.best_score} >= {self.config.quality_threshold}"
        else:
            status = RefinementStatus.MAX_ITERATIONS
            reason = f"max_iterations_reached: {self.config.max_iterations}"
            self._warning("Max refinement loops reached.")

        result = result.model_copy(update={
            "status": status,
            "stop_reason": reason,
            "completed_at": utcnow(),
            "image": state.current_image,
            "prompt": state.prompt,
            "best_score": state.best_score,
            "satisfied": state.satisfied,
            "restored_best": restored,
            "final_critique": state.last_critique,
            "iterations_completed": state.iterations,
            "iterations": history,
        })

        logger.info(
            "refinement_completed",
            status=result.status.value,
            iterations=result.iterations_completed,
            best_score=result.best_score,
            restored_best=result.restored_best,
        )
        return result

    async def _establish_prompt(
        self,
        brief: GenerationBrief,
        prompt: str | None,
        feedback: str | None,
    ) -> str:
        """Optimize a fresh prompt or fold human feedback into an existing one."""
        if prompt is None:
            self._step(GenerationStep.OPTIMIZING_PROMPT)
            self._info("Initializing Avatar Agent...")
            kind = "multimodal " if brief.has_reference else ""
            self._info(f"Analyzing {kind}input for {brief.name}...")
            optimized = await self.optimizer.invoke(PromptOptimizerInput(brief=brief))
            self._success("Visual blueprint constructed.")
            return optimized

        if feedback is None:
            return prompt

        trigger = HumanFeedback(text=feedback)
        self._warning(f'Applying user feedback: "{trigger.text}"')
        self._step(GenerationStep.REFINING)
        return await self.refiner.invoke(
            PromptRefinerInput(current_prompt=prompt, trigger=trigger)
        )

    async def _run_iteration(
        self,
        brief: GenerationBrief,
        state: LoopState,
    ) -> tuple[LoopState, RefinementIteration]:
        """Critique the current candidate and, if needed, refine and regenerate."""
        cycle = state.iterations
        self._step(GenerationStep.CRITIQUING)
        self._warning(f"Agent is critiquing concept (Cycle {cycle + 1})...")

        critique = await self.critic.invoke(
            ImageCriticInput(original_brief=brief.description, image=state.current_image)
        )
        passed = self.config.meets_threshold(critique.score)

        score_message = f"Quality Score: {critique.score}/100"
        if passed:
            self._success(score_message)
        else:
            self._warning(score_message)
        self._info(f"Critique: {critique.feedback}")

        previous_best = state.best_score
        state = track_best(state, critique.score, state.current_image)
        state = state.model_copy(update={"last_critique": critique})

        record = RefinementIteration(
            iteration=cycle,
            image_id=state.current_image.id,
            prompt=state.prompt,
            score=critique.score,
            feedback=critique.feedback,
            suggestions=critique.suggestions,
            new_best=state.best_score > previous_best,
        )
        logger.info(
            "critique_completed",
            iteration=cycle,
            score=critique.score,
            best_score=state.best_score,
            passed=passed,
        )

        if passed:
            self._success(f"Quality threshold met (>={self.config.quality_threshold}).")
            return state.model_copy(update={"satisfied": True}), record

        self._step(GenerationStep.REFINING)
        self._info("Refining prompt based on critique...")
        new_prompt = await self.refiner.invoke(
            PromptRefinerInput(
                current_prompt=state.prompt,
                trigger=AutomaticCritique(critique=critique),
            )
        )

        self._step(GenerationStep.GENERATING_IMAGE)
        self._info(f"Regenerating Concept (V{cycle + 2})...")
        new_image = await self.generator.invoke(
            ImageGeneratorInput(prompt=new_prompt, reference_image=brief.reference_image)
        )

        record = record.model_copy(update={"regenerated_image_id": new_image.id})
        state = state.model_copy(update={
            "prompt": new_prompt,
            "current_image": new_image,
            "iterations": cycle + 1,
        })
        return state, record
