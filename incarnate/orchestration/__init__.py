"""Pipeline orchestration for the incarnate avatar pipeline."""

from incarnate.orchestration.polling import PollingConfig, poll_until_terminal
from incarnate.orchestration.postprocess import convert_to_model, generate_turnaround_video
from incarnate.orchestration.refinement import (
    MAX_REFINEMENT_LOOPS,
    QUALITY_THRESHOLD,
    IterativeRefinementController,
    LoopState,
    RefinementConfig,
    RefinementIteration,
    RefinementResult,
    RefinementStatus,
    restore_best,
    track_best,
)
from incarnate.orchestration.retry import RetryPolicy, with_retry
from incarnate.orchestration.session import (
    ALLOWED_TRANSITIONS,
    GenerationSession,
    SessionStateError,
)
from incarnate.orchestration.workflow import AvatarWorkflow, WorkflowConfig

__all__ = [
    # Refinement
    "MAX_REFINEMENT_LOOPS",
    "QUALITY_THRESHOLD",
    "IterativeRefinementController",
    "LoopState",
    "RefinementConfig",
    "RefinementIteration",
    "RefinementResult",
    "RefinementStatus",
    "restore_best",
    "track_best",
    # Retry / polling
    "PollingConfig",
    "RetryPolicy",
    "poll_until_terminal",
    "with_retry",
    # Post-processing
    "convert_to_model",
    "generate_turnaround_video",
    # Session
    "ALLOWED_TRANSITIONS",
    "GenerationSession",
    "SessionStateError",
    # Workflow
    "AvatarWorkflow",
    "WorkflowConfig",
]
