"""Provider adapters for the external generative services."""

from incarnate.providers.base import (
    BaseProvider,
    NoContentError,
    NoCritiqueError,
    NoImageDataError,
    ProviderConfig,
    ProviderError,
    ProviderErrorKind,
    ProviderMetrics,
    TaskFailedError,
    TaskTimeoutError,
    classify_message,
    is_transient_error,
    normalize_error,
)
from incarnate.providers.downloader import ArtifactDownloader
from incarnate.providers.image_critic import ImageCritic, ImageCriticInput
from incarnate.providers.image_generator import ImageGenerator, ImageGeneratorInput
from incarnate.providers.model_converter import ModelConversionInput, ModelConverter
from incarnate.providers.prompt_optimizer import PromptOptimizer, PromptOptimizerInput
from incarnate.providers.prompt_refiner import PromptRefiner, PromptRefinerInput
from incarnate.providers.suite import ProviderSuite, build_providers
from incarnate.providers.video_generator import VideoGenerator, VideoGeneratorInput

__all__ = [
    # Base
    "BaseProvider",
    "ProviderConfig",
    "ProviderMetrics",
    # Errors
    "NoContentError",
    "NoCritiqueError",
    "NoImageDataError",
    "ProviderError",
    "ProviderErrorKind",
    "TaskFailedError",
    "TaskTimeoutError",
    "classify_message",
    "is_transient_error",
    "normalize_error",
    # Adapters
    "ArtifactDownloader",
    "ImageCritic",
    "ImageCriticInput",
    "ImageGenerator",
    "ImageGeneratorInput",
    "ModelConversionInput",
    "ModelConverter",
    "PromptOptimizer",
    "PromptOptimizerInput",
    "PromptRefiner",
    "PromptRefinerInput",
    "VideoGenerator",
    "VideoGeneratorInput",
    # Wiring
    "ProviderSuite",
    "build_providers",
]
