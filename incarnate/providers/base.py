"""Base provider class, error taxonomy and utilities."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from incarnate.common.logging import get_logger

TInput = TypeVar("TInput", bound=BaseModel)
TOutput = TypeVar("TOutput")

TRANSIENT_MARKERS = ("internal", "server")


# =============================================================================
# Errors
# =============================================================================


class ProviderErrorKind(str, Enum):
    """What went wrong talking to a provider."""

    PROVIDER = "provider"  # Transport / HTTP / SDK failure
    NO_CONTENT = "no_content"
    NO_IMAGE_DATA = "no_image_data"
    NO_CRITIQUE = "no_critique"
    TASK_FAILED = "task_failed"
    TASK_TIMEOUT = "task_timeout"


def classify_message(message: str) -> bool:
    """True when a failure message reads like a transient server-side fault."""
    lowered = message.lower()
    return any(marker in lowered for marker in TRANSIENT_MARKERS)


class ProviderError(Exception):
    """Normalized failure raised by every provider adapter."""

    def __init__(
        self,
        message: str,
        kind: ProviderErrorKind = ProviderErrorKind.PROVIDER,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.retryable = retryable

    @classmethod
    def from_exception(cls, exc: BaseException) -> ProviderError:
        """Wrap an SDK or transport exception, classifying it by message."""
        message = str(exc) or type(exc).__name__
        error = cls(message, ProviderErrorKind.PROVIDER, classify_message(message))
        error.__cause__ = exc
        return error

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value!r}, "
            f"retryable={self.retryable}, message={self.message!r})"
        )


class NoContentError(ProviderError):
    """Provider succeeded but returned no usable text or URI."""

    def __init__(self, message: str = "Provider returned no content"):
        super().__init__(message, ProviderErrorKind.NO_CONTENT, retryable=False)


class NoImageDataError(ProviderError):
    """Provider succeeded but the response carried no image payload."""

    def __init__(self, message: str = "No image data found in response"):
        super().__init__(message, ProviderErrorKind.NO_IMAGE_DATA, retryable=False)


class NoCritiqueError(ProviderError):
    """Critic response was missing or could not be parsed."""

    def __init__(self, message: str = "No critique returned"):
        super().__init__(message, ProviderErrorKind.NO_CRITIQUE, retryable=False)


class TaskFailedError(ProviderError):
    """A long-running task reached a non-success terminal status."""

    def __init__(self, task_id: str, status: str, detail: str = "", retryable: bool = False):
        message = f"Task {status}: {task_id}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message, ProviderErrorKind.TASK_FAILED, retryable=retryable)
        self.task_id = task_id
        self.status = status
        self.detail = detail


class TaskTimeoutError(ProviderError):
    """Polling exhausted its wait budget before a terminal status."""

    def __init__(self, task_id: str, waited_seconds: float):
        super().__init__(
            f"Task timed out after {waited_seconds:.0f}s: {task_id}",
            ProviderErrorKind.TASK_TIMEOUT,
            retryable=False,
        )
        self.task_id = task_id
        self.waited_seconds = waited_seconds


def normalize_error(exc: BaseException) -> ProviderError:
    """Return exc itself if already normalized, otherwise a wrapping ProviderError."""
    if isinstance(exc, ProviderError):
        return exc
    return ProviderError.from_exception(exc)


def is_transient_error(exc: BaseException) -> bool:
    """Default retry predicate."""
    if isinstance(exc, ProviderError):
        return exc.retryable
    return classify_message(str(exc))


# =============================================================================
# Base Provider
# =============================================================================


@dataclass
class ProviderMetrics:
    """Metrics collected across provider calls."""

    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    total_duration_seconds: float = 0.0

    def record_success(self, duration: float) -> None:
        """Record a successful call."""
        self.total_calls += 1
        self.successful_calls += 1
        self.total_duration_seconds += duration

    def record_failure(self, duration: float) -> None:
        """Record a failed call."""
        self.total_calls += 1
        self.failed_calls += 1
        self.total_duration_seconds += duration

    @property
    def success_rate(self) -> float:
        """Calculate success rate."""
        if self.total_calls == 0:
            return 0.0
        return self.successful_calls / self.total_calls

    @property
    def average_duration(self) -> float:
        """Calculate average duration."""
        if self.successful_calls == 0:
            return 0.0
        return self.total_duration_seconds / self.successful_calls


@dataclass
class ProviderConfig:
    """Configuration for a provider adapter."""

    name: str
    model: str = ""


class BaseProvider(ABC, Generic[TInput, TOutput]):
    """
    Base class for provider adapters.

    Adapters translate between domain models and a provider's wire format.
    They hold no per-call state and never retry; retries belong to the
    caller's RetryPolicy.
    """

    def __init__(self, config: ProviderConfig | None = None):
        """Initialize the provider."""
        self.config = config or ProviderConfig(name=self.__class__.__name__)
        self.logger = get_logger(self.config.name)
        self.metrics = ProviderMetrics()

    @property
    def name(self) -> str:
        """Get the provider name."""
        return self.config.name

    @abstractmethod
    async def execute(self, request: TInput) -> TOutput:
        """
        Perform the provider call.

        Args:
            request: The typed request for this provider

        Returns:
            The typed response from this provider

        Raises:
            ProviderError: If the call fails or the payload is unusable
        """

    async def invoke(self, request: TInput) -> TOutput:
        """
        Execute the provider call with logging, metrics and error normalization.

        Args:
            request: The typed request for this provider

        Returns:
            The typed response from this provider
        """
        start_time = time.monotonic()

        self.logger.info(
            "provider_call_start",
            provider=self.name,
            model=self.config.model or None,
            request_type=type(request).__name__,
        )

        try:
            output = await self.execute(request)
        except Exception as e:
            duration = time.monotonic() - start_time
            self.metrics.record_failure(duration)

            error = normalize_error(e)
            self.logger.error(
                "provider_call_failed",
                provider=self.name,
                duration_seconds=round(duration, 3),
                error_type=type(e).__name__,
                error_kind=error.kind.value,
                retryable=error.retryable,
                error_message=error.message,
            )
            if error is e:
                raise
            raise error from e

        duration = time.monotonic() - start_time
        self.metrics.record_success(duration)
        self.logger.info(
            "provider_call_success",
            provider=self.name,
            duration_seconds=round(duration, 3),
            output_type=type(output).__name__,
        )
        return output

    def get_metrics(self) -> dict[str, Any]:
        """Get current metrics as a dictionary."""
        return {
            "name": self.name,
            "total_calls": self.metrics.total_calls,
            "successful_calls": self.metrics.successful_calls,
            "failed_calls": self.metrics.failed_calls,
            "success_rate": self.metrics.success_rate,
            "average_duration_seconds": self.metrics.average_duration,
        }
