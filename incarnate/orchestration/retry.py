"""Bounded fixed-delay retry around a single provider call."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from pydantic import BaseModel, Field

from incarnate.common.config import Settings
from incarnate.common.logging import get_logger
from incarnate.providers.base import is_transient_error

logger = get_logger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]
RetryPredicate = Callable[[BaseException], bool]


class RetryPolicy(BaseModel):
    """Attempt budget and fixed (non-exponential) delay between attempts."""

    max_attempts: int = Field(default=3, ge=1)
    base_delay_seconds: float = Field(default=4.0, ge=0.0)

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay_seconds=settings.retry_base_delay_seconds,
        )


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    is_retryable: RetryPredicate = is_transient_error,
    sleep: Sleep = asyncio.sleep,
    label: str = "operation",
) -> T:
    """
    Await ``operation()``, retrying transient failures.

    Non-retryable errors propagate on the attempt that raised them. When the
    budget is spent the last error propagates unchanged.
    """
    policy = policy or RetryPolicy()
    attempt = 1

    while True:
        try:
            return await operation()
        except Exception as exc:
            retryable = is_retryable(exc)
            if not retryable or attempt >= policy.max_attempts:
                logger.warning(
                    "retry_giving_up",
                    label=label,
                    attempt=attempt,
                    max_attempts=policy.max_attempts,
                    retryable=retryable,
                    error=str(exc)[:200],
                )
                raise

            logger.warning(
                "retry_scheduled",
                label=label,
                attempt=attempt,
                max_attempts=policy.max_attempts,
                delay_seconds=policy.base_delay_seconds,
                error=str(exc)[:200],
            )
            await sleep(policy.base_delay_seconds)
            attempt += 1
