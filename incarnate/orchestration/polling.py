"""Generic poller for long-running provider tasks."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable

from pydantic import BaseModel, Field

from incarnate.common.config import Settings
from incarnate.common.logging import get_logger
from incarnate.common.models import TaskPhase, TaskSnapshot, TaskStatus
from incarnate.orchestration.retry import Sleep
from incarnate.providers.base import TaskFailedError, TaskTimeoutError

logger = get_logger(__name__)

StatusFetcher = Callable[[str], Awaitable[TaskSnapshot]]
ProgressCallback = Callable[[float, TaskStatus], None]
Clock = Callable[[], float]


class PollingConfig(BaseModel):
    """Poll cadence and total wait budget."""

    poll_interval_seconds: float = Field(default=3.0, ge=0.0)
    max_wait_seconds: float = Field(default=300.0, gt=0.0)

    @classmethod
    def from_settings(cls, settings: Settings, video: bool = False) -> PollingConfig:
        interval = (
            settings.video_poll_interval_seconds
            if video
            else settings.task_poll_interval_seconds
        )
        return cls(
            poll_interval_seconds=interval,
            max_wait_seconds=settings.task_max_wait_seconds,
        )


async def poll_until_terminal(
    task_id: str,
    get_status: StatusFetcher,
    on_progress: ProgressCallback | None = None,
    config: PollingConfig | None = None,
    *,
    sleep: Sleep = asyncio.sleep,
    clock: Clock = time.monotonic,
) -> TaskSnapshot:
    """
    Poll ``get_status`` until the task reaches a terminal status.

    Every observation is forwarded to ``on_progress`` before it is acted on,
    so the terminal observation is reported too.

    Returns:
        The successful snapshot, carrying the provider output

    Raises:
        TaskFailedError: Task ended failed, banned, expired, cancelled or unknown
        TaskTimeoutError: No terminal status within ``max_wait_seconds``
    """
    config = config or PollingConfig()
    started = clock()
    polls = 0

    while clock() - started < config.max_wait_seconds:
        snapshot = await get_status(task_id)
        polls += 1

        if on_progress is not None:
            on_progress(snapshot.progress, snapshot.status)

        phase = snapshot.status.phase
        if phase is TaskPhase.SUCCESS:
            logger.info("task_succeeded", task_id=task_id, polls=polls)
            return snapshot

        if phase is TaskPhase.FAILED:
            logger.warning(
                "task_failed",
                task_id=task_id,
                status=snapshot.status.value,
                detail=snapshot.detail,
                retryable=snapshot.retryable,
            )
            raise TaskFailedError(
                task_id,
                snapshot.status.value,
                snapshot.detail,
                retryable=snapshot.retryable,
            )

        await sleep(config.poll_interval_seconds)

    waited = clock() - started
    logger.warning("task_timed_out", task_id=task_id, polls=polls, waited_seconds=waited)
    raise TaskTimeoutError(task_id, waited)
