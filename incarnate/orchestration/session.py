"""Append-only session log and lifecycle status tracker."""

from __future__ import annotations

from collections.abc import Callable

from incarnate.common.logging import get_logger
from incarnate.common.models import EventSeverity, GenerationEvent, GenerationStep

logger = get_logger(__name__)

EventListener = Callable[[GenerationEvent], None]
StatusListener = Callable[[GenerationStep, GenerationStep], None]

S = GenerationStep

# ERROR is reachable from every state and is not listed here.
ALLOWED_TRANSITIONS: dict[GenerationStep, frozenset[GenerationStep]] = {
    S.INPUT: frozenset({S.OPTIMIZING_PROMPT}),
    S.OPTIMIZING_PROMPT: frozenset({S.GENERATING_IMAGE}),
    S.GENERATING_IMAGE: frozenset({S.CRITIQUING, S.AWAITING_APPROVAL}),
    S.CRITIQUING: frozenset({S.REFINING, S.GENERATING_VIDEO, S.COMPLETE}),
    S.REFINING: frozenset({S.GENERATING_IMAGE}),
    S.AWAITING_APPROVAL: frozenset(
        {S.GENERATING_VIDEO, S.COMPLETE, S.REFINING, S.GENERATING_IMAGE}
    ),
    S.GENERATING_VIDEO: frozenset({S.COMPLETE}),
    S.COMPLETE: frozenset({S.REFINING, S.GENERATING_IMAGE}),
    S.ERROR: frozenset(),
}


class SessionStateError(Exception):
    """Raised for an illegal status transition or an out-of-order request."""


class GenerationSession:
    """
    Shared state read by presentation layers.

    Holds the ordered event log and the current lifecycle step. Only the
    refinement loop and post-processing write to it, one brief at a time.
    Recovery from ERROR is a full ``reset()``.
    """

    def __init__(self) -> None:
        self._events: list[GenerationEvent] = []
        self._status = GenerationStep.INPUT
        self._event_listeners: list[EventListener] = []
        self._status_listeners: list[StatusListener] = []

    @property
    def status(self) -> GenerationStep:
        return self._status

    @property
    def events(self) -> tuple[GenerationEvent, ...]:
        return tuple(self._events)

    @property
    def last_event(self) -> GenerationEvent | None:
        return self._events[-1] if self._events else None

    def subscribe(
        self,
        on_event: EventListener | None = None,
        on_status: StatusListener | None = None,
    ) -> None:
        """Register presentation callbacks."""
        if on_event is not None:
            self._event_listeners.append(on_event)
        if on_status is not None:
            self._status_listeners.append(on_status)

    # -------------------------------------------------------------------------
    # Event log
    # -------------------------------------------------------------------------

    def log(self, message: str, severity: EventSeverity = EventSeverity.INFO) -> GenerationEvent:
        """Append an event and notify listeners."""
        event = GenerationEvent(message=message, severity=severity)
        self._events.append(event)
        for listener in self._event_listeners:
            listener(event)
        return event

    def info(self, message: str) -> GenerationEvent:
        return self.log(message, EventSeverity.INFO)

    def success(self, message: str) -> GenerationEvent:
        return self.log(message, EventSeverity.SUCCESS)

    def warning(self, message: str) -> GenerationEvent:
        return self.log(message, EventSeverity.WARNING)

    def error(self, message: str) -> GenerationEvent:
        return self.log(message, EventSeverity.ERROR)

    # -------------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------------

    def can_transition(self, target: GenerationStep) -> bool:
        if target is GenerationStep.ERROR:
            return True
        return target in ALLOWED_TRANSITIONS[self._status]

    def transition(self, target: GenerationStep) -> None:
        """Move to ``target``; re-entering the current step is a no-op."""
        if target is self._status:
            return
        if not self.can_transition(target):
            raise SessionStateError(
                f"Cannot move from {self._status.value} to {target.value}"
            )
        previous, self._status = self._status, target
        logger.debug("session_transition", previous=previous.value, current=target.value)
        for listener in self._status_listeners:
            listener(previous, target)

    def fail(self, message: str) -> None:
        """Record an error event and enter the ERROR state."""
        self.error(message)
        self.transition(GenerationStep.ERROR)

    def reset(self) -> None:
        """Clear the log and return to INPUT."""
        self._events.clear()
        previous, self._status = self._status, GenerationStep.INPUT
        if previous is not GenerationStep.INPUT:
            for listener in self._status_listeners:
                listener(previous, GenerationStep.INPUT)
