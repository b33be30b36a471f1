"""Async event bus for observing retry series.

Implements a publish/subscribe pattern so metrics, audit trails or
user code can react to retry lifecycle events without touching the
engine.  Subscribers never influence the outcome of a retry series.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class RetryEventType(Enum):
    """Lifecycle events emitted by the engine."""

    ATTEMPT_FAILED = "attempt.failed"
    RETRY_SCHEDULED = "retry.scheduled"
    SUCCEEDED = "series.succeeded"
    EXHAUSTED = "series.exhausted"
    REJECTED = "series.rejected"


@dataclass(frozen=True)
class RetryEvent:
    """An immutable event carrying contextual payload."""

    event_type: RetryEventType
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


# Subscriber callable type
Subscriber = Callable[[RetryEvent], Coroutine[Any, Any, None]]


class EventBus:
    """In-process async event bus for retry lifecycle events.

    Handlers registered for a specific event type and handlers registered
    for every type are awaited together on each publish.  A handler that
    raises is logged and skipped; the retry series carries on regardless.
    """

    def __init__(self) -> None:
        self._by_type: dict[RetryEventType, list[Subscriber]] = {}
        self._every: list[Subscriber] = []

    def subscribe(self, event_type: RetryEventType, handler: Subscriber) -> None:
        self._by_type.setdefault(event_type, []).append(handler)

    def subscribe_all(self, handler: Subscriber) -> None:
        """Receive every event, whatever its type."""
        self._every.append(handler)

    def unsubscribe(self, event_type: RetryEventType, handler: Subscriber) -> None:
        """Drop *handler* from *event_type*; unknown handlers are ignored."""
        handlers = self._by_type.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def handlers_for(self, event_type: RetryEventType) -> list[Subscriber]:
        return [*self._by_type.get(event_type, []), *self._every]

    async def publish(self, event: RetryEvent) -> None:
        handlers = self.handlers_for(event.event_type)
        if not handlers:
            return

        outcomes = await asyncio.gather(
            *(handler(event) for handler in handlers), return_exceptions=True
        )
        for handler, outcome in zip(handlers, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                logger.error(
                    "Retry event handler %s failed on %s for '%s': %s",
                    getattr(handler, "__qualname__", repr(handler)),
                    event.event_type.value,
                    event.payload.get("operation", "<unknown>"),
                    outcome,
                )
