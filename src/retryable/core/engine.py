"""Retry engine -- the attempt loop.

Invokes a unit of async work, and on failure decides between three
paths:

* **rejected** -- the eligibility gate refuses the error; it propagates
  untouched, with no waiting, logging or budget consumed.
* **retrying** -- the error is eligible and budget remains; the engine
  waits for the computed backoff and invokes the work again with the
  same arguments.
* **exhausted** -- the budget is spent; the engine logs once (if asked)
  and raises :class:`~retryable.core.errors.MaxAttemptsError`, or the
  original error when the policy says so.

The loop is iterative and owns its :class:`AttemptState`; the policy is
only ever read.  Suspension happens solely at the backoff wait.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any

from retryable.core.backoff import RandomSource, apply_jitter, next_delay
from retryable.core.errors import MaxAttemptsError, matches_kind
from retryable.core.events import EventBus, RetryEvent, RetryEventType
from retryable.core.models import AttemptState, RetryOutcome, RetryPolicy
from retryable.core.timing import sleep_ms

logger = logging.getLogger(__name__)

# Collaborator signatures
SleepFunc = Callable[[float], Awaitable[Any]]
LogFunc = Callable[[str], None]
Work = Callable[..., Coroutine[Any, Any, Any]]


def _log_exhaustion(message: str) -> None:
    logger.error("%s", message)


def operation_name(func: Callable[..., Any]) -> str:
    """Human-readable identifier for *func* used in terminal errors."""
    return getattr(func, "__qualname__", None) or getattr(func, "__name__", None) or repr(func)


class RetryEngine:
    """Runs one unit of work under a :class:`RetryPolicy`.

    The engine holds no per-invocation state, so a single instance can
    drive any number of concurrent, independent retry series.

    Args:
        sleep: Awaitable delay primitive taking milliseconds.
        log: Receives the failure message when a series is exhausted.
        event_bus: Optional bus receiving :class:`RetryEvent` notifications.
        rng: Random source for jitter (anything with ``random()``).
    """

    def __init__(
        self,
        sleep: SleepFunc | None = None,
        log: LogFunc | None = None,
        event_bus: EventBus | None = None,
        rng: RandomSource | None = None,
    ) -> None:
        self._sleep = sleep or sleep_ms
        self._log = log or _log_exhaustion
        self._event_bus = event_bus
        self._rng = rng

    @property
    def event_bus(self) -> EventBus | None:
        return self._event_bus

    def can_retry(self, policy: RetryPolicy, exc: BaseException) -> bool:
        """Eligibility gate: predicate first, then the error-kind allow-list."""
        if policy.retry_predicate is not None and not policy.retry_predicate(exc):
            return False
        if policy.retryable_errors and not matches_kind(exc, policy.retryable_errors):
            return False
        return True

    async def run(
        self,
        func: Work,
        policy: RetryPolicy,
        *args: Any,
        operation: str | None = None,
        **kwargs: Any,
    ) -> Any:
        """Invoke ``func(*args, **kwargs)`` until it succeeds or retrying stops.

        Returns the first successful result.  Raises the rejected error,
        the original error (``use_original_error``) or
        :class:`MaxAttemptsError`.
        """
        operation = operation or operation_name(func)
        state = AttemptState.start(policy)

        while True:
            try:
                result = await func(*args, **kwargs)
            except Exception as exc:
                logger.debug(
                    "Attempt %d/%d of '%s' failed: %r",
                    state.attempt + 1,
                    policy.max_invocations,
                    operation,
                    exc,
                    extra={"operation": operation, "attempt": state.attempt + 1},
                )
                await self._publish(
                    RetryEventType.ATTEMPT_FAILED, operation, state, error=exc
                )

                if state.exhausted:
                    state.outcome = RetryOutcome.EXHAUSTED
                    await self._publish(RetryEventType.EXHAUSTED, operation, state, error=exc)
                    if policy.log_on_exhaustion:
                        self._log(str(exc))
                    if policy.use_original_error:
                        raise
                    raise MaxAttemptsError(exc, policy.max_attempts, operation) from exc

                if not self.can_retry(policy, exc):
                    state.outcome = RetryOutcome.REJECTED
                    await self._publish(RetryEventType.REJECTED, operation, state, error=exc)
                    raise

                state.outcome = RetryOutcome.RETRYING
                state.remaining_attempts -= 1
                await self._wait(policy, state, operation)
                state.current_backoff = next_delay(policy, state.current_backoff, state.attempt)
                state.attempt += 1
                state.outcome = RetryOutcome.ATTEMPTING
                continue

            state.outcome = RetryOutcome.SUCCEEDED
            await self._publish(RetryEventType.SUCCEEDED, operation, state)
            return result

    # ------------------------------------------------------------------

    async def _wait(self, policy: RetryPolicy, state: AttemptState, operation: str) -> None:
        if not state.current_backoff:
            await self._publish(RetryEventType.RETRY_SCHEDULED, operation, state, delay_ms=0)
            return
        delay = apply_jitter(policy, state.current_backoff, self._rng)
        logger.info(
            "Retrying '%s' in %.0fms (%d retries left)",
            operation,
            delay,
            state.remaining_attempts,
            extra={"operation": operation, "attempt": state.attempt + 1},
        )
        await self._publish(RetryEventType.RETRY_SCHEDULED, operation, state, delay_ms=delay)
        await self._sleep(delay)

    async def _publish(
        self,
        event_type: RetryEventType,
        operation: str,
        state: AttemptState,
        error: BaseException | None = None,
        **extra: Any,
    ) -> None:
        if self._event_bus is None:
            return
        payload: dict[str, Any] = {
            "operation": operation,
            "attempt": state.attempt + 1,
            "remaining_attempts": state.remaining_attempts,
            "outcome": state.outcome.value,
            **extra,
        }
        if error is not None:
            payload["error"] = str(error)
            payload["error_type"] = type(error).__name__
        await self._event_bus.publish(RetryEvent(event_type, payload))


_default_engine = RetryEngine()


def default_engine() -> RetryEngine:
    """Process-wide engine using :func:`asyncio.sleep` and the package logger."""
    return _default_engine


async def retry_async(func: Work, policy: RetryPolicy, *args: Any, **kwargs: Any) -> Any:
    """Run *func* under *policy* with the default engine."""
    return await default_engine().run(func, policy, *args, **kwargs)
