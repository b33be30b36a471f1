"""Decorators and builders for attaching retry policies to async callables.

Example:
    from retryable.decorators import retryable

    class Client:
        @retryable(max_attempts=3, backoff=500)
        async def fetch(self, url):
            ...

    # Or without decorator syntax
    fetch = wrap(fetch_page, RetryPolicy(max_attempts=2))

    # Fluent construction
    policy = (
        RetryPolicyBuilder()
        .attempts(4)
        .exponential(backoff=200, max_interval=5000, multiplier=3)
        .jitter("full")
        .retry_on(TimeoutError, ConnectionError)
        .build()
    )
"""

from __future__ import annotations

import functools
import inspect
from typing import TYPE_CHECKING, Any

from retryable.core.engine import RetryEngine, default_engine, operation_name
from retryable.core.models import (
    BackOffPolicy,
    ExponentialOption,
    JitterStrategy,
    RetryPolicy,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from retryable.core.engine import Work
    from retryable.core.models import RetryPredicate


def wrap(
    func: Work,
    policy: RetryPolicy,
    *,
    engine: RetryEngine | None = None,
    name: str | None = None,
) -> Work:
    """Return *func* with retry semantics applied.

    The wrapper keeps *func*'s calling convention (including methods,
    since it is a plain function and binds like one).  When *engine* is
    omitted the process-wide default engine is resolved on every call.

    Raises:
        TypeError: If neither *func* nor its ``__call__`` is a coroutine function.
    """
    if not (
        inspect.iscoroutinefunction(func)
        or inspect.iscoroutinefunction(getattr(func, "__call__", None))
    ):
        raise TypeError(f"retryable requires an async callable, got {func!r}")

    operation = name or operation_name(func)

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        runner = engine or default_engine()
        return await runner.run(func, policy, *args, operation=operation, **kwargs)

    wrapper.retry_policy = policy  # type: ignore[attr-defined]
    return wrapper


def retryable(
    policy: RetryPolicy | None = None,
    /,
    *,
    engine: RetryEngine | None = None,
    name: str | None = None,
    **options: Any,
) -> Callable[[Work], Work]:
    """Decorator form of :func:`wrap`.

    Args:
        policy: A ready :class:`RetryPolicy`.  Mutually exclusive with
            *options*.
        engine: Engine to run attempts on (defaults to the shared one).
        name: Operation identifier used in terminal errors (defaults to
            the function's qualified name).
        **options: Keyword arguments for :class:`RetryPolicy`.

    Example:
        @retryable(max_attempts=3, retryable_errors={TimeoutError})
        async def call_api():
            ...
    """
    if policy is not None and options:
        raise TypeError("pass either a RetryPolicy or policy options, not both")
    resolved = policy if policy is not None else RetryPolicy(**options)

    def decorator(func: Work) -> Work:
        return wrap(func, resolved, engine=engine, name=name)

    return decorator


class RetryPolicyBuilder:
    """Fluent API for building retry policies programmatically.

    Example:
        policy = (
            RetryPolicyBuilder()
            .attempts(3)
            .fixed(1000)
            .retry_if(lambda e: "429" in str(e))
            .build()
        )
    """

    def __init__(self) -> None:
        self._options: dict[str, Any] = {"max_attempts": 0}
        self._errors: set[type[BaseException] | str] = set()
        self._exponential: dict[str, Any] = {}

    def attempts(self, max_attempts: int) -> RetryPolicyBuilder:
        """Set the number of retries after the first attempt."""
        self._options["max_attempts"] = max_attempts
        return self

    def fixed(self, backoff: float) -> RetryPolicyBuilder:
        """Wait *backoff* milliseconds before every retry."""
        self._options["backoff_policy"] = BackOffPolicy.FIXED
        self._options["backoff"] = backoff
        return self

    def exponential(
        self,
        backoff: float | None = None,
        max_interval: float | None = None,
        multiplier: float | None = None,
    ) -> RetryPolicyBuilder:
        """Grow the delay geometrically; unset values keep their defaults."""
        self._options["backoff_policy"] = BackOffPolicy.EXPONENTIAL
        if backoff is not None:
            self._options["backoff"] = backoff
        if max_interval is not None:
            self._exponential["max_interval"] = max_interval
        if multiplier is not None:
            self._exponential["multiplier"] = multiplier
        return self

    def jitter(self, strategy: JitterStrategy | str) -> RetryPolicyBuilder:
        """Randomize exponential delays (``"full"`` or ``"equal"``)."""
        self._exponential["jitter"] = JitterStrategy(strategy)
        return self

    def retry_on(self, *errors: type[BaseException] | str) -> RetryPolicyBuilder:
        """Restrict retries to these exception types or kinds."""
        self._errors.update(errors)
        return self

    def retry_if(self, predicate: RetryPredicate) -> RetryPolicyBuilder:
        """Only retry errors for which *predicate* returns ``True``."""
        self._options["retry_predicate"] = predicate
        return self

    def use_original_error(self, enabled: bool = True) -> RetryPolicyBuilder:
        self._options["use_original_error"] = enabled
        return self

    def quiet(self) -> RetryPolicyBuilder:
        """Do not log when attempts are exhausted."""
        self._options["log_on_exhaustion"] = False
        return self

    def build(self) -> RetryPolicy:
        """Build and return the normalized :class:`RetryPolicy`."""
        options = dict(self._options)
        if self._exponential:
            options["exponential_option"] = ExponentialOption(**self._exponential)
        if self._errors:
            options["retryable_errors"] = frozenset(self._errors)
        return RetryPolicy(**options)
