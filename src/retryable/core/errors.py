"""Exceptions raised by the retryable core and error-kind classification."""

from __future__ import annotations

import traceback
from collections.abc import Iterable


class PolicyConfigError(ValueError):
    """Raised when a :class:`~retryable.core.models.RetryPolicy` violates its invariants."""


class MaxAttemptsError(Exception):
    """Raised when the retry budget is exhausted.

    The exception is chained to the last underlying failure and inherits
    its traceback, so debuggers and log handlers still point at the
    original failure site.  :attr:`original_stack` keeps a formatted copy
    for places where only strings survive (structured logs, queues).
    """

    kind = "max_attempts"
    code = "429"

    def __init__(
        self,
        original_error: BaseException,
        retry_count: int,
        operation: str = "<anonymous>",
    ) -> None:
        self.original_error = original_error
        self.original_message = str(original_error)
        self.retry_count = retry_count
        self.operation = operation
        self.original_stack = "".join(
            traceback.format_exception(
                type(original_error), original_error, original_error.__traceback__
            )
        )

        message = f"Failed for '{operation}' for {retry_count} times."
        if self.original_message:
            message += f" Original Error: {self.original_message}"
        super().__init__(message)

        if original_error.__traceback__ is not None:
            self.__traceback__ = original_error.__traceback__


def error_kind(exc: BaseException) -> str:
    """Return the kind discriminator of *exc*.

    An exception may declare an explicit string ``kind`` attribute;
    otherwise its class name is used.
    """
    kind = getattr(exc, "kind", None)
    if isinstance(kind, str) and kind:
        return kind
    return type(exc).__name__


def matches_kind(exc: BaseException, kinds: Iterable[type[BaseException] | str]) -> bool:
    """Whether *exc* belongs to any of *kinds*.

    Exception types match by ``isinstance``.  Strings match the explicit
    kind of *exc* or the name of any class in its MRO, so ``"OSError"``
    also admits ``ConnectionError``.
    """
    names: set[str] | None = None
    for entry in kinds:
        if isinstance(entry, type):
            if isinstance(exc, entry):
                return True
            continue
        if names is None:
            names = {cls.__name__ for cls in type(exc).__mro__}
            names.add(error_kind(exc))
        if entry in names:
            return True
    return False
