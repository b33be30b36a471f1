"""Domain models for the retryable core.

Defines the value objects consumed by the engine: the immutable
:class:`RetryPolicy` (normalized once, at construction), its
exponential growth options, and the per-invocation :class:`AttemptState`.
"""

from __future__ import annotations

import enum
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from retryable.core.errors import PolicyConfigError

DEFAULT_EXPONENTIAL_BACKOFF_MS = 1000.0
DEFAULT_MAX_INTERVAL_MS = 2000.0
DEFAULT_MULTIPLIER = 2.0


class BackOffPolicy(enum.Enum):
    """Shape of the delay inserted between attempts."""

    NONE = "none"
    FIXED = "fixed"
    EXPONENTIAL = "exponential"


class JitterStrategy(enum.Enum):
    """Randomization applied to each computed delay."""

    NONE = "none"
    FULL_JITTER = "full"
    EQUAL_JITTER = "equal"


class RetryOutcome(enum.Enum):
    """Terminal and transient states of one retry series."""

    ATTEMPTING = "attempting"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"
    REJECTED = "rejected"


# Custom eligibility gate
RetryPredicate = Callable[[BaseException], bool]


@dataclass(frozen=True)
class ExponentialOption:
    """Growth parameters for :attr:`BackOffPolicy.EXPONENTIAL`."""

    max_interval: float = DEFAULT_MAX_INTERVAL_MS
    multiplier: float = DEFAULT_MULTIPLIER
    jitter: JitterStrategy = JitterStrategy.NONE

    def __post_init__(self) -> None:
        object.__setattr__(self, "jitter", JitterStrategy(self.jitter))
        if self.multiplier < 1:
            raise PolicyConfigError(
                f"exponential multiplier must be >= 1, got {self.multiplier}"
            )
        if self.max_interval <= 0:
            raise PolicyConfigError(
                f"exponential max_interval must be > 0, got {self.max_interval}"
            )


@dataclass(frozen=True)
class RetryPolicy:
    """Immutable retry configuration.

    Defaults are resolved here, exactly once, so the same policy object
    can be shared by any number of concurrent invocations.

    Attributes:
        max_attempts: Retries permitted after the initial attempt.
        backoff_policy: Delay shape. Resolves to ``FIXED`` when *backoff*
            is set and ``NONE`` otherwise.
        backoff: Base delay in milliseconds. ``None`` or ``0`` means no
            waiting (``1000`` under the exponential policy).
        exponential_option: Growth parameters; an :class:`ExponentialOption`
            or a partial mapping merged over the defaults.
        retry_predicate: Optional gate evaluated before the allow-list.
        retryable_errors: Exception types or kind strings allowed to retry.
            Empty means every error kind is eligible.
        use_original_error: Raise the last underlying error on exhaustion
            instead of :class:`~retryable.core.errors.MaxAttemptsError`.
        log_on_exhaustion: Emit one log line when the budget runs out.
    """

    max_attempts: int
    backoff_policy: BackOffPolicy | None = None
    backoff: float | None = None
    exponential_option: ExponentialOption | Mapping[str, Any] | None = None
    retry_predicate: RetryPredicate | None = field(default=None, compare=False)
    retryable_errors: frozenset[type[BaseException] | str] = frozenset()
    use_original_error: bool = False
    log_on_exhaustion: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.max_attempts, bool) or not isinstance(self.max_attempts, int):
            raise PolicyConfigError(
                f"max_attempts must be an integer, got {self.max_attempts!r}"
            )
        if self.max_attempts < 0:
            raise PolicyConfigError(f"max_attempts must be >= 0, got {self.max_attempts}")
        if self.backoff is not None and self.backoff < 0:
            raise PolicyConfigError(f"backoff must be >= 0 ms, got {self.backoff}")
        if not self.backoff:
            object.__setattr__(self, "backoff", None)

        policy = self.backoff_policy
        if policy is None:
            policy = BackOffPolicy.FIXED if self.backoff else BackOffPolicy.NONE
        object.__setattr__(self, "backoff_policy", BackOffPolicy(policy))
        object.__setattr__(
            self, "retryable_errors", _normalize_errors(self.retryable_errors)
        )

        if self.backoff_policy is BackOffPolicy.EXPONENTIAL:
            if self.backoff is None:
                object.__setattr__(self, "backoff", DEFAULT_EXPONENTIAL_BACKOFF_MS)
            option = self.exponential_option
            if option is None:
                option = ExponentialOption()
            elif isinstance(option, Mapping):
                option = ExponentialOption(**option)
            object.__setattr__(self, "exponential_option", option)
            if option.max_interval < self.backoff:
                raise PolicyConfigError(
                    f"exponential max_interval ({option.max_interval}) must be >= "
                    f"backoff ({self.backoff})"
                )
        elif isinstance(self.exponential_option, Mapping):
            object.__setattr__(
                self, "exponential_option", ExponentialOption(**self.exponential_option)
            )

    @property
    def jitter(self) -> JitterStrategy:
        """Jitter strategy in effect; only exponential backoff is jittered."""
        if self.backoff_policy is BackOffPolicy.EXPONENTIAL and isinstance(
            self.exponential_option, ExponentialOption
        ):
            return self.exponential_option.jitter
        return JitterStrategy.NONE

    @property
    def max_invocations(self) -> int:
        return self.max_attempts + 1


def _normalize_errors(
    errors: Iterable[type[BaseException] | str] | None,
) -> frozenset[type[BaseException] | str]:
    if not errors:
        return frozenset()
    if isinstance(errors, (str, type)):
        errors = [errors]
    normalized: set[type[BaseException] | str] = set()
    for entry in errors:
        if isinstance(entry, str):
            normalized.add(entry)
        elif isinstance(entry, type) and issubclass(entry, BaseException):
            normalized.add(entry)
        else:
            raise PolicyConfigError(
                f"retryable_errors entries must be exception types or kind strings, "
                f"got {entry!r}"
            )
    return frozenset(normalized)


@dataclass
class AttemptState:
    """Mutable bookkeeping owned by exactly one in-flight retry loop."""

    remaining_attempts: int
    current_backoff: float | None
    attempt: int = 0
    outcome: RetryOutcome = RetryOutcome.ATTEMPTING

    @classmethod
    def start(cls, policy: RetryPolicy) -> AttemptState:
        return cls(remaining_attempts=policy.max_attempts, current_backoff=policy.backoff)

    @property
    def exhausted(self) -> bool:
        return self.remaining_attempts <= 0
