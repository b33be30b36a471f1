"""Backoff interval calculation.

Pure functions mapping ``(policy, current delay, attempt index)`` to the
next delay.  All durations are milliseconds.

The growth sequence is always computed from *unjittered* values: jitter
only perturbs the delay actually waited, and is drawn fresh every time.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, Protocol, cast

from retryable.core.models import BackOffPolicy, ExponentialOption, JitterStrategy

if TYPE_CHECKING:
    from retryable.core.models import RetryPolicy


class RandomSource(Protocol):
    def random(self) -> float: ...


def initial_delay(policy: RetryPolicy) -> float | None:
    """Delay before the first retry (``None`` means no waiting)."""
    return policy.backoff


def next_delay(policy: RetryPolicy, current: float | None, attempt: int) -> float | None:
    """Evolve *current* into the delay for the retry after *attempt*.

    ``FIXED`` and ``NONE`` keep the configured delay; ``EXPONENTIAL``
    multiplies it and caps the result at ``max_interval``.
    """
    if current is None or policy.backoff_policy is not BackOffPolicy.EXPONENTIAL:
        return current
    option = cast(ExponentialOption, policy.exponential_option)
    return min(current * option.multiplier, option.max_interval)


def apply_jitter(
    policy: RetryPolicy, base: float, rng: RandomSource | None = None
) -> float:
    """Perturb *base* according to the policy's jitter strategy.

    * ``FULL_JITTER`` -- uniform in ``[0, base)``
    * ``EQUAL_JITTER`` -- ``base / 2`` plus uniform in ``[0, base / 2)``
    * ``NONE`` -- *base* unchanged
    """
    strategy = policy.jitter
    if strategy is JitterStrategy.NONE:
        return base
    rng = rng or random
    if strategy is JitterStrategy.FULL_JITTER:
        return rng.random() * base
    half = base / 2
    return half + rng.random() * half


def delay_schedule(policy: RetryPolicy, retries: int | None = None) -> list[float]:
    """Unjittered waits a policy produces for *retries* consecutive retries.

    Defaults to the policy's full budget.  Returns an empty list when no
    delay is configured.
    """
    retries = policy.max_attempts if retries is None else retries
    current = initial_delay(policy)
    schedule: list[float] = []
    for attempt in range(retries):
        if not current:
            break
        schedule.append(current)
        current = next_delay(policy, current, attempt)
    return schedule
