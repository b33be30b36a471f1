"""Unit tests for backoff interval calculation."""

from __future__ import annotations

import random

import pytest

from retryable.core.backoff import apply_jitter, delay_schedule, initial_delay, next_delay
from retryable.core.models import BackOffPolicy, JitterStrategy, RetryPolicy
from tests.helpers import FixedRandom


def _exponential(**option: object) -> RetryPolicy:
    return RetryPolicy(
        max_attempts=5,
        backoff_policy=BackOffPolicy.EXPONENTIAL,
        backoff=1000,
        exponential_option={"max_interval": 4000, "multiplier": 3, **option},
    )


class TestNextDelay:
    def test_initial_delay_is_configured_backoff(self) -> None:
        assert initial_delay(RetryPolicy(max_attempts=1, backoff=750)) == 750
        assert initial_delay(RetryPolicy(max_attempts=1)) is None

    def test_fixed_delay_unchanged(self) -> None:
        policy = RetryPolicy(max_attempts=3, backoff=1000)
        assert next_delay(policy, 1000, 0) == 1000
        assert next_delay(policy, 1000, 5) == 1000

    def test_no_delay_stays_none(self) -> None:
        policy = RetryPolicy(max_attempts=3)
        assert next_delay(policy, None, 0) is None

    def test_exponential_growth_is_capped(self) -> None:
        policy = _exponential()
        assert next_delay(policy, 1000, 0) == 3000
        assert next_delay(policy, 3000, 1) == 4000
        assert next_delay(policy, 4000, 2) == 4000


class TestDelaySchedule:
    def test_exponential_sequence_respects_cap(self) -> None:
        assert delay_schedule(_exponential(), 5) == [1000, 3000, 4000, 4000, 4000]

    def test_default_exponential_sequence(self) -> None:
        policy = RetryPolicy(max_attempts=4, backoff_policy=BackOffPolicy.EXPONENTIAL)
        assert delay_schedule(policy) == [1000, 2000, 2000, 2000]

    def test_fixed_sequence(self) -> None:
        policy = RetryPolicy(max_attempts=3, backoff=500)
        assert delay_schedule(policy) == [500, 500, 500]

    def test_no_backoff_has_empty_schedule(self) -> None:
        assert delay_schedule(RetryPolicy(max_attempts=3)) == []

    def test_jitter_does_not_change_schedule(self) -> None:
        policy = _exponential(jitter=JitterStrategy.FULL_JITTER)
        assert delay_schedule(policy, 3) == [1000, 3000, 4000]


class TestApplyJitter:
    def test_no_jitter_returns_base(self) -> None:
        assert apply_jitter(_exponential(), 3000) == 3000

    def test_full_jitter_uses_random_fraction(self) -> None:
        policy = _exponential(jitter="full")
        assert apply_jitter(policy, 2000, FixedRandom(0.25)) == 500

    def test_equal_jitter_keeps_half(self) -> None:
        policy = _exponential(jitter="equal")
        assert apply_jitter(policy, 2000, FixedRandom(0.0)) == 1000
        assert apply_jitter(policy, 2000, FixedRandom(0.5)) == 1500

    @pytest.mark.parametrize("base", [1.0, 1000.0, 4000.0])
    def test_full_jitter_bounds(self, base: float) -> None:
        policy = _exponential(jitter=JitterStrategy.FULL_JITTER)
        rng = random.Random(7)
        for _ in range(200):
            assert 0 <= apply_jitter(policy, base, rng) < base

    @pytest.mark.parametrize("base", [1.0, 1000.0, 4000.0])
    def test_equal_jitter_bounds(self, base: float) -> None:
        policy = _exponential(jitter=JitterStrategy.EQUAL_JITTER)
        rng = random.Random(11)
        for _ in range(200):
            assert base / 2 <= apply_jitter(policy, base, rng) < base

    def test_jitter_ignored_for_fixed_policy(self) -> None:
        policy = RetryPolicy(
            max_attempts=1, backoff=1000, exponential_option={"jitter": "full"}
        )
        assert apply_jitter(policy, 1000, FixedRandom(0.1)) == 1000
