"""Shared test fixtures."""

from __future__ import annotations

import pytest

from retryable.core.engine import RetryEngine
from retryable.core.events import EventBus
from tests.helpers import RecordingLog, RecordingSleep


@pytest.fixture()
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def log() -> RecordingLog:
    return RecordingLog()


@pytest.fixture()
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def engine(sleep: RecordingSleep, log: RecordingLog) -> RetryEngine:
    return RetryEngine(sleep=sleep, log=log)
