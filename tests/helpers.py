"""Test doubles for the engine's collaborators."""

from __future__ import annotations


class RecordingSleep:
    """Sleep collaborator that records requested delays and returns at once."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, duration_ms: float) -> None:
        self.calls.append(duration_ms)


class RecordingLog:
    def __init__(self) -> None:
        self.messages: list[str] = []

    def __call__(self, message: str) -> None:
        self.messages.append(message)


class FixedRandom:
    """Random source returning a fixed value in ``[0, 1)``."""

    def __init__(self, value: float) -> None:
        self.value = value

    def random(self) -> float:
        return self.value


class Flaky:
    """Async work that raises the queued errors in order, then returns *result*."""

    def __init__(self, *errors: BaseException, result: object = "ok") -> None:
        self.errors = list(errors)
        self.result = result
        self.calls: list[tuple[tuple[object, ...], dict[str, object]]] = []

    async def __call__(self, *args: object, **kwargs: object) -> object:
        self.calls.append((args, kwargs))
        if self.errors:
            raise self.errors.pop(0)
        return self.result


class AlwaysFails:
    """Async work that raises a fresh error built by *factory* on every call."""

    def __init__(self, factory: type[BaseException] = RuntimeError, message: str = "boom") -> None:
        self.factory = factory
        self.message = message
        self.calls = 0
        self.raised: list[BaseException] = []

    async def __call__(self, *args: object, **kwargs: object) -> None:
        self.calls += 1
        error = self.factory(self.message)
        self.raised.append(error)
        raise error
