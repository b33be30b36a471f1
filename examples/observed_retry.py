"""Example: observing retries through events, metrics and JSON logs."""

import asyncio
import random

from retryable.core.engine import RetryEngine
from retryable.core.events import EventBus, RetryEvent
from retryable.core.models import BackOffPolicy, JitterStrategy, RetryPolicy
from retryable.observability import RetryMetrics
from retryable.observability.logging import RetryLogContext, configure_logging, get_logger

configure_logging(log_level="INFO", json_format=True)
log = get_logger(__name__)


async def on_event(event: RetryEvent) -> None:
    log.info("event %s", event.event_type.value, extra={"payload": event.payload})


async def fetch_quote(symbol: str) -> float:
    if random.random() < 0.6:
        raise TimeoutError(f"quote feed timed out for {symbol}")
    return round(random.uniform(90, 110), 2)


async def main() -> None:
    bus = EventBus()
    bus.subscribe_all(on_event)
    metrics = RetryMetrics()
    metrics.attach(bus)

    engine = RetryEngine(event_bus=bus)
    policy = RetryPolicy(
        max_attempts=5,
        backoff_policy=BackOffPolicy.EXPONENTIAL,
        backoff=50,
        exponential_option={"max_interval": 400, "jitter": JitterStrategy.FULL_JITTER},
        retryable_errors={TimeoutError},
    )

    with RetryLogContext(service="quotes"):
        results = await asyncio.gather(
            *(engine.run(fetch_quote, policy, s) for s in ("ACME", "INIT", "GLOBX")),
            return_exceptions=True,
        )

    for symbol, result in zip(("ACME", "INIT", "GLOBX"), results, strict=True):
        log.info("%s -> %s", symbol, result)
    print(metrics.export())


if __name__ == "__main__":
    asyncio.run(main())
