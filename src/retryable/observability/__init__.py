"""Prometheus-format metrics for retry series.

Metrics exposed:
- retryable_attempts_failed_total: Failed attempts by operation
- retryable_series_total: Finished series by operation and outcome
- retryable_backoff_delay_ms: Histogram of waits before retries

Usage:
    from retryable.observability import RetryMetrics

    bus = EventBus()
    metrics = RetryMetrics()
    metrics.attach(bus)
    engine = RetryEngine(event_bus=bus)

    # Expose wherever your application serves metrics
    body = metrics.export()
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

from retryable.core.events import RetryEventType

if TYPE_CHECKING:
    from retryable.core.events import EventBus, RetryEvent

_OUTCOME_EVENTS = {
    RetryEventType.SUCCEEDED: "succeeded",
    RetryEventType.EXHAUSTED: "exhausted",
    RetryEventType.REJECTED: "rejected",
}


class RetryMetrics:
    """Collects retry counters and backoff histograms from an :class:`EventBus`."""

    def __init__(self) -> None:
        self._failed_attempts: dict[str, int] = defaultdict(int)
        self._series_total: dict[tuple[str, str], int] = defaultdict(int)
        self._delay_buckets = [10.0, 50.0, 100.0, 500.0, 1000.0, 5000.0, 30000.0]
        self._delay_observations: dict[str, list[float]] = defaultdict(list)

    def attach(self, bus: EventBus) -> None:
        """Subscribe to every retry lifecycle event on *bus*."""
        bus.subscribe_all(self.record)

    async def record(self, event: RetryEvent) -> None:
        """Fold one event into the counters."""
        operation = str(event.payload.get("operation", "unknown"))
        if event.event_type is RetryEventType.ATTEMPT_FAILED:
            self._failed_attempts[operation] += 1
        elif event.event_type is RetryEventType.RETRY_SCHEDULED:
            self._delay_observations[operation].append(float(event.payload.get("delay_ms", 0)))
        else:
            self._series_total[(operation, _OUTCOME_EVENTS[event.event_type])] += 1

    def failed_attempts(self, operation: str) -> int:
        return self._failed_attempts.get(operation, 0)

    def series_total(self, operation: str, outcome: str) -> int:
        return self._series_total.get((operation, outcome), 0)

    def export(self) -> str:
        """Export metrics in Prometheus text format."""
        lines = [
            "# HELP retryable_attempts_failed_total Failed attempts by operation",
            "# TYPE retryable_attempts_failed_total counter",
        ]
        for operation, count in sorted(self._failed_attempts.items()):
            lines.append(f'retryable_attempts_failed_total{{operation="{operation}"}} {count}')

        lines.extend(
            [
                "",
                "# HELP retryable_series_total Finished retry series by outcome",
                "# TYPE retryable_series_total counter",
            ]
        )
        for (operation, outcome), count in sorted(self._series_total.items()):
            lines.append(
                f'retryable_series_total{{operation="{operation}",outcome="{outcome}"}} {count}'
            )

        lines.extend(
            [
                "",
                "# HELP retryable_backoff_delay_ms Delay waited before a retry in milliseconds",
                "# TYPE retryable_backoff_delay_ms histogram",
            ]
        )
        for operation, observations in sorted(self._delay_observations.items()):
            if not observations:
                continue
            for bucket in self._delay_buckets:
                cumulative = sum(1 for obs in observations if obs <= bucket)
                lines.append(
                    f'retryable_backoff_delay_ms_bucket{{operation="{operation}",le="{bucket}"}} '
                    f"{cumulative}"
                )
            lines.append(
                f'retryable_backoff_delay_ms_bucket{{operation="{operation}",le="+Inf"}} '
                f"{len(observations)}"
            )
            lines.append(
                f'retryable_backoff_delay_ms_sum{{operation="{operation}"}} {sum(observations):.4f}'
            )
            lines.append(
                f'retryable_backoff_delay_ms_count{{operation="{operation}"}} {len(observations)}'
            )

        return "\n".join(lines) + "\n"
