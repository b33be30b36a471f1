"""Example: declaring retry policies in YAML.

This example demonstrates:
- Registering predicates and error types referenced by name
- Validating a policy document before loading it
- Printing the delay schedule a policy would produce
- Running work under a named policy
"""

import asyncio

import yaml

from retryable.core.backoff import delay_schedule
from retryable.core.engine import retry_async
from retryable.dsl import PolicyParser
from retryable.observability.logging import configure_logging, get_logger

configure_logging(log_level="INFO", json_format=False)
logger = get_logger(__name__)

POLICIES = """
policies:
  - name: payments
    max_attempts: 4
    backoff_policy: exponential
    backoff: 100
    exponential:
      max_interval: 800
      multiplier: 2
      jitter: equal
    retryable_errors: [GatewayTimeout, ConnectionError]
    retry_if: not_declined
"""


class GatewayTimeout(Exception):
    pass


attempts = 0


async def charge(order_id: str, amount: int) -> str:
    global attempts
    attempts += 1
    if attempts < 3:
        raise GatewayTimeout(f"gateway timed out charging {order_id}")
    return f"charged {amount} for {order_id}"


async def main() -> None:
    parser = PolicyParser()
    parser.register_error(GatewayTimeout)
    parser.register_predicate("not_declined", lambda e: "declined" not in str(e))

    errors = parser.validate(yaml.safe_load(POLICIES))
    if errors:
        for error in errors:
            logger.error("Invalid policy: %s", error)
        return

    policies = parser.parse_yaml(POLICIES)
    payments = policies["payments"]
    logger.info("payments schedule (ms, before jitter): %s", delay_schedule(payments))

    result = await retry_async(charge, payments, "order-17", 2500)
    logger.info("%s after %d attempts", result, attempts)


if __name__ == "__main__":
    asyncio.run(main())
