"""Example: retrying a flaky async method.

Demonstrates the decorator API, fixed backoff, and what a caller sees
once the retry budget runs out.
"""

import asyncio
import logging

from retryable.core.errors import MaxAttemptsError
from retryable.decorators import retryable

logging.basicConfig(level=logging.INFO, format="%(asctime)s  %(message)s")
log = logging.getLogger(__name__)


class InventoryClient:
    def __init__(self) -> None:
        self.calls = 0

    @retryable(max_attempts=3, backoff=1000)
    async def reserve(self, sku: str) -> str:
        self.calls += 1
        log.info("Calling reserve(%s) for the %d time", sku, self.calls)
        raise ConnectionError("inventory service unavailable")


async def main() -> None:
    client = InventoryClient()
    try:
        await client.reserve("SKU-42")
    except MaxAttemptsError as exc:
        log.info("All retries done as expected, final message: '%s'", exc)


if __name__ == "__main__":
    asyncio.run(main())
