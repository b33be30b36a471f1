"""Default suspension primitive used between attempts."""

from __future__ import annotations

import asyncio


async def sleep_ms(duration_ms: float) -> None:
    """Suspend the current task for *duration_ms* milliseconds."""
    await asyncio.sleep(max(duration_ms, 0) / 1000)
