"""
Rate-limited fan-out for calls against the judge API
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Sequence

logger = logging.getLogger(__name__)


class RateLimitedRunner:
    """
    Runs an async function over items in waves.

    At most batch_size calls are in flight at once, and the runner waits
    delay_seconds between waves (not after the last one). Results come back
    in input order; an exception raised for one item is returned in its slot
    instead of being raised.
    """

    def __init__(
        self,
        batch_size: int,
        delay_seconds: float,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if delay_seconds < 0:
            raise ValueError("delay_seconds cannot be negative")
        self.batch_size = batch_size
        self.delay_seconds = delay_seconds
        self._sleep = sleep

    async def run(self, func: Callable[[Any], Awaitable[Any]], items: Sequence[Any]) -> List[Any]:
        items = list(items)
        results: List[Any] = []

        for start in range(0, len(items), self.batch_size):
            if start and self.delay_seconds:
                await self._sleep(self.delay_seconds)

            wave = items[start:start + self.batch_size]
            logger.debug("Running wave of %d (%d/%d)", len(wave), start + len(wave), len(items))
            results.extend(
                await asyncio.gather(*(func(item) for item in wave), return_exceptions=True)
            )

        return results
