"""
Single shared limiter in front of the snapshot provider.

Every provider call, whichever task issues it, enters the limiter. Calls are
serialized and spaced at least ``min_interval`` seconds apart, so a manual
trigger running next to the recurring cycle cannot push the combined request
rate over the provider's ceiling.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Awaitable

logger = logging.getLogger(__name__)


class ProviderRateLimiter:
    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.min_interval = max(0.0, min_interval)
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_call: float | None = None
        self.calls = 0

    async def __aenter__(self) -> "ProviderRateLimiter":
        await self._lock.acquire()
        try:
            if self._last_call is not None:
                wait = self._last_call + self.min_interval - self._clock()
                if wait > 0:
                    logger.debug(f"Provider limiter waiting {wait:.2f}s")
                    await self._sleep(wait)
        except BaseException:
            self._lock.release()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        # Spacing is measured from the end of the previous call, backoff included
        self._last_call = self._clock()
        self.calls += 1
        self._lock.release()

    @property
    def busy(self) -> bool:
        return self._lock.locked()
