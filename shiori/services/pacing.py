"""
Request pacing for polite crawling.

A minimum interval between consecutive requests, not a backoff: the wait is
the same whatever the previous outcome was.
"""

import asyncio
import time
from typing import Awaitable, Callable


class PacingPolicy:
    """Enforces a minimum interval between successive calls to wait()."""

    def __init__(
        self,
        min_interval: float,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        self.min_interval = min_interval
        self._sleep = sleep
        self._clock = clock
        self._last_request: float | None = None

    @classmethod
    def disabled(cls) -> "PacingPolicy":
        return cls(0.0)

    @property
    def enabled(self) -> bool:
        return self.min_interval > 0

    async def wait(self) -> float:
        """
        Sleep until the interval since the previous call has elapsed.

        Returns the number of seconds slept. The first call never sleeps.
        """
        slept = 0.0
        if self.enabled and self._last_request is not None:
            remaining = self.min_interval - (self._clock() - self._last_request)
            if remaining > 0:
                await self._sleep(remaining)
                slept = remaining
        self._last_request = self._clock()
        return slept

    def reset(self) -> None:
        self._last_request = None
