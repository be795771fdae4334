import asyncio
import time
from typing import Awaitable, Callable, Optional


class FixedIntervalGate:
    """
    Spaces calls at least `interval` seconds apart.

    The first `acquire()` passes immediately; every later one sleeps for
    whatever is left of the interval since the previous caller went through.
    `clock` and `sleep` are injectable so tests run without real delays.
    """

    def __init__(
        self,
        interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if interval < 0:
            raise ValueError("interval must be >= 0")
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._last: Optional[float] = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> float:
        """Waits for the gate. Returns the number of seconds slept."""
        async with self._lock:
            waited = 0.0
            if self._last is not None:
                remaining = self._last + self.interval - self._clock()
                if remaining > 0:
                    await self._sleep(remaining)
                    waited = remaining
            self._last = self._clock()
            return waited
