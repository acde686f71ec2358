"""Per-host spacing of requests."""

import asyncio
import time
from typing import Dict


class RequestThrottle:
    """Keeps requests to the same host at least `delay_ms` apart.

    Hosts are independent: waiting on one never delays another. The lock
    only guards slot reservation; the sleep happens outside it.
    """

    def __init__(self, delay_ms: int):
        self.delay = delay_ms / 1000
        self._next_slot: Dict[str, float] = {}
        self._lock = asyncio.Lock()
        self._total_wait_time = 0.0

    async def wait(self, host: str) -> float:
        """Wait for this host's next request slot.

        Returns:
            Time waited (seconds)
        """
        if self.delay <= 0:
            return 0.0

        async with self._lock:
            now = time.monotonic()
            slot = max(now, self._next_slot.get(host, now))
            self._next_slot[host] = slot + self.delay
            wait_time = slot - now

        if wait_time > 0:
            await asyncio.sleep(wait_time)
            self._total_wait_time += wait_time
        return wait_time

    @property
    def total_wait_time(self) -> float:
        return self._total_wait_time
