from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class HostLockRegistry:
    """Process-wide registry of per-host booking locks.

    One instance lives on the application state for the lifetime of the
    server; every write that pairs slot validation with meeting creation
    for a host runs inside ``hold(host_id)``.
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}

    def lock_for(self, host_id: str) -> asyncio.Lock:
        lock = self._locks.get(host_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[host_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, host_id: str) -> AsyncIterator[None]:
        lock = self.lock_for(host_id)
        async with lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)

    def clear(self) -> None:
        """Drop idle locks (called on shutdown)."""
        self._locks = {k: v for k, v in self._locks.items() if v.locked()}
