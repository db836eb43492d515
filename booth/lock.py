from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class LocationLocks:
    """Per-location mutual exclusion for the event loop.

    One `asyncio.Lock` per key, created on demand and dropped once nobody holds
    or waits on it.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @staticmethod
    def key_for(location_id: str) -> str:
        return f"lock:location:{location_id}"

    @asynccontextmanager
    async def hold(self, location_id: str) -> AsyncIterator[None]:
        key = self.key_for(location_id)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                self._users.pop(key, None)
                self._locks.pop(key, None)

    def __len__(self) -> int:
        return len(self._locks)
