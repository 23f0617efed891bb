"""Per-(event, user) serialisation of admission work.

Admission, aggregation and streak recompute for one participant form one
logical unit. Different pairs never wait on each other.
"""

import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncIterator

from loguru import logger

from src.core.lifespan import manager


class PairLockRegistry:
    """Hands out one asyncio lock per (event_id, user_id) pair.

    Locks are dropped once nobody holds or waits for them, so the registry
    does not grow with the number of participants ever seen.
    """

    def __init__(self):
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._waiters: defaultdict[tuple[str, str], int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, event_id: str, user_id: str) -> AsyncIterator[None]:
        key = (event_id, user_id)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                self._locks.pop(key, None)

    def __len__(self) -> int:
        return len(self._locks)


@manager.add
@asynccontextmanager
async def locks_lifespan() -> AsyncIterator[dict]:
    """Create the lock registry for the lifetime of the application."""
    logger.info("Initializing participant lock registry")
    yield {"pair_locks": PairLockRegistry()}
    logger.info("Participant lock registry released")
