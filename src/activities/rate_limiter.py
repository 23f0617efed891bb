"""Sliding-window rate limiter for activity ingestion."""

import logging
import time
from collections import defaultdict, deque
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from src.activities.schemas import RateLimitStatus
from src.config import get_settings
from src.core.lifespan import manager

logger = logging.getLogger(__name__)


class IngestionRateLimiter:
    """Limits how many activities one user can push per window.

    One instance is created per application (see ``rate_limiter_lifespan``)
    and injected where needed; counters live on the instance only.
    """

    def __init__(
        self,
        max_requests: int = 90,
        window_seconds: int = 900,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize rate limiter.

        Parameters
        ----------
        max_requests : int
            Requests allowed per key within the window
        window_seconds : int
            Length of the sliding window in seconds
        clock : Callable[[], float]
            Time source, injectable for tests
        """
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._requests: defaultdict[str, deque[float]] = defaultdict(deque)

    def _count(self, key: str) -> int:
        """Requests of ``key`` still inside the window; idle keys are dropped."""
        timestamps = self._requests.get(key)
        if timestamps is None:
            return 0

        now = self._clock()
        while timestamps and now - timestamps[0] >= self.window_seconds:
            timestamps.popleft()
        if not timestamps:
            del self._requests[key]
        return len(timestamps)

    def can_make_request(self, key: str) -> bool:
        return self._count(key) < self.max_requests

    def record_request(self, key: str) -> None:
        self._requests[key].append(self._clock())

    def allow(self, key: str) -> bool:
        """Check and record in one step. False means the caller is throttled."""
        if not self.can_make_request(key):
            logger.warning(
                f"Ingestion rate limit exceeded for {key}: "
                f"{self.max_requests}/{self.window_seconds}s"
            )
            return False
        self.record_request(key)
        return True

    def usage(self, key: str) -> RateLimitStatus:
        used = self._count(key)
        return RateLimitStatus(
            used=used,
            limit=self.max_requests,
            window_seconds=self.window_seconds,
            percentage=round(used / self.max_requests * 100, 2),
        )


@manager.add
@asynccontextmanager
async def rate_limiter_lifespan() -> AsyncIterator[dict]:
    settings = get_settings()
    limiter = IngestionRateLimiter(
        max_requests=settings.INGEST_RATE_LIMIT,
        window_seconds=settings.INGEST_RATE_WINDOW_SECONDS,
    )
    yield {"ingest_rate_limiter": limiter}
