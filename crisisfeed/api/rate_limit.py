"""Per-client request limiting for the API routes."""

import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Callable

from fastapi import HTTPException, Request

from crisisfeed.logger import get_logger

logger = get_logger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


@dataclass
class RateLimitResult:
    """Result of rate limit check."""

    allowed: bool
    remaining: int
    reset_at: float
    limit: int
    retry_after: float = 0.0


class RateLimiter:
    """
    Sliding window log rate limiter held in process memory.

    Each identifier keeps the timestamps of its accepted requests; entries
    older than the window are dropped before counting.
    """

    def __init__(self, limit: int, window: float, clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.window = window
        self._clock = clock
        self._hits: dict[str, deque[float]] = defaultdict(deque)
        self._last_sweep = clock()

    def __len__(self) -> int:
        """Number of clients currently tracked."""
        return len(self._hits)

    def check(self, identifier: str) -> RateLimitResult:
        """Record a request for ``identifier`` if it fits in the window."""
        now = self._clock()
        if now - self._last_sweep >= self.window:
            self._sweep(now)
        hits = self._hits[identifier]
        while hits and hits[0] <= now - self.window:
            hits.popleft()

        if len(hits) < self.limit:
            hits.append(now)
            return RateLimitResult(
                allowed=True,
                remaining=self.limit - len(hits),
                reset_at=hits[0] + self.window,
                limit=self.limit,
            )

        reset_at = hits[0] + self.window
        return RateLimitResult(
            allowed=False, remaining=0, reset_at=reset_at, limit=self.limit, retry_after=reset_at - now
        )

    def reset(self) -> None:
        self._hits.clear()

    def _sweep(self, now: float) -> None:
        """Forget clients with no request inside the window."""
        idle = [key for key, hits in self._hits.items() if not hits or hits[-1] <= now - self.window]
        for key in idle:
            del self._hits[key]
        self._last_sweep = now
        if idle:
            logger.debug(f"Rate limiter dropped {len(idle)} idle clients, tracking {len(self._hits)}")


async def enforce_rate_limit(request: Request) -> None:
    """Route dependency rejecting clients over their quota."""
    limiter: RateLimiter = request.app.state.rate_limiter
    identifier = request.client.host if request.client else "unknown"
    result = limiter.check(identifier)
    if not result.allowed:
        logger.warning(f"Rate limit exceeded for {identifier} on {request.url.path}")
        raise HTTPException(
            status_code=429,
            detail=RATE_LIMIT_MESSAGE,
            headers={"Retry-After": str(max(1, int(result.retry_after)))},
        )
