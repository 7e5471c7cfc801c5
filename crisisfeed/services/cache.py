"""In-memory TTL cache with request coalescing."""

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from crisisfeed.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """A produced result and when it was produced."""

    value: T
    created_at: float
    ttl: float

    def is_servable(self, now: float) -> bool:
        return now - self.created_at < self.ttl

    def age(self, now: float) -> float:
        return now - self.created_at


class ResultCache:
    """Keyed result cache with per-entry TTL.

    At most one production per key runs at a time: callers arriving while a
    production is in flight await the same task and receive the same value.
    Entries are evicted by age only; the key space is one key per analysis
    kind, so there is no capacity bound.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._inflight: dict[str, asyncio.Task] = {}
        logger.debug("ResultCache initialized")

    def get(self, key: str) -> Optional[CacheEntry[Any]]:
        """Return the entry for ``key`` if it is still servable."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        now = self._clock()
        if not entry.is_servable(now):
            logger.debug(f"Cache expired: {key} (age {entry.age(now):.0f}s)")
            return None
        logger.info(f"Cache hit: {key} (cached {entry.age(now) / 60:.1f} min ago)")
        return entry

    def peek(self, key: str) -> Optional[CacheEntry[Any]]:
        """Return the entry for ``key`` regardless of age."""
        return self._entries.get(key)

    def put(self, key: str, value: Any, ttl: float) -> CacheEntry[Any]:
        entry = CacheEntry(value=value, created_at=self._clock(), ttl=ttl)
        self._entries[key] = entry
        logger.debug(f"Cache store: {key} (ttl {ttl:.0f}s)")
        return entry

    def replace(self, key: str, value: Any) -> None:
        """Swap the value of an existing entry without resetting its age."""
        entry = self._entries.get(key)
        if entry is not None:
            entry.value = value

    def invalidate(self, key: str) -> None:
        if self._entries.pop(key, None) is not None:
            logger.info(f"Cache invalidated: {key}")

    def clear(self) -> None:
        self._entries.clear()
        logger.info("Cache cleared")

    def is_inflight(self, key: str) -> bool:
        return key in self._inflight

    async def get_or_produce(self, key: str, producer: Callable[[], Awaitable[T]], ttl: float) -> T:
        """Serve ``key`` from cache or run ``producer`` once for all waiters.

        A successful result is stored under ``key``; an exception reaches
        every waiter and nothing is stored.
        """
        entry = self.get(key)
        if entry is not None:
            return entry.value

        task = self._inflight.get(key)
        if task is None:
            logger.info(f"Cache miss: {key}, starting production")
            task = asyncio.ensure_future(self._produce(key, producer, ttl))
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._finish(key, t))
        else:
            logger.info(f"Joining in-flight production for {key}")

        # Shielded so one abandoned caller does not cancel the shared work
        return await asyncio.shield(task)

    async def _produce(self, key: str, producer: Callable[[], Awaitable[T]], ttl: float) -> T:
        value = await producer()
        self.put(key, value, ttl)
        return value

    def _finish(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"Production for {key} failed: {type(task.exception()).__name__}")
