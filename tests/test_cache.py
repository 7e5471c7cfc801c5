"""Tests for the TTL result cache and request coalescing."""

import asyncio

import pytest

from crisisfeed.services.cache import CacheEntry, ResultCache

TTL = 30 * 60


class TestCacheEntry:
    """Tests for entry servability."""

    def test_servable_just_before_expiry(self):
        entry = CacheEntry(value="v", created_at=100.0, ttl=TTL)
        assert entry.is_servable(100.0 + TTL - 0.001)

    def test_not_servable_just_after_expiry(self):
        entry = CacheEntry(value="v", created_at=100.0, ttl=TTL)
        assert not entry.is_servable(100.0 + TTL + 0.001)

    def test_not_servable_at_exact_expiry(self):
        entry = CacheEntry(value="v", created_at=100.0, ttl=TTL)
        assert not entry.is_servable(100.0 + TTL)


class TestResultCache:
    """Tests for get/put/invalidate."""

    def test_get_missing(self, clock):
        assert ResultCache(clock=clock).get("crisis") is None

    def test_ttl_boundaries(self, clock):
        cache = ResultCache(clock=clock)
        cache.put("crisis", "data", TTL)

        clock.advance(TTL - 0.001)
        assert cache.get("crisis").value == "data"

        clock.advance(0.002)
        assert cache.get("crisis") is None
        # Expired entries stay available for stale serving
        assert cache.peek("crisis").value == "data"

    def test_invalidate(self, clock):
        cache = ResultCache(clock=clock)
        cache.put("crisis", "data", TTL)
        cache.invalidate("crisis")
        assert cache.get("crisis") is None
        assert cache.peek("crisis") is None
        cache.invalidate("crisis")

    def test_replace_keeps_age(self, clock):
        cache = ResultCache(clock=clock)
        cache.put("crisis", "old", TTL)
        clock.advance(TTL - 1)
        cache.replace("crisis", "new")
        assert cache.get("crisis").value == "new"
        clock.advance(2)
        assert cache.get("crisis") is None

    def test_replace_missing_is_noop(self, clock):
        cache = ResultCache(clock=clock)
        cache.replace("crisis", "new")
        assert cache.peek("crisis") is None

    def test_clear(self, clock):
        cache = ResultCache(clock=clock)
        cache.put("a", 1, TTL)
        cache.put("b", 2, TTL)
        cache.clear()
        assert cache.peek("a") is None
        assert cache.peek("b") is None


class TestGetOrProduce:
    """Tests for coalesced production."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_production(self, clock):
        cache = ResultCache(clock=clock)
        calls = 0

        async def producer():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return {"events": [calls]}

        results = await asyncio.gather(*(cache.get_or_produce("crisis", producer, TTL) for _ in range(10)))

        assert calls == 1
        assert all(r is results[0] for r in results)
        assert not cache.is_inflight("crisis")

    @pytest.mark.asyncio
    async def test_cached_value_skips_producer(self, clock):
        cache = ResultCache(clock=clock)
        cache.put("crisis", "cached", TTL)

        async def producer():
            raise AssertionError("producer should not run")

        assert await cache.get_or_produce("crisis", producer, TTL) == "cached"

    @pytest.mark.asyncio
    async def test_expired_value_triggers_production(self, clock):
        cache = ResultCache(clock=clock)
        cache.put("crisis", "old", TTL)
        clock.advance(TTL + 0.001)

        async def producer():
            return "new"

        assert await cache.get_or_produce("crisis", producer, TTL) == "new"
        assert cache.get("crisis").value == "new"

    @pytest.mark.asyncio
    async def test_failure_reaches_every_waiter_and_stores_nothing(self, clock):
        cache = ResultCache(clock=clock)
        calls = 0

        async def producer():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            raise RuntimeError("boom")

        results = await asyncio.gather(
            *(cache.get_or_produce("crisis", producer, TTL) for _ in range(3)), return_exceptions=True
        )

        assert calls == 1
        assert all(isinstance(r, RuntimeError) for r in results)
        assert cache.peek("crisis") is None
        assert not cache.is_inflight("crisis")

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, clock):
        cache = ResultCache(clock=clock)

        async def make(value):
            await asyncio.sleep(0.01)
            return value

        a, b = await asyncio.gather(
            cache.get_or_produce("a", lambda: make("A"), TTL),
            cache.get_or_produce("b", lambda: make("B"), TTL),
        )
        assert (a, b) == ("A", "B")

    @pytest.mark.asyncio
    async def test_abandoned_caller_does_not_cancel_production(self, clock):
        cache = ResultCache(clock=clock)
        finished = asyncio.Event()

        async def producer():
            await asyncio.sleep(0.02)
            finished.set()
            return "done"

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(cache.get_or_produce("crisis", producer, TTL), timeout=0.001)

        await asyncio.wait_for(finished.wait(), timeout=1)
        await asyncio.sleep(0)
        assert cache.get("crisis").value == "done"
