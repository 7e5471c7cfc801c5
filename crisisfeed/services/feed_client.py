"""Client for a running crisisfeed server."""

import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import httpx

from crisisfeed.logger import get_logger
from crisisfeed.models.crisis import CrisisData
from crisisfeed.services.fallback import FallbackProvider

logger = get_logger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000"
CLIENT_CACHE_TTL = 30 * 60


class CrisisFeedClient:
    """Fetches the crisis feed over HTTP and always returns data.

    The server is probed with ``GET /health`` before every live fetch. An
    unreachable server, a transport error or an unreadable body is answered
    with the last good feed held locally, else with local fallback data.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60.0,
        health_check_timeout: float = 5.0,
        cache_ttl: float = CLIENT_CACHE_TTL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
        fallback: Optional[FallbackProvider] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.health_check_timeout = health_check_timeout
        self.cache_ttl = cache_ttl
        self.fallback = fallback or FallbackProvider()
        self._clock = clock
        self._cache: Optional[CrisisData] = None
        self._fetched_at: Optional[float] = None
        self.client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)
        logger.info(f"CrisisFeedClient initialized for {self.base_url}")

    async def health(self) -> Optional[dict[str, Any]]:
        """Return the server's health body, or None when it does not answer OK."""
        try:
            response = await self.client.get("/health", timeout=self.health_check_timeout)
        except httpx.HTTPError as e:
            logger.warning(f"Health check against {self.base_url} failed: {type(e).__name__}")
            return None
        if not response.is_success:
            logger.warning(f"Health check returned {response.status_code}")
            return None
        try:
            return response.json()
        except ValueError:
            return None

    async def check_health(self) -> bool:
        return await self.health() is not None

    async def get_crisis_data(self, force_refresh: bool = False) -> CrisisData:
        if not force_refresh and self._cache_is_fresh():
            logger.info("Returning locally cached crisis data")
            return self._cache

        if not await self.check_health():
            logger.warning("Server not reachable")
            if self._cache is not None:
                return self._cache
            return self._local_fallback()

        try:
            response = await self.client.post(
                "/api/analyze-crisis", params={"refresh": "true"} if force_refresh else None
            )
            payload = response.json()
            if response.status_code == 500 and isinstance(payload, dict) and "fallback" in payload:
                logger.warning(f"Server answered with fallback data: {payload.get('error')}")
                if self._cache is not None:
                    return self._cache
                return CrisisData.model_validate(payload["fallback"])

            response.raise_for_status()
            data = CrisisData.model_validate(payload)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Crisis feed request failed: {type(e).__name__}: {e}")
            if self._cache is not None:
                logger.info("Returning cached data due to API error")
                return self._cache
            return self._local_fallback()

        self._cache = data
        self._fetched_at = self._clock()
        logger.info(f"Loaded {data.total_events} crisis events from {self.base_url}")
        return data

    def _cache_is_fresh(self) -> bool:
        if self._cache is None or self._fetched_at is None:
            return False
        return self._clock() - self._fetched_at < self.cache_ttl

    def _local_fallback(self) -> CrisisData:
        return self.fallback.crisis_data(datetime.now(timezone.utc))

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()
        logger.debug("CrisisFeedClient closed")
