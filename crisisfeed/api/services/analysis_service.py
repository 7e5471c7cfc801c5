"""Orchestrate analysis requests for the API."""

import asyncio
import time
from typing import Any, AsyncGenerator, Dict, Optional

from crisisfeed.config import Settings
from crisisfeed.errors import UnsupportedAnalysisKind
from crisisfeed.logger import get_logger
from crisisfeed.models.analysis import FINANCIAL_KINDS, AnalysisKind, AnalysisRequest
from crisisfeed.models.crisis import CrisisData
from crisisfeed.services.cache import ResultCache
from crisisfeed.services.model_invoker import ModelInvoker, create_invoker
from crisisfeed.services.pipeline import SOURCE_LIVE, AnalysisPipeline, PipelineResult

logger = get_logger(__name__)

CRISIS_KEY = AnalysisKind.CRISIS.value


class AnalysisService:
    """One long-lived pipeline, cache and model client per process."""

    def __init__(
        self,
        settings: Settings,
        invoker: Optional[ModelInvoker] = None,
        cache: Optional[ResultCache] = None,
    ):
        self.settings = settings
        self.invoker = invoker or create_invoker(settings)
        self.cache = cache or ResultCache()
        self.pipeline = AnalysisPipeline.from_settings(settings, self.invoker, self.cache)
        logger.info("AnalysisService initialized")

    async def analyze_crisis(self, force_refresh: bool = False) -> PipelineResult:
        start_time = time.time()
        result = await self.pipeline.run(AnalysisRequest(kind=AnalysisKind.CRISIS), force_refresh)
        logger.info(
            f"Crisis analysis finished in {time.time() - start_time:.2f}s "
            f"(source: {result.source})"
        )
        return result

    async def analyze_financial(self, events: list[dict[str, Any]], analysis_type: str) -> PipelineResult:
        """Run a profit-opportunity or trading-signal scan over ``events``."""
        kind = AnalysisKind.parse(analysis_type)
        if kind not in FINANCIAL_KINDS:
            raise UnsupportedAnalysisKind(analysis_type)

        logger.info(f"Financial analysis requested: {kind.value} over {len(events)} events")
        return await self.pipeline.run(AnalysisRequest(kind=kind, events=tuple(events)))

    async def analyze_company(self, symbol: str, event_context: str = "") -> PipelineResult:
        logger.info(f"Company impact requested for {symbol}")
        request = AnalysisRequest(
            kind=AnalysisKind.COMPANY_IMPACT, symbol=symbol.upper(), event_context=event_context
        )
        return await self.pipeline.run(request)

    async def refresh_event(self, event_id: int) -> Optional[PipelineResult]:
        """Re-generate one event of the cached crisis feed.

        Returns None when there is no cached feed or no event with that id.
        A live result replaces the cached event in place, unless the feed was
        regenerated meanwhile; a failed refresh leaves the feed untouched and
        returns the existing event.
        """
        entry = self.cache.peek(CRISIS_KEY)
        if entry is None:
            logger.info("Event refresh requested with no cached crisis feed")
            return None

        data: CrisisData = entry.value
        event = next((e for e in data.events if e.id == event_id), None)
        if event is None:
            logger.info(f"Event {event_id} not found in cached crisis feed")
            return None

        request = AnalysisRequest(
            kind=AnalysisKind.EVENT_UPDATE, event=event.model_dump(by_alias=True, mode="json")
        )
        result = await self.pipeline.run(request)

        if result.source != SOURCE_LIVE:
            return result

        # The feed may have been regenerated while the model call was running
        current = self.cache.peek(CRISIS_KEY)
        if current is not entry or not any(e.id == event_id for e in current.value.events):
            logger.info(f"Crisis feed changed during refresh of event {event_id}, not merging")
            return result

        latest: CrisisData = current.value
        events = [result.value if e.id == event_id else e for e in latest.events]
        self.cache.replace(CRISIS_KEY, CrisisData.from_events(events, latest.last_updated))
        logger.info(f"Event {event_id} refreshed")
        return result

    async def analyze_crisis_stream(self, force_refresh: bool = False) -> AsyncGenerator[Dict[str, Any], None]:
        """Run a crisis scan, yielding one event per pipeline stage."""
        start_time = time.time()
        logger.info("Starting streaming crisis analysis")

        yield {"type": "started", "data": {"kind": CRISIS_KEY, "refresh": force_refresh}}

        queue: asyncio.Queue = asyncio.Queue()

        async def run() -> PipelineResult:
            try:
                return await self.pipeline.run(
                    AnalysisRequest(kind=AnalysisKind.CRISIS),
                    force_refresh,
                    observer=lambda stage, detail: queue.put_nowait((stage, detail)),
                )
            finally:
                queue.put_nowait(None)

        task = asyncio.ensure_future(run())
        while True:
            item = await queue.get()
            if item is None:
                break
            stage, detail = item
            yield {"type": stage, "data": detail}

        result = await task
        payload = result.value.model_dump(by_alias=True, mode="json")
        execution_time = time.time() - start_time
        logger.info(f"Streaming crisis analysis complete in {execution_time:.2f}s (source: {result.source})")

        if result.is_fallback:
            yield {
                "type": "fallback",
                "data": {"error": "Analysis temporarily unavailable", "fallback": payload},
            }
        else:
            yield {
                "type": "complete",
                "data": {
                    "source": result.source,
                    "result": payload,
                    "execution_time_seconds": execution_time,
                },
            }

    async def close(self):
        """Clean up resources."""
        try:
            await self.invoker.aclose()
            logger.info("AnalysisService resources closed")
        except Exception as e:
            logger.warning(f"Error closing AnalysisService resources: {e}")
