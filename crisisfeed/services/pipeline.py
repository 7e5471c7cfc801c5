"""LLM-backed structured-data pipeline.

prompt -> model -> sanitize -> parse/coerce -> cache, with the static
fallback taking over whenever any stage fails. ``run`` always returns data.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Optional

from crisisfeed.config import Settings
from crisisfeed.errors import CrisisFeedError, InvocationCause, MalformedResponse, ModelInvocationError
from crisisfeed.logger import get_logger, truncate
from crisisfeed.models.analysis import AnalysisKind, AnalysisRequest
from crisisfeed.models.crisis import CrisisData
from crisisfeed.models.financial import ProfitOpportunityAnalysis, TradingSignalAnalysis
from crisisfeed.services.cache import ResultCache
from crisisfeed.services.coercer import ParseFailed, SchemaCoercer
from crisisfeed.services.fallback import AnalysisResult, FallbackProvider
from crisisfeed.services.model_invoker import ModelInvoker
from crisisfeed.services.prompts import PromptBuilder
from crisisfeed.services.sanitizer import sanitize

logger = get_logger(__name__)

# Stage names reported to observers
STAGE_REQUESTING = "requesting"
STAGE_SANITIZING = "sanitizing"
STAGE_COERCING = "coercing"
STAGE_CACHED = "cached"
STAGE_JOINED = "joined"

SOURCE_LIVE = "live"
SOURCE_CACHE = "cache"
SOURCE_STALE = "stale"
SOURCE_FALLBACK = "fallback"

StageObserver = Callable[[str, dict[str, Any]], None]


@dataclass
class PipelineResult:
    """Data produced for a request and where it came from."""

    value: AnalysisResult
    source: str
    error: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.source == SOURCE_FALLBACK


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def failure_label(error: Exception) -> str:
    """Short classification of a failure, safe to expose."""
    if isinstance(error, ModelInvocationError):
        return f"model_{error.cause.value}"
    if isinstance(error, MalformedResponse):
        return "malformed_response"
    return "internal_error"


class AnalysisPipeline:
    """Runs analysis requests against one model backend."""

    def __init__(
        self,
        invoker: ModelInvoker,
        cache: ResultCache,
        ttls: dict[AnalysisKind, float],
        prompt_builder: Optional[PromptBuilder] = None,
        coercer: Optional[SchemaCoercer] = None,
        fallback: Optional[FallbackProvider] = None,
        preflight_health_check: bool = False,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.invoker = invoker
        self.cache = cache
        self.ttls = ttls
        self.prompts = prompt_builder or PromptBuilder()
        self.coercer = coercer or SchemaCoercer()
        self.fallback = fallback or FallbackProvider(self.coercer.validator)
        self.preflight_health_check = preflight_health_check
        self._now = now
        logger.info(f"AnalysisPipeline initialized (provider: {invoker.provider})")

    @classmethod
    def from_settings(cls, settings: Settings, invoker: ModelInvoker, cache: ResultCache) -> "AnalysisPipeline":
        ttls = {
            AnalysisKind.CRISIS: settings.crisis_cache_ttl,
            AnalysisKind.PROFIT_OPPORTUNITIES: settings.financial_cache_ttl,
            AnalysisKind.TRADING_SIGNALS: settings.financial_cache_ttl,
            AnalysisKind.COMPANY_IMPACT: settings.company_cache_ttl,
        }
        return cls(invoker, cache, ttls, preflight_health_check=settings.preflight_health_check)

    async def run(
        self,
        request: AnalysisRequest,
        force_refresh: bool = False,
        observer: Optional[StageObserver] = None,
    ) -> PipelineResult:
        """Produce data for ``request``: cached, live, stale or fallback."""
        observe = observer or (lambda stage, detail: None)
        today = self._now().date()
        # Built up front so an unsupported kind fails before any network call
        prompt = self.prompts.build(request, today)
        key = request.cache_key

        if key is not None:
            if force_refresh:
                self.cache.invalidate(key)
            entry = self.cache.get(key)
            if entry is not None:
                observe(STAGE_CACHED, {"key": key})
                return PipelineResult(entry.value, SOURCE_CACHE)

        try:
            if key is None:
                value = await self._produce(request, prompt, today, observe)
            else:
                # Stage events go to the caller that started production only
                if self.cache.is_inflight(key):
                    observe(STAGE_JOINED, {"key": key})
                value = await self.cache.get_or_produce(
                    key, lambda: self._produce(request, prompt, today, observe), self.ttls[request.kind]
                )
        except CrisisFeedError as e:
            # Provider messages may echo credentials; log the label only
            logger.warning(f"{request.kind.value} analysis failed: {failure_label(e)}")
            return self._recover(request, key, e)
        except Exception as e:
            logger.error(f"Unexpected error in {request.kind.value} analysis: {e}", exc_info=True)
            return self._recover(request, key, e)

        logger.info(f"{request.kind.value} analysis produced live data")
        return PipelineResult(value, SOURCE_LIVE)

    async def _produce(
        self, request: AnalysisRequest, prompt: str, today: date, observe: StageObserver
    ) -> AnalysisResult:
        if self.preflight_health_check and not await self.invoker.health_check():
            raise ModelInvocationError(InvocationCause.UNAVAILABLE, "backend health check failed")

        observe(STAGE_REQUESTING, {"provider": self.invoker.provider})
        raw = await self.invoker.invoke(prompt)

        observe(STAGE_SANITIZING, {"chars": len(raw)})
        text = sanitize(raw)

        observe(STAGE_COERCING, {})
        parsed = self.coercer.parse(text)
        if isinstance(parsed, ParseFailed):
            logger.warning(f"Malformed {request.kind.value} response: {parsed.reason}")
            logger.debug(f"Raw response: {truncate(raw)}")
            raise MalformedResponse(parsed.reason, parsed.excerpt)

        return self._coerce(request, parsed.payload, today)

    def _coerce(self, request: AnalysisRequest, payload: Any, today: date) -> AnalysisResult:
        now = self._now()
        if request.kind is AnalysisKind.CRISIS:
            events = self.coercer.coerce_events(payload, today)
            logger.info(f"Coerced {len(events)} crisis events")
            return CrisisData.from_events(events, now)
        if request.kind is AnalysisKind.PROFIT_OPPORTUNITIES:
            opportunities = self.coercer.coerce_opportunities(payload, request.events, now)
            logger.info(f"Coerced {len(opportunities)} profit opportunities")
            return ProfitOpportunityAnalysis(opportunities=opportunities, last_updated=now)
        if request.kind is AnalysisKind.TRADING_SIGNALS:
            signals = self.coercer.coerce_signals(payload, request.events, now)
            logger.info(f"Coerced {len(signals)} trading signals")
            return TradingSignalAnalysis(signals=signals, last_updated=now)
        if request.kind is AnalysisKind.COMPANY_IMPACT:
            return self.coercer.coerce_company_impact(payload, request.symbol)
        return self.coercer.coerce_updated_event(payload, int(request.event["id"]), today)

    def _recover(self, request: AnalysisRequest, key: Optional[str], error: Exception) -> PipelineResult:
        label = failure_label(error)
        stale = self.cache.peek(key) if key is not None else None
        if stale is not None:
            logger.info(f"Serving stale {request.kind.value} data after failure")
            return PipelineResult(stale.value, SOURCE_STALE, error=label)

        logger.info(f"Serving fallback {request.kind.value} data")
        return PipelineResult(self.fallback.for_request(request, self._now()), SOURCE_FALLBACK, error=label)
