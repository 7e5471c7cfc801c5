"""Tests for the end-to-end analysis pipeline."""

import asyncio
from datetime import datetime, timezone

import pytest

from crisisfeed.errors import InvocationCause, ModelInvocationError
from crisisfeed.models.analysis import AnalysisKind, AnalysisRequest
from crisisfeed.models.crisis import CompanyImpact, CrisisData, CrisisEvent
from crisisfeed.models.financial import ProfitOpportunityAnalysis, TradingSignalAnalysis
from crisisfeed.services.cache import ResultCache
from crisisfeed.services.fallback import FallbackProvider
from crisisfeed.services.pipeline import AnalysisPipeline

NOW = datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc)
CRISIS_TTL = 30 * 60
TTLS = {
    AnalysisKind.CRISIS: CRISIS_TTL,
    AnalysisKind.PROFIT_OPPORTUNITIES: 300,
    AnalysisKind.TRADING_SIGNALS: 300,
    AnalysisKind.COMPANY_IMPACT: 300,
}
CRISIS = AnalysisRequest(kind=AnalysisKind.CRISIS)


@pytest.fixture
def make_pipeline(make_invoker, clock):
    def factory(*outputs, preflight: bool = False, delay: float = 0.0) -> AnalysisPipeline:
        invoker = make_invoker(outputs, delay=delay)
        return AnalysisPipeline(
            invoker, ResultCache(clock=clock), TTLS, preflight_health_check=preflight, now=lambda: NOW
        )

    return factory


def fallback_crisis() -> CrisisData:
    return FallbackProvider().crisis_data(NOW)


class TestCrisisPipeline:
    """Tests for crisis scans."""

    @pytest.mark.asyncio
    async def test_live_result(self, make_pipeline, crisis_text):
        pipeline = make_pipeline(crisis_text)

        result = await pipeline.run(CRISIS)

        assert result.source == "live"
        assert result.error is None
        assert isinstance(result.value, CrisisData)
        assert result.value.total_events == 2
        assert result.value.high_risk_events == 1
        assert result.value.last_updated == NOW
        assert pipeline.invoker.calls == 1
        assert "2026-10-16" in pipeline.invoker.prompts[0]

    @pytest.mark.asyncio
    async def test_minimal_fenced_event(self, make_pipeline):
        pipeline = make_pipeline('```json\n{"events":[{"title":"X"}]}\n```')

        result = await pipeline.run(CRISIS)

        event = result.value.events[0]
        assert result.source == "live"
        assert event.id == 1
        assert event.title == "X"
        assert event.date == "2026-10-16"
        assert event.market_impact == 0
        assert event.companies == []

    @pytest.mark.asyncio
    async def test_unauthorized_falls_back(self, make_pipeline):
        pipeline = make_pipeline(ModelInvocationError(InvocationCause.UNAUTHORIZED, "bad key sk-ant-123"))

        result = await pipeline.run(CRISIS)

        assert result.source == "fallback"
        assert result.is_fallback
        assert result.error == "model_unauthorized"
        assert result.value == fallback_crisis()
        assert pipeline.cache.peek("crisis") is None

    @pytest.mark.asyncio
    async def test_malformed_json_falls_back(self, make_pipeline):
        pipeline = make_pipeline('{"events": [}')

        result = await pipeline.run(CRISIS)

        assert result.source == "fallback"
        assert result.error == "malformed_response"
        assert CrisisData.model_validate(result.value.model_dump(by_alias=True)) == result.value

    @pytest.mark.asyncio
    async def test_empty_event_list_falls_back(self, make_pipeline):
        pipeline = make_pipeline('{"events": []}')
        result = await pipeline.run(CRISIS)
        assert result.source == "fallback"

    @pytest.mark.asyncio
    async def test_cached_entry_within_ttl_makes_no_call(self, make_pipeline, crisis_text, clock):
        pipeline = make_pipeline(crisis_text)
        first = await pipeline.run(CRISIS)

        clock.advance(29 * 60)
        second = await pipeline.run(CRISIS)

        assert second.source == "cache"
        assert second.value is first.value
        assert pipeline.invoker.calls == 1

    @pytest.mark.asyncio
    async def test_expired_entry_is_regenerated(self, make_pipeline, crisis_text, clock):
        pipeline = make_pipeline(crisis_text)
        await pipeline.run(CRISIS)

        clock.advance(CRISIS_TTL + 0.001)
        result = await pipeline.run(CRISIS)

        assert result.source == "live"
        assert pipeline.invoker.calls == 2

    @pytest.mark.asyncio
    async def test_stale_result_preferred_over_fallback(self, make_pipeline, crisis_text, clock):
        pipeline = make_pipeline(crisis_text, ModelInvocationError(InvocationCause.RATE_LIMITED))
        first = await pipeline.run(CRISIS)

        clock.advance(CRISIS_TTL + 1)
        second = await pipeline.run(CRISIS)

        assert second.source == "stale"
        assert second.error == "model_rate_limited"
        assert second.value is first.value

    @pytest.mark.asyncio
    async def test_force_refresh_bypasses_cache(self, make_pipeline, crisis_text):
        pipeline = make_pipeline(crisis_text)
        await pipeline.run(CRISIS)

        result = await pipeline.run(CRISIS, force_refresh=True)

        assert result.source == "live"
        assert pipeline.invoker.calls == 2

    @pytest.mark.asyncio
    async def test_concurrent_runs_share_one_call(self, make_pipeline, crisis_text):
        pipeline = make_pipeline(crisis_text, delay=0.02)

        results = await asyncio.gather(*(pipeline.run(CRISIS) for _ in range(5)))

        assert pipeline.invoker.calls == 1
        assert len({id(r.value) for r in results}) == 1

    @pytest.mark.asyncio
    async def test_observer_sees_each_stage(self, make_pipeline, crisis_text):
        pipeline = make_pipeline(crisis_text)
        stages = []

        await pipeline.run(CRISIS, observer=lambda stage, detail: stages.append(stage))
        await pipeline.run(CRISIS, observer=lambda stage, detail: stages.append(stage))

        assert stages == ["requesting", "sanitizing", "coercing", "cached"]

    @pytest.mark.asyncio
    async def test_joining_caller_is_told_it_joined(self, make_pipeline, crisis_text):
        pipeline = make_pipeline(crisis_text, delay=0.02)
        first_stages, second_stages = [], []

        first, second = await asyncio.gather(
            pipeline.run(CRISIS, observer=lambda stage, detail: first_stages.append(stage)),
            pipeline.run(CRISIS, observer=lambda stage, detail: second_stages.append(stage)),
        )

        assert first_stages == ["requesting", "sanitizing", "coercing"]
        assert second_stages == ["joined"]
        assert second.value is first.value
        assert pipeline.invoker.calls == 1

    @pytest.mark.asyncio
    async def test_preflight_failure_skips_model_call(self, make_pipeline, crisis_text):
        pipeline = make_pipeline(crisis_text, preflight=True)
        pipeline.invoker.healthy = False

        result = await pipeline.run(CRISIS)

        assert result.source == "fallback"
        assert result.error == "model_unavailable"
        assert pipeline.invoker.calls == 0


class TestFinancialPipeline:
    """Tests for the financial scans."""

    @pytest.mark.asyncio
    async def test_profit_opportunities(self, make_pipeline, opportunity_text, crisis_payload):
        pipeline = make_pipeline(opportunity_text)
        request = AnalysisRequest(kind="profit-opportunities", events=crisis_payload["events"])

        result = await pipeline.run(request)

        assert result.source == "live"
        assert isinstance(result.value, ProfitOpportunityAnalysis)
        assert [o.symbol for o in result.value.opportunities] == ["ZIM", "NOC"]
        assert "Red Sea Shipping Attacks" in pipeline.invoker.prompts[0]

    @pytest.mark.asyncio
    async def test_trading_signals(self, make_pipeline, signal_text):
        pipeline = make_pipeline(signal_text)

        result = await pipeline.run(AnalysisRequest(kind="trading-signals"))

        assert isinstance(result.value, TradingSignalAnalysis)
        signal = result.value.signals[0]
        assert signal.optimistic_return == pytest.approx(26.0)
        assert signal.validation.is_valid

    @pytest.mark.asyncio
    async def test_signal_failure_falls_back(self, make_pipeline):
        pipeline = make_pipeline("I'm sorry, I can't provide trading advice.")

        result = await pipeline.run(AnalysisRequest(kind="trading-signals"))

        assert result.is_fallback
        assert isinstance(result.value, TradingSignalAnalysis)
        assert result.value.signals


class TestOtherKinds:
    """Tests for company-impact and event-update."""

    @pytest.mark.asyncio
    async def test_company_impact_cached_per_symbol(self, make_pipeline):
        pipeline = make_pipeline('{"impact": "negative", "impactPercent": -3, "confidence": 0.6}')

        lmt = await pipeline.run(AnalysisRequest(kind="company-impact", symbol="LMT"))
        again = await pipeline.run(AnalysisRequest(kind="company-impact", symbol="lmt"))
        xom = await pipeline.run(AnalysisRequest(kind="company-impact", symbol="XOM"))

        assert isinstance(lmt.value, CompanyImpact)
        assert lmt.value.impact == "negative"
        assert again.source == "cache"
        assert xom.value.symbol == "XOM"
        assert pipeline.invoker.calls == 2

    @pytest.mark.asyncio
    async def test_event_update_is_not_cached(self, make_pipeline, crisis_payload):
        pipeline = make_pipeline('{"title": "Red Sea Shipping Attacks", "status": "De-escalating", "riskScore": 60}')
        request = AnalysisRequest(kind="event-update", event=crisis_payload["events"][0])

        first = await pipeline.run(request)
        await pipeline.run(request)

        assert isinstance(first.value, CrisisEvent)
        assert first.value.id == 1
        assert first.value.status == "De-escalating"
        assert pipeline.invoker.calls == 2

    @pytest.mark.asyncio
    async def test_event_update_failure_returns_original(self, make_pipeline, crisis_payload):
        pipeline = make_pipeline(ModelInvocationError(InvocationCause.UNAVAILABLE))
        original = crisis_payload["events"][0]

        result = await pipeline.run(AnalysisRequest(kind="event-update", event=original))

        assert result.is_fallback
        assert result.value == CrisisEvent.model_validate(original)
