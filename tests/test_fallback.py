"""Tests for the static fallback datasets."""

import json
from datetime import date, datetime, timezone

import pytest

from crisisfeed.models.analysis import AnalysisKind, AnalysisRequest
from crisisfeed.models.crisis import CompanyImpact, CrisisData, CrisisEvent
from crisisfeed.models.financial import ProfitOpportunityAnalysis, TradingSignalAnalysis
from crisisfeed.services.coercer import SchemaCoercer
from crisisfeed.services.fallback import FALLBACK_EVENTS, FallbackProvider

NOW = datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def provider() -> FallbackProvider:
    return FallbackProvider()


class TestFallbackProvider:
    """Tests for FallbackProvider.for_request."""

    def test_crisis_data(self, provider):
        data = provider.for_request(AnalysisRequest(kind=AnalysisKind.CRISIS), NOW)
        assert isinstance(data, CrisisData)
        assert data.total_events == len(data.events) == 3
        assert data.high_risk_events == 2
        assert data.last_updated == NOW
        assert len({e.id for e in data.events}) == 3

    def test_crisis_data_survives_coercion_unchanged(self, provider):
        """The static feed passes the same checks as coerced model output."""
        data = provider.crisis_data(NOW)
        wire = json.loads(json.dumps(data.model_dump(by_alias=True, mode="json")))

        coerced = SchemaCoercer().coerce_events(wire, date(2026, 10, 16))

        assert coerced == data.events

    def test_events_validate_from_wire_format(self):
        for raw in FALLBACK_EVENTS:
            event = CrisisEvent.model_validate(raw)
            assert event.companies
            assert all(0 <= c.confidence <= 1 for c in event.companies)

    def test_opportunities(self, provider):
        analysis = provider.for_request(AnalysisRequest(kind="profit-opportunities"), NOW)
        assert isinstance(analysis, ProfitOpportunityAnalysis)
        assert analysis.analysis_type == "profit-opportunities"
        assert analysis.opportunities
        for opportunity in analysis.opportunities:
            assert opportunity.validation.is_valid
            assert opportunity.validation.last_validated == NOW

    def test_signals(self, provider):
        analysis = provider.for_request(AnalysisRequest(kind="trading-signals"), NOW)
        assert isinstance(analysis, TradingSignalAnalysis)
        assert analysis.analysis_type == "trading-signals"
        for signal in analysis.signals:
            assert signal.validation.is_valid
            assert signal.disclaimers == ["not-financial-advice", "high-risk-warning"]

    def test_company_impact_is_neutral(self, provider):
        impact = provider.for_request(AnalysisRequest(kind="company-impact", symbol="nvda"), NOW)
        assert isinstance(impact, CompanyImpact)
        assert impact.symbol == "NVDA"
        assert impact.impact == "neutral"
        assert impact.outlook == "neutral"

    def test_event_update_returns_existing_event(self, provider):
        event = dict(FALLBACK_EVENTS[1])
        result = provider.for_request(AnalysisRequest(kind="event-update", event=event), NOW)
        assert result == CrisisEvent.model_validate(event)

    def test_wire_format_is_camel_case(self, provider):
        dumped = provider.crisis_data(NOW).model_dump(by_alias=True, mode="json")
        assert set(dumped) == {"events", "lastUpdated", "totalEvents", "highRiskEvents"}
        event = dumped["events"][0]
        assert "riskScore" in event
        assert "marketImpact" in event
        assert "changePercent" in event["companies"][0]
