"""Static datasets served when live generation fails."""

from datetime import datetime, timezone
from typing import Any, Optional, Union

from crisisfeed.errors import UnsupportedAnalysisKind
from crisisfeed.models.analysis import AnalysisKind, AnalysisRequest
from crisisfeed.models.crisis import CompanyImpact, CrisisData, CrisisEvent
from crisisfeed.models.financial import (
    ProfitOpportunity,
    ProfitOpportunityAnalysis,
    TradingSignal,
    TradingSignalAnalysis,
)
from crisisfeed.services.validator import DataValidator

AnalysisResult = Union[CrisisData, ProfitOpportunityAnalysis, TradingSignalAnalysis, CompanyImpact, CrisisEvent]

FALLBACK_EVENTS: list[dict[str, Any]] = [
    {
        "id": 1,
        "title": "Ukraine-Russia Conflict",
        "description": "Ongoing military conflict affecting global markets, supply chains and defense spending",
        "date": "2022-02-24",
        "type": "War",
        "severity": "Critical",
        "location": "Ukraine, Eastern Europe",
        "status": "Ongoing",
        "riskScore": 92,
        "marketImpact": -1.8,
        "companies": [
            {
                "name": "Lockheed Martin",
                "symbol": "LMT",
                "price": 428.50,
                "change": 12.75,
                "changePercent": 3.07,
                "category": "Arms Supplier",
                "role": "Defense contractor",
                "involvement": "Supplying military equipment and weapons systems",
                "impact": "Increased defense contracts boosting revenue",
                "confidence": 0.9,
            },
            {
                "name": "Raytheon Technologies",
                "symbol": "RTX",
                "price": 95.80,
                "change": 7.20,
                "changePercent": 8.12,
                "category": "Arms Supplier",
                "role": "Weapons manufacturer",
                "involvement": "Missile systems and air defense technology",
                "impact": "Higher demand for defense systems",
                "confidence": 0.85,
            },
        ],
    },
    {
        "id": 2,
        "title": "Middle East Tensions",
        "description": "Regional conflicts affecting oil markets and energy companies",
        "date": "2023-10-07",
        "type": "Political Crisis",
        "severity": "High",
        "location": "Middle East",
        "status": "Escalating",
        "riskScore": 78,
        "marketImpact": 2.3,
        "companies": [
            {
                "name": "Exxon Mobil",
                "symbol": "XOM",
                "price": 118.45,
                "change": 5.20,
                "changePercent": 4.59,
                "category": "Energy",
                "role": "Oil producer",
                "involvement": "Benefiting from higher oil prices due to supply concerns",
                "impact": "Increased revenue from elevated oil prices",
                "confidence": 0.75,
            },
        ],
    },
    {
        "id": 3,
        "title": "Atlantic Hurricane Season",
        "description": "Severe storms damaging coastal infrastructure and driving rebuilding demand",
        "date": "2024-09-26",
        "type": "Natural Disaster",
        "severity": "Medium",
        "location": "Gulf Coast, United States",
        "status": "De-escalating",
        "riskScore": 55,
        "marketImpact": -0.6,
        "companies": [
            {
                "name": "Home Depot",
                "symbol": "HD",
                "price": 402.10,
                "change": 6.35,
                "changePercent": 1.60,
                "category": "Construction",
                "role": "Building supplies retailer",
                "involvement": "Supplying materials for storm repairs",
                "impact": "Short-term sales lift in affected regions",
                "confidence": 0.7,
            },
        ],
    },
]

FALLBACK_OPPORTUNITIES: list[dict[str, Any]] = [
    {
        "symbol": "LMT",
        "company_name": "Lockheed Martin",
        "current_price": 428.50,
        "profit_probability": 70,
        "expected_return": 12.0,
        "time_to_profit": 60,
        "crisis_context": "Ukraine-Russia Conflict",
        "investment_thesis": "Sustained European rearmament and replenishment of donated stockpiles keep "
                             "the order backlog for missiles and aircraft elevated for several years.",
        "risk_factors": [
            "Crisis could resolve faster than expected, reducing profit opportunity",
            "Arms embargoes or peace treaties could reduce demand",
            "Political pressure against defense contractors",
        ],
        "entry_price": 428.50,
        "target_price": 480.00,
        "stop_loss": 395.00,
        "confidence": 65,
    },
    {
        "symbol": "XOM",
        "company_name": "Exxon Mobil",
        "current_price": 118.45,
        "profit_probability": 60,
        "expected_return": 8.0,
        "time_to_profit": 30,
        "crisis_context": "Middle East Tensions",
        "investment_thesis": "Supply risk premiums in crude prices lift upstream margins while the "
                             "company's diversified production limits direct exposure to the region.",
        "risk_factors": [
            "Strategic petroleum reserve releases could lower prices",
            "Market volatility may cause significant price swings",
        ],
        "entry_price": 118.45,
        "target_price": 128.00,
        "stop_loss": 109.00,
        "confidence": 60,
    },
]

FALLBACK_SIGNALS: list[dict[str, Any]] = [
    {
        "symbol": "LMT",
        "action": "BUY",
        "confidence": 65,
        "target_price": 480.00,
        "stop_loss": 395.00,
        "time_horizon": "medium",
        "reasoning": "Defense budgets keep rising while the conflict continues.",
        "expected_return": 12.0,
        "risk_level": "medium",
        "crisis_trigger": "Ukraine-Russia Conflict",
        "optimistic_return": 18.0,
        "pessimistic_return": 4.0,
        "most_likely_return": 12.0,
    },
    {
        "symbol": "XOM",
        "action": "HOLD",
        "confidence": 55,
        "target_price": 128.00,
        "stop_loss": 109.00,
        "time_horizon": "short",
        "reasoning": "Oil prices already reflect much of the regional supply risk.",
        "expected_return": 4.0,
        "risk_level": "medium",
        "crisis_trigger": "Middle East Tensions",
        "optimistic_return": 9.0,
        "pessimistic_return": -3.0,
        "most_likely_return": 4.0,
    },
]

FALLBACK_DISCLAIMERS = ["not-financial-advice", "high-risk-warning"]


class FallbackProvider:
    """Returns canned, schema-valid results for each analysis kind."""

    def __init__(self, validator: Optional[DataValidator] = None):
        self.validator = validator or DataValidator()

    def for_request(self, request: AnalysisRequest, now: Optional[datetime] = None) -> AnalysisResult:
        now = now or datetime.now(timezone.utc)
        if request.kind is AnalysisKind.CRISIS:
            return self.crisis_data(now)
        if request.kind is AnalysisKind.PROFIT_OPPORTUNITIES:
            return ProfitOpportunityAnalysis(opportunities=self.opportunities(now), last_updated=now)
        if request.kind is AnalysisKind.TRADING_SIGNALS:
            return TradingSignalAnalysis(signals=self.signals(now), last_updated=now)
        if request.kind is AnalysisKind.COMPANY_IMPACT:
            return self.company_impact(request.symbol)
        if request.kind is AnalysisKind.EVENT_UPDATE:
            return CrisisEvent.model_validate(request.event)
        raise UnsupportedAnalysisKind(request.kind)

    def crisis_data(self, now: datetime) -> CrisisData:
        events = [CrisisEvent.model_validate(event) for event in FALLBACK_EVENTS]
        return CrisisData.from_events(events, now)

    def opportunities(self, now: datetime) -> list[ProfitOpportunity]:
        result = []
        for fields in FALLBACK_OPPORTUNITIES:
            draft = ProfitOpportunity.model_construct(**fields)
            result.append(
                ProfitOpportunity(**fields, validation=self.validator.validate_profit_opportunity(draft, now))
            )
        return result

    def signals(self, now: datetime) -> list[TradingSignal]:
        result = []
        for fields in FALLBACK_SIGNALS:
            fields = {**fields, "disclaimers": list(FALLBACK_DISCLAIMERS), "data_freshness": 0.0}
            draft = TradingSignal.model_construct(**fields)
            result.append(TradingSignal(**fields, validation=self.validator.validate_trading_signal(draft, now)))
        return result

    def company_impact(self, symbol: str) -> CompanyImpact:
        return CompanyImpact(
            symbol=symbol.upper(),
            impact="neutral",
            impact_percent=0.0,
            reasoning="Analysis unavailable",
            risk_score=50,
            outlook="neutral",
            key_factors=[],
            confidence=0.5,
        )
