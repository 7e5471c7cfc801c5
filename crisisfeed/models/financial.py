"""Financial analysis data models."""

from datetime import datetime
from typing import Literal, get_args

from pydantic import Field

from crisisfeed.models.crisis import CamelModel

SignalAction = Literal["BUY", "SELL", "HOLD", "STRONG_BUY", "STRONG_SELL"]
TimeHorizon = Literal["short", "medium", "long"]
RiskLevel = Literal["low", "medium", "high", "extreme"]
DataQuality = Literal["high", "medium", "low"]

SIGNAL_ACTIONS: tuple[str, ...] = get_args(SignalAction)
TIME_HORIZONS: tuple[str, ...] = get_args(TimeHorizon)
RISK_LEVELS: tuple[str, ...] = get_args(RiskLevel)


class ValidationResult(CamelModel):
    """Outcome of sanity-checking a generated recommendation."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    confidence: float = Field(ge=0, le=100)
    data_quality: DataQuality
    last_validated: datetime


class ProfitOpportunity(CamelModel):
    """A company expected to profit from a crisis."""

    symbol: str
    company_name: str
    current_price: float = Field(gt=0)
    profit_probability: float = Field(ge=0, le=100)
    expected_return: float = Field(description="Percent")
    time_to_profit: int = Field(gt=0, description="Days")
    crisis_context: str
    investment_thesis: str
    risk_factors: list[str] = Field(default_factory=list)
    entry_price: float = Field(gt=0)
    target_price: float = Field(gt=0)
    stop_loss: float = Field(gt=0)
    confidence: float = Field(ge=0, le=100)
    validation: ValidationResult


class TradingSignal(CamelModel):
    """A buy/sell recommendation derived from crisis events."""

    symbol: str
    action: SignalAction
    confidence: float = Field(ge=0, le=100)
    target_price: float = Field(gt=0)
    stop_loss: float = Field(gt=0)
    time_horizon: TimeHorizon
    reasoning: str
    expected_return: float
    risk_level: RiskLevel
    crisis_trigger: str
    optimistic_return: float
    pessimistic_return: float
    most_likely_return: float
    disclaimers: list[str] = Field(default_factory=list)
    data_freshness: float = Field(ge=0, description="Minutes since generation")
    validation: ValidationResult


class ProfitOpportunityAnalysis(CamelModel):
    """Response payload for a profit-opportunity scan."""

    opportunities: list[ProfitOpportunity]
    last_updated: datetime
    analysis_type: Literal["profit-opportunities"] = "profit-opportunities"


class TradingSignalAnalysis(CamelModel):
    """Response payload for a trading-signal scan."""

    signals: list[TradingSignal]
    last_updated: datetime
    analysis_type: Literal["trading-signals"] = "trading-signals"


class LegalDisclaimer(CamelModel):
    """A disclaimer the dashboard shows next to financial panels."""

    id: str
    title: str
    content: str
    severity: Literal["critical", "high", "medium", "low"]
    user_must_acknowledge: bool
    category: Literal["general", "trading", "predictions", "risk"]


class MarketSector(CamelModel):
    """Static crisis-exposure profile of a market sector."""

    name: str
    crisis_exposure: float = Field(ge=0, le=100)
    average_return: float
    volatility: float = Field(ge=0)
