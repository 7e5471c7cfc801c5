"""Crisis feed data models."""

from datetime import datetime
from typing import Literal, get_args

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CrisisType = Literal["War", "Natural Disaster", "Political Crisis", "Economic Crisis"]
Severity = Literal["Critical", "High", "Medium", "Low"]
CrisisStatus = Literal["Ongoing", "Escalating", "De-escalating", "Resolved"]
CompanyCategory = Literal[
    "Arms Supplier",
    "Defense Contractor",
    "Energy",
    "Cleanup Contractor",
    "Insurance",
    "Technology",
    "Healthcare",
    "Logistics",
    "Construction",
    "Financial",
]

CRISIS_TYPES: tuple[str, ...] = get_args(CrisisType)
SEVERITIES: tuple[str, ...] = get_args(Severity)
CRISIS_STATUSES: tuple[str, ...] = get_args(CrisisStatus)
COMPANY_CATEGORIES: tuple[str, ...] = get_args(CompanyCategory)

HIGH_RISK_THRESHOLD = 70


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CompanyInvolvement(CamelModel):
    """A company positioned to profit from a crisis."""

    name: str
    symbol: str = Field(description="Ticker symbol")
    price: float = Field(gt=0, description="Fabricated share price")
    change: float = Field(description="Absolute price change")
    change_percent: float = Field(description="Percent price change")
    category: CompanyCategory
    role: str
    involvement: str
    impact: str
    confidence: float = Field(ge=0, le=1)


class CrisisEvent(CamelModel):
    """One fabricated crisis with its involved companies."""

    id: int = Field(ge=1, description="Unique within a response batch")
    title: str
    description: str
    date: str = Field(description="ISO date (YYYY-MM-DD)")
    type: CrisisType
    severity: Severity
    location: str
    status: CrisisStatus
    risk_score: int = Field(ge=0, le=100)
    market_impact: float = Field(description="Signed market impact in percent")
    companies: list[CompanyInvolvement] = Field(default_factory=list)


class CrisisData(CamelModel):
    """Response payload for a crisis scan."""

    events: list[CrisisEvent]
    last_updated: datetime
    total_events: int = Field(ge=0)
    high_risk_events: int = Field(ge=0)

    @classmethod
    def from_events(cls, events: list[CrisisEvent], last_updated: datetime) -> "CrisisData":
        """Build the payload and its summary counters."""
        return cls(
            events=events,
            last_updated=last_updated,
            total_events=len(events),
            high_risk_events=sum(1 for e in events if e.risk_score >= HIGH_RISK_THRESHOLD),
        )


class CompanyImpact(CamelModel):
    """How a single crisis affects one ticker."""

    symbol: str
    impact: Literal["positive", "negative", "neutral"]
    impact_percent: float
    reasoning: str
    risk_score: int = Field(ge=0, le=100)
    outlook: Literal["bullish", "bearish", "neutral"]
    key_factors: list[str] = Field(default_factory=list)
    confidence: float = Field(ge=0, le=1)
