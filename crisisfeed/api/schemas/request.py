"""API request models."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CrisisDataPayload(BaseModel):
    """Crisis feed the caller wants analysed."""

    events: list[dict[str, Any]] = Field(default_factory=list, description="Crisis events in wire format")


class FinancialAnalysisRequest(BaseModel):
    """Request model for financial analysis.

    Both fields are optional at the schema level so that a missing one is
    answered with the documented 400 body instead of a validation error.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    crisis_data: Optional[CrisisDataPayload] = Field(default=None, description="Crisis feed to condition on")
    analysis_type: Optional[str] = Field(
        default=None, description="'profit-opportunities' or 'trading-signals'"
    )


class CompanyImpactRequest(BaseModel):
    """Request model for a single-ticker impact analysis."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    symbol: Optional[str] = Field(default=None, description="Ticker symbol")
    event_context: str = Field(default="", description="Crisis the ticker is exposed to")
