"""Data models for crisisfeed."""

from crisisfeed.models.analysis import AnalysisKind, AnalysisRequest
from crisisfeed.models.crisis import CompanyImpact, CompanyInvolvement, CrisisData, CrisisEvent
from crisisfeed.models.financial import (
    ProfitOpportunity,
    ProfitOpportunityAnalysis,
    TradingSignal,
    TradingSignalAnalysis,
    ValidationResult,
)

__all__ = [
    "AnalysisKind",
    "AnalysisRequest",
    "CompanyImpact",
    "CompanyInvolvement",
    "CrisisData",
    "CrisisEvent",
    "ProfitOpportunity",
    "ProfitOpportunityAnalysis",
    "TradingSignal",
    "TradingSignalAnalysis",
    "ValidationResult",
]
