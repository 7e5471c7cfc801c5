"""Static reference data served alongside the analyses."""

from typing import Optional

from crisisfeed.models.financial import LegalDisclaimer, MarketSector

FINANCIAL_DISCLAIMERS: list[LegalDisclaimer] = [
    LegalDisclaimer(
        id="not-financial-advice",
        title="Not Financial Advice",
        content=(
            "This platform provides information and analysis for educational purposes only. "
            "Nothing on this platform constitutes financial, investment, trading, or other advice. "
            "You should not treat any content as a recommendation to buy, sell, or hold any "
            "security or investment."
        ),
        severity="critical",
        user_must_acknowledge=True,
        category="general",
    ),
    LegalDisclaimer(
        id="high-risk-warning",
        title="High Risk Investment Warning",
        content=(
            "Trading and investing in securities involves substantial risk of loss and is not "
            "suitable for all investors. Past performance does not guarantee future results. "
            "You may lose some or all of your investment."
        ),
        severity="critical",
        user_must_acknowledge=True,
        category="trading",
    ),
    LegalDisclaimer(
        id="ai-predictions-warning",
        title="AI Predictions Disclaimer",
        content=(
            "Our AI predictions are based on historical data and current events analysis. "
            "AI predictions can be wrong and should not be relied upon as the sole basis for "
            "investment decisions. Markets are unpredictable and AI models have limitations."
        ),
        severity="high",
        user_must_acknowledge=True,
        category="predictions",
    ),
    LegalDisclaimer(
        id="crisis-data-warning",
        title="Crisis Data Accuracy",
        content=(
            "Crisis and conflict data is sourced from various sources and AI analysis. "
            "Information may be incomplete, delayed, or inaccurate. Always verify information "
            "from multiple sources before making investment decisions."
        ),
        severity="medium",
        user_must_acknowledge=False,
        category="general",
    ),
    LegalDisclaimer(
        id="volatility-warning",
        title="Market Volatility Warning",
        content=(
            "Crisis-related investments can be extremely volatile. Prices can change rapidly "
            "and unpredictably. Only invest what you can afford to lose completely."
        ),
        severity="high",
        user_must_acknowledge=True,
        category="risk",
    ),
]

MARKET_SECTORS: list[MarketSector] = [
    MarketSector(name="Defense & Aerospace", crisis_exposure=85, average_return=22.5, volatility=18.2),
    MarketSector(name="Energy", crisis_exposure=78, average_return=18.7, volatility=24.1),
    MarketSector(name="Construction & Materials", crisis_exposure=65, average_return=15.3, volatility=16.8),
    MarketSector(name="Healthcare", crisis_exposure=45, average_return=12.1, volatility=14.5),
]


def get_disclaimers(category: Optional[str] = None) -> list[LegalDisclaimer]:
    """All disclaimers, or those of one category."""
    if category is None:
        return list(FINANCIAL_DISCLAIMERS)
    return [d for d in FINANCIAL_DISCLAIMERS if d.category == category]


def get_required_disclaimers() -> list[LegalDisclaimer]:
    return [d for d in FINANCIAL_DISCLAIMERS if d.user_must_acknowledge]
