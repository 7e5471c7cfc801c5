"""Sanity checks for generated trading signals and profit opportunities."""

from datetime import datetime, timezone
from typing import Optional

from crisisfeed.models.financial import (
    SIGNAL_ACTIONS,
    ProfitOpportunity,
    TradingSignal,
    ValidationResult,
)


class DataValidator:
    """Scores model-generated recommendations.

    Errors mark a record invalid; warnings only lower its confidence. The
    resulting confidence is bucketed into a qualitative data quality.
    """

    def validate_trading_signal(
        self, signal: TradingSignal, now: Optional[datetime] = None
    ) -> ValidationResult:
        errors: list[str] = []
        warnings: list[str] = []

        if signal.action not in SIGNAL_ACTIONS:
            errors.append("Invalid trading action")

        if signal.confidence < 0 or signal.confidence > 100:
            errors.append("Confidence must be between 0 and 100")
        if signal.confidence < 30:
            warnings.append("Low confidence signal - use with extreme caution")

        if signal.target_price <= 0 or signal.stop_loss <= 0:
            errors.append("Target price and stop loss must be positive")

        if "BUY" in signal.action:
            if signal.stop_loss >= signal.target_price:
                errors.append("Stop loss should be below target price for BUY signals")
            elif signal.stop_loss > 0:
                risk_reward = (signal.target_price - signal.stop_loss) / signal.stop_loss
                if risk_reward < 0.1:
                    warnings.append("Poor risk/reward ratio detected")

        if "SELL" in signal.action and signal.stop_loss <= signal.target_price:
            errors.append("Stop loss should be above target price for SELL signals")

        if abs(signal.expected_return) > 200:
            warnings.append("Extremely high expected return - verify calculations")

        if signal.data_freshness > 60:
            warnings.append("Signal based on data older than 1 hour")
        if signal.data_freshness > 240:
            errors.append("Signal based on stale data (over 4 hours old)")

        if not signal.crisis_trigger or len(signal.crisis_trigger) < 10:
            warnings.append("Insufficient crisis context provided")

        confidence = signal.confidence - len(errors) * 25 - len(warnings) * 10
        if signal.data_freshness > 30:
            confidence -= (signal.data_freshness - 30) * 0.5
        confidence -= {"extreme": 20, "high": 10, "medium": 5}.get(signal.risk_level, 0)

        return self._result(errors, warnings, confidence, now)

    def validate_profit_opportunity(
        self, opportunity: ProfitOpportunity, now: Optional[datetime] = None
    ) -> ValidationResult:
        errors: list[str] = []
        warnings: list[str] = []

        if opportunity.profit_probability < 0 or opportunity.profit_probability > 100:
            errors.append("Profit probability must be between 0 and 100")
        if opportunity.profit_probability < 20:
            warnings.append("Very low profit probability - high risk investment")

        if opportunity.expected_return < -100:
            errors.append("Expected return cannot be less than -100%")
        if opportunity.expected_return > 1000:
            warnings.append("Extremely high expected return - verify calculations")

        if opportunity.time_to_profit <= 0:
            errors.append("Time to profit must be positive")
        if opportunity.time_to_profit > 365:
            warnings.append("Very long time horizon - consider market changes")

        if min(opportunity.entry_price, opportunity.target_price, opportunity.stop_loss) <= 0:
            errors.append("All prices must be positive")

        potential_loss = abs(opportunity.entry_price - opportunity.stop_loss)
        potential_gain = abs(opportunity.target_price - opportunity.entry_price)
        if potential_loss > 0 and potential_gain / potential_loss < 1:
            warnings.append("Risk exceeds potential reward")

        if len(opportunity.investment_thesis or "") < 50:
            warnings.append("Investment thesis should be more detailed")

        if not opportunity.risk_factors:
            warnings.append("No risk factors identified - analysis may be incomplete")

        confidence = opportunity.confidence - len(errors) * 25 - len(warnings) * 8
        if opportunity.profit_probability < 50:
            confidence -= (50 - opportunity.profit_probability) * 0.5

        return self._result(errors, warnings, confidence, now)

    def _result(
        self,
        errors: list[str],
        warnings: list[str],
        confidence: float,
        now: Optional[datetime],
    ) -> ValidationResult:
        confidence = max(0.0, min(100.0, confidence))
        return ValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            confidence=confidence,
            data_quality=data_quality(confidence),
            last_validated=now or datetime.now(timezone.utc),
        )


def data_quality(confidence: float) -> str:
    """Bucket a 0-100 confidence score."""
    if confidence >= 80:
        return "high"
    if confidence >= 60:
        return "medium"
    return "low"
