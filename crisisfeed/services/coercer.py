"""Parse sanitized model output and coerce it into typed records."""

import json
import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Iterable, Optional, Union

from crisisfeed.errors import MalformedResponse
from crisisfeed.logger import truncate
from crisisfeed.models.crisis import (
    COMPANY_CATEGORIES,
    CRISIS_STATUSES,
    CRISIS_TYPES,
    SEVERITIES,
    CompanyImpact,
    CompanyInvolvement,
    CrisisEvent,
)
from crisisfeed.models.financial import (
    RISK_LEVELS,
    SIGNAL_ACTIONS,
    TIME_HORIZONS,
    ProfitOpportunity,
    TradingSignal,
)
from crisisfeed.services.validator import DataValidator

MAX_OPPORTUNITIES = 15
SIGNAL_DISCLAIMERS = ("not-financial-advice", "high-risk-warning")

EVENT_DEFAULTS = {
    "title": "Unknown Crisis",
    "description": "",
    "type": "Political Crisis",
    "severity": "Medium",
    "location": "Unknown",
    "status": "Ongoing",
    "risk_score": 50,
    "market_impact": 0.0,
}

COMPANY_DEFAULTS = {
    "name": "Unknown Company",
    "symbol": "N/A",
    "price": 100.0,
    "change": 0.0,
    "change_percent": 0.0,
    "category": "Technology",
    "role": "Unknown role",
    "involvement": "Unknown involvement",
    "impact": "Neutral impact",
    "confidence": 0.5,
}

TYPE_ALIASES = {"conflict": "War", "armedconflict": "War", "economic": "Economic Crisis",
                "political": "Political Crisis", "disaster": "Natural Disaster"}
STATUS_ALIASES = {"developing": "Ongoing", "active": "Ongoing"}
CATEGORY_ALIASES = {"defense": "Defense Contractor", "cleanup": "Cleanup Contractor",
                    "oil": "Energy", "oilgas": "Energy", "tech": "Technology"}

_NON_ALNUM = re.compile(r"[^a-z0-9]")


@dataclass(frozen=True)
class ParsedOk:
    payload: Any


@dataclass(frozen=True)
class ParseFailed:
    reason: str
    excerpt: str


ParseResult = Union[ParsedOk, ParseFailed]


# -- field helpers -----------------------------------------------------------

def as_float(value: Any, default: Optional[float]) -> Optional[float]:
    """Read a finite number, accepting numeric strings like "$1,250.5" or "3.2%"."""
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        cleaned = value.strip().replace(",", "").rstrip("%").lstrip("$").strip()
        try:
            number = float(cleaned)
        except ValueError:
            return default
    else:
        return default
    return number if math.isfinite(number) else default


def as_int(value: Any, default: Optional[int]) -> Optional[int]:
    number = as_float(value, None)
    return default if number is None else int(round(number))


def as_positive(value: Any, default: float) -> float:
    number = as_float(value, None)
    return number if number is not None and number > 0 else default


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def scaled(value: float, factor: float) -> float:
    """``value * factor``, or ``value`` itself when the product overflows."""
    return as_float(value * factor, value)


def as_fraction(value: Any, default: float) -> float:
    """Confidence on a 0-1 scale; values in (1, 100] are read as percentages."""
    number = as_float(value, default)
    if 1 < number <= 100:
        number /= 100
    return clamp(number, 0.0, 1.0)


def as_percent(value: Any, default: float) -> float:
    """Score on a 0-100 scale; values in (0, 1) are read as fractions."""
    number = as_float(value, default)
    if 0 < number < 1:
        number *= 100
    return clamp(number, 0.0, 100.0)


def as_str(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return default


def as_str_list(value: Any) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def _norm(text: str) -> str:
    return _NON_ALNUM.sub("", text.lower())


def as_choice(
    value: Any, choices: Iterable[str], default: str, aliases: Optional[dict[str, str]] = None
) -> str:
    """Match ``value`` against enum choices ignoring case, spaces and punctuation."""
    if not isinstance(value, str):
        return default
    lookup = {_norm(choice): choice for choice in choices}
    lookup.update(aliases or {})
    return lookup.get(_norm(value), default)


def as_iso_date(value: Any, today: date) -> str:
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10]).isoformat()
        except ValueError:
            pass
    return today.isoformat()


def assign_ids(records: list[dict[str, Any]]) -> list[int]:
    """Keep valid unique ids, give every other record the next free one."""
    used: set[int] = set()
    ids: list[Optional[int]] = []
    for record in records:
        candidate = as_int(record.get("id"), None)
        if candidate is not None and candidate >= 1 and candidate not in used:
            used.add(candidate)
            ids.append(candidate)
        else:
            ids.append(None)

    next_id = max(used, default=0) + 1
    assigned = []
    for candidate in ids:
        if candidate is None:
            candidate = next_id
            next_id += 1
        assigned.append(candidate)
    return assigned


def _records(payload: Any, key: str) -> list[dict[str, Any]]:
    """Pull the list under ``key`` (or a bare top-level list) as dicts."""
    if isinstance(payload, dict):
        payload = payload.get(key)
    if not isinstance(payload, list):
        return []
    return [item for item in payload if isinstance(item, dict)]


def _first_title(events: Iterable[dict[str, Any]], default: str) -> str:
    for event in events:
        title = as_str(event.get("title"), "")
        if title:
            return title
    return default


# -- coercer -----------------------------------------------------------------

class SchemaCoercer:
    """Turns parsed JSON into records, defaulting fields one at a time.

    A bad field never rejects its record; only an unparseable body or a body
    with no usable records is reported as ``MalformedResponse``.
    """

    def __init__(self, validator: Optional[DataValidator] = None):
        self.validator = validator or DataValidator()

    def parse(self, text: str) -> ParseResult:
        try:
            return ParsedOk(json.loads(text))
        except (json.JSONDecodeError, TypeError) as e:
            return ParseFailed(reason=f"invalid JSON: {e}", excerpt=truncate(text))

    def coerce_events(self, payload: Any, today: Optional[date] = None) -> list[CrisisEvent]:
        today = today or date.today()
        records = _records(payload, "events")
        if not records:
            raise MalformedResponse("response contained no events", truncate(json.dumps(payload, default=str)))
        ids = assign_ids(records)
        return [self.coerce_event(record, event_id, today) for record, event_id in zip(records, ids)]

    def coerce_event(self, raw: dict[str, Any], event_id: int, today: Optional[date] = None) -> CrisisEvent:
        today = today or date.today()
        companies = [self.coerce_company(c) for c in _records(raw.get("companies"), "companies")]
        return CrisisEvent(
            id=event_id,
            title=as_str(raw.get("title"), EVENT_DEFAULTS["title"]),
            description=as_str(raw.get("description"), EVENT_DEFAULTS["description"]),
            date=as_iso_date(raw.get("date"), today),
            type=as_choice(raw.get("type"), CRISIS_TYPES, EVENT_DEFAULTS["type"], TYPE_ALIASES),
            severity=as_choice(raw.get("severity"), SEVERITIES, EVENT_DEFAULTS["severity"]),
            location=as_str(raw.get("location"), EVENT_DEFAULTS["location"]),
            status=as_choice(raw.get("status"), CRISIS_STATUSES, EVENT_DEFAULTS["status"], STATUS_ALIASES),
            risk_score=int(clamp(as_int(raw.get("riskScore"), EVENT_DEFAULTS["risk_score"]), 0, 100)),
            market_impact=as_float(raw.get("marketImpact"), EVENT_DEFAULTS["market_impact"]),
            companies=companies,
        )

    def coerce_updated_event(self, payload: Any, event_id: int, today: Optional[date] = None) -> CrisisEvent:
        """Coerce a single refreshed event, keeping its original id."""
        if isinstance(payload, dict) and isinstance(payload.get("events"), list):
            records = _records(payload, "events")
            payload = records[0] if records else None
        if not isinstance(payload, dict) or not payload:
            raise MalformedResponse("response contained no event")
        return self.coerce_event(payload, event_id, today)

    def coerce_company(self, raw: dict[str, Any]) -> CompanyInvolvement:
        d = COMPANY_DEFAULTS
        return CompanyInvolvement(
            name=as_str(raw.get("name"), d["name"]),
            symbol=as_str(raw.get("symbol"), d["symbol"]).upper(),
            price=as_positive(raw.get("price"), d["price"]),
            change=as_float(raw.get("change"), d["change"]),
            change_percent=as_float(raw.get("changePercent"), d["change_percent"]),
            category=as_choice(raw.get("category"), COMPANY_CATEGORIES, d["category"], CATEGORY_ALIASES),
            role=as_str(raw.get("role"), d["role"]),
            involvement=as_str(raw.get("involvement"), d["involvement"]),
            impact=as_str(raw.get("impact"), d["impact"]),
            confidence=as_fraction(raw.get("confidence"), d["confidence"]),
        )

    def coerce_opportunities(
        self,
        payload: Any,
        events: Iterable[dict[str, Any]] = (),
        now: Optional[datetime] = None,
    ) -> list[ProfitOpportunity]:
        now = now or datetime.now(timezone.utc)
        records = _records(payload, "opportunities")
        if not records:
            raise MalformedResponse("response contained no opportunities")
        context = _first_title(events, "Global Crisis")

        opportunities = [self._coerce_opportunity(raw, context, now) for raw in records]
        opportunities.sort(key=lambda o: o.profit_probability * o.expected_return, reverse=True)
        return opportunities[:MAX_OPPORTUNITIES]

    def _coerce_opportunity(self, raw: dict[str, Any], context: str, now: datetime) -> ProfitOpportunity:
        current = as_positive(raw.get("currentPrice"), 100.0)
        entry = as_positive(raw.get("entryPrice"), current)
        expected = as_float(raw.get("expectedReturn"), 0.0)
        target = as_positive(raw.get("targetPrice"), as_positive(entry * (1 + expected / 100), entry))
        time_to_profit = as_int(raw.get("timeToProfit"), 30)

        fields = dict(
            symbol=as_str(raw.get("symbol"), "N/A").upper(),
            company_name=as_str(raw.get("companyName"), "Unknown Company"),
            current_price=current,
            profit_probability=clamp(as_float(raw.get("profitProbability"), 50.0), 0.0, 100.0),
            expected_return=expected,
            time_to_profit=time_to_profit if time_to_profit > 0 else 30,
            crisis_context=as_str(raw.get("crisisContext"), context),
            investment_thesis=as_str(raw.get("investmentThesis"), ""),
            risk_factors=as_str_list(raw.get("riskFactors")),
            entry_price=entry,
            target_price=target,
            stop_loss=as_positive(raw.get("stopLoss"), entry * 0.85),
            confidence=as_percent(raw.get("confidence"), 50.0),
        )
        draft = ProfitOpportunity.model_construct(**fields)
        return ProfitOpportunity(**fields, validation=self.validator.validate_profit_opportunity(draft, now))

    def coerce_signals(
        self,
        payload: Any,
        events: Iterable[dict[str, Any]] = (),
        now: Optional[datetime] = None,
    ) -> list[TradingSignal]:
        now = now or datetime.now(timezone.utc)
        records = _records(payload, "signals")
        if not records:
            raise MalformedResponse("response contained no signals")
        trigger = _first_title(events, "")
        return [self._coerce_signal(raw, trigger, now) for raw in records]

    def _coerce_signal(self, raw: dict[str, Any], trigger: str, now: datetime) -> TradingSignal:
        action = as_choice(raw.get("action"), SIGNAL_ACTIONS, "HOLD")
        expected = as_float(raw.get("expectedReturn"), 0.0)
        target = as_positive(raw.get("targetPrice"), 100.0)
        if "BUY" in action:
            default_stop = target * 0.85
        elif "SELL" in action:
            default_stop = scaled(target, 1.15)
        else:
            default_stop = target * 0.9

        fields = dict(
            symbol=as_str(raw.get("symbol"), "N/A").upper(),
            action=action,
            confidence=as_percent(raw.get("confidence"), 50.0),
            target_price=target,
            stop_loss=as_positive(raw.get("stopLoss"), default_stop),
            time_horizon=as_choice(raw.get("timeHorizon"), TIME_HORIZONS, "medium"),
            reasoning=as_str(raw.get("reasoning"), ""),
            expected_return=expected,
            risk_level=as_choice(raw.get("riskLevel"), RISK_LEVELS, "medium"),
            crisis_trigger=as_str(raw.get("crisisTrigger"), trigger),
            optimistic_return=as_float(raw.get("optimisticReturn"), scaled(expected, 1.3)),
            pessimistic_return=as_float(raw.get("pessimisticReturn"), scaled(expected, 0.7)),
            most_likely_return=as_float(raw.get("mostLikelyReturn"), expected),
            disclaimers=list(SIGNAL_DISCLAIMERS),
            data_freshness=0.0,
        )
        draft = TradingSignal.model_construct(**fields)
        return TradingSignal(**fields, validation=self.validator.validate_trading_signal(draft, now))

    def coerce_company_impact(self, payload: Any, symbol: str) -> CompanyImpact:
        if not isinstance(payload, dict) or not payload:
            raise MalformedResponse("response contained no impact assessment")
        return CompanyImpact(
            symbol=symbol.upper(),
            impact=as_choice(payload.get("impact"), ("positive", "negative", "neutral"), "neutral"),
            impact_percent=as_float(payload.get("impactPercent"), 0.0),
            reasoning=as_str(payload.get("reasoning"), ""),
            risk_score=int(clamp(as_int(payload.get("riskScore"), 50), 0, 100)),
            outlook=as_choice(payload.get("outlook"), ("bullish", "bearish", "neutral"), "neutral"),
            key_factors=as_str_list(payload.get("keyFactors")),
            confidence=as_fraction(payload.get("confidence"), 0.5),
        )
