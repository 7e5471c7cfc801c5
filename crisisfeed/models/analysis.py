"""Analysis request model."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from crisisfeed.errors import UnsupportedAnalysisKind


class AnalysisKind(str, Enum):
    """Scans the pipeline can run."""

    CRISIS = "crisis"
    PROFIT_OPPORTUNITIES = "profit-opportunities"
    TRADING_SIGNALS = "trading-signals"
    COMPANY_IMPACT = "company-impact"
    EVENT_UPDATE = "event-update"

    @classmethod
    def parse(cls, value: Any) -> "AnalysisKind":
        """Resolve a kind, failing fast on anything unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedAnalysisKind(value) from None


FINANCIAL_KINDS = (AnalysisKind.PROFIT_OPPORTUNITIES, AnalysisKind.TRADING_SIGNALS)


@dataclass(frozen=True)
class AnalysisRequest:
    """Identifies one scan plus the context it is conditioned on.

    ``events`` holds prior crisis events (plain dicts, wire format) for the
    financial scans, ``symbol``/``event_context`` drive a company-impact
    scan and ``event`` is the cached event an event-update refreshes.
    """

    kind: AnalysisKind
    events: tuple[dict[str, Any], ...] = ()
    symbol: Optional[str] = None
    event_context: str = ""
    event: Optional[dict[str, Any]] = field(default=None, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "kind", AnalysisKind.parse(self.kind))
        object.__setattr__(self, "events", tuple(self.events))
        if self.kind is AnalysisKind.COMPANY_IMPACT and not self.symbol:
            raise ValueError("company-impact analysis requires a symbol")
        if self.kind is AnalysisKind.EVENT_UPDATE and not self.event:
            raise ValueError("event-update analysis requires an event")

    @property
    def cache_key(self) -> Optional[str]:
        """Key in the result cache, or None for uncached scans."""
        if self.kind is AnalysisKind.EVENT_UPDATE:
            return None
        if self.kind is AnalysisKind.COMPANY_IMPACT:
            return f"{self.kind.value}:{self.symbol.upper()}"
        return self.kind.value
