"""Prompt construction for each analysis kind."""

import json
from datetime import date
from typing import Any, Optional

from crisisfeed.errors import UnsupportedAnalysisKind
from crisisfeed.models.analysis import AnalysisKind, AnalysisRequest

# Number of prior events forwarded to the financial scans
PROFIT_CONTEXT_EVENTS = 3
SIGNAL_CONTEXT_EVENTS = 2

JSON_ONLY = "Return ONLY valid JSON. No markdown, no commentary before or after the JSON object."

CRISIS_SKELETON = """{
  "events": [
    {
      "id": 1,
      "title": "Crisis Title",
      "description": "Detailed description",
      "date": "YYYY-MM-DD",
      "type": "War|Natural Disaster|Political Crisis|Economic Crisis",
      "severity": "Critical|High|Medium|Low",
      "location": "Country/Region",
      "status": "Ongoing|Escalating|De-escalating|Resolved",
      "riskScore": 85,
      "marketImpact": -2.5,
      "companies": [
        {
          "name": "Company Name",
          "symbol": "TICKER",
          "price": 150.25,
          "change": 5.75,
          "changePercent": 3.98,
          "category": "Arms Supplier|Defense Contractor|Energy|Cleanup Contractor|Insurance|Technology|Healthcare|Logistics|Construction|Financial",
          "role": "How they're involved",
          "involvement": "Detailed involvement",
          "impact": "Expected impact on company",
          "confidence": 0.8
        }
      ]
    }
  ]
}"""

OPPORTUNITY_SKELETON = """{
  "opportunities": [
    {
      "symbol": "TICKER",
      "companyName": "Company Name",
      "currentPrice": 125.50,
      "profitProbability": 75,
      "expectedReturn": 15.5,
      "timeToProfit": 30,
      "crisisContext": "Which crisis creates this opportunity",
      "investmentThesis": "Detailed explanation of why this company will profit from the crisis",
      "riskFactors": ["Specific risk 1", "Specific risk 2", "Specific risk 3"],
      "entryPrice": 125.50,
      "targetPrice": 150.00,
      "stopLoss": 110.00,
      "confidence": 80
    }
  ]
}"""

SIGNAL_SKELETON = """{
  "signals": [
    {
      "symbol": "TICKER",
      "action": "BUY|SELL|HOLD|STRONG_BUY|STRONG_SELL",
      "confidence": 85,
      "targetPrice": 150.00,
      "stopLoss": 130.00,
      "timeHorizon": "short|medium|long",
      "reasoning": "Detailed explanation of why this trade makes sense based on crisis analysis",
      "expectedReturn": 12.5,
      "riskLevel": "low|medium|high|extreme",
      "crisisTrigger": "Which crisis event triggered this signal",
      "optimisticReturn": 18.0,
      "pessimisticReturn": 8.0,
      "mostLikelyReturn": 12.5
    }
  ]
}"""

COMPANY_IMPACT_SKELETON = """{{
  "symbol": "{symbol}",
  "impact": "positive|negative|neutral",
  "impactPercent": 5.2,
  "reasoning": "Detailed explanation",
  "riskScore": 75,
  "outlook": "bullish|bearish|neutral",
  "keyFactors": ["factor1", "factor2"],
  "confidence": 0.8
}}"""


class PromptBuilder:
    """Builds the instruction text sent to the model for a request.

    Output is deterministic for identical requests except for the embedded
    current date.
    """

    def build(self, request: AnalysisRequest, today: Optional[date] = None) -> str:
        """Return the prompt for ``request``."""
        today = today or date.today()
        builders = {
            AnalysisKind.CRISIS: self._crisis_prompt,
            AnalysisKind.PROFIT_OPPORTUNITIES: self._opportunity_prompt,
            AnalysisKind.TRADING_SIGNALS: self._signal_prompt,
            AnalysisKind.COMPANY_IMPACT: self._company_impact_prompt,
            AnalysisKind.EVENT_UPDATE: self._event_update_prompt,
        }
        builder = builders.get(request.kind)
        if builder is None:
            raise UnsupportedAnalysisKind(request.kind)
        return builder(request, today.isoformat())

    def _crisis_prompt(self, request: AnalysisRequest, today: str) -> str:
        return f"""Analyze current global crises and conflicts as of {today}.

Provide a comprehensive analysis in JSON format with exactly this structure:

{CRISIS_SKELETON}

Constraints:
- Include 5-7 events.
- Include 3-5 companies per event.
- Use only the enum values listed in the structure above.
- riskScore is an integer from 0 to 100; confidence is a number from 0.0 to 1.0.
- Dates use the YYYY-MM-DD format.

Focus on:
1. Current major conflicts, natural disasters, political and economic crises
2. Companies that profit from these crises
3. Realistic stock prices and recent changes
4. Risk assessment and market impact
5. Corporate involvement and profiteering

{JSON_ONLY}"""

    def _opportunity_prompt(self, request: AnalysisRequest, today: str) -> str:
        context = _events_json(request.events[:PROFIT_CONTEXT_EVENTS])
        return f"""Today is {today}. Based on these crisis events:
{context}

Analyze profit opportunities for investors. Focus on companies that will benefit from these crises.
For each opportunity, provide realistic current stock prices and detailed analysis.

Return JSON with exactly this structure:

{OPPORTUNITY_SKELETON}

Focus on:
1. Defense contractors during conflicts
2. Energy companies during supply disruptions
3. Construction companies for post-crisis rebuilding
4. Healthcare companies during health crises
5. Technology companies providing crisis solutions

Constraints:
- Provide 10-15 high-quality opportunities.
- profitProbability and confidence are numbers from 0 to 100.
- timeToProfit is a positive number of days.

{JSON_ONLY}"""

    def _signal_prompt(self, request: AnalysisRequest, today: str) -> str:
        context = _events_json(request.events[:SIGNAL_CONTEXT_EVENTS])
        return f"""Today is {today}. Generate trading signals based on crisis data:
{context}

Provide actionable buy/sell recommendations with realistic prices and detailed reasoning.

Return JSON with exactly this structure:

{SIGNAL_SKELETON}

Constraints:
- Focus on companies that will be immediately impacted by the crises.
- Provide 8-12 high-confidence signals with clear entry/exit strategies.
- For BUY signals the stopLoss is below the targetPrice; for SELL signals it is above.
- confidence is a number from 0 to 100.

{JSON_ONLY}"""

    def _company_impact_prompt(self, request: AnalysisRequest, today: str) -> str:
        skeleton = COMPANY_IMPACT_SKELETON.format(symbol=request.symbol)
        return f"""Today is {today}. Analyze how the crisis "{request.event_context}" affects {request.symbol} stock.

Provide detailed analysis including:
- Expected stock price impact (positive/negative/neutral)
- Percentage impact estimate
- Reasoning for the impact
- Historical similar events and their effects
- Risk assessment (0-100)
- Investment outlook (bullish/bearish/neutral)
- Key factors driving the impact

Return JSON with exactly this structure:

{skeleton}

{JSON_ONLY}"""

    def _event_update_prompt(self, request: AnalysisRequest, today: str) -> str:
        event = request.event or {}
        return f"""Today is {today}. Update the crisis event "{event.get('title', '')}" with the latest information.

Current event:
{json.dumps(event, indent=2, default=str)}

Provide updated information including:
- Current status and severity
- Latest company stock prices and changes
- New companies that might be involved
- Updated risk assessment
- Recent developments

Return a single event object with the same fields as the current event.

{JSON_ONLY}"""


def _events_json(events: tuple[dict[str, Any], ...]) -> str:
    """Serialize context events for embedding in a prompt."""
    return json.dumps(list(events), indent=2, default=str)
