"""Pytest configuration and fixtures."""

import asyncio
import json
from typing import AsyncGenerator, Callable, Generator

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from crisisfeed.config import Settings
from crisisfeed.errors import InvocationCause
from crisisfeed.services.cache import ResultCache
from crisisfeed.services.model_invoker import InvocationConfig, ModelInvoker

# Configure asyncio
pytest_plugins = ["pytest_asyncio"]


class FakeClock:
    """Monotonic clock the test moves by hand."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeInvoker(ModelInvoker):
    """Model backend replaying scripted outputs.

    Each call consumes the next output; the last one repeats. An exception
    instance in the script is raised instead of returned.
    """

    provider = "fake"

    def __init__(self, outputs, delay: float = 0.0, healthy: bool = True):
        super().__init__(InvocationConfig(model="fake-model", timeout=5.0), credential="test-key")
        self.outputs = list(outputs)
        self.delay = delay
        self.healthy = healthy
        self.calls = 0
        self.prompts: list[str] = []
        self.closed = False

    async def _request(self, prompt: str):
        self.calls += 1
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        output = self.outputs.pop(0) if len(self.outputs) > 1 else self.outputs[0]
        if isinstance(output, BaseException):
            raise output
        return output

    def _classify(self, error: Exception) -> InvocationCause:
        return InvocationCause.UNKNOWN

    async def health_check(self) -> bool:
        return self.healthy

    async def aclose(self):
        self.closed = True


CRISIS_PAYLOAD = {
    "events": [
        {
            "id": 1,
            "title": "Red Sea Shipping Attacks",
            "description": "Attacks on commercial vessels reroute global shipping",
            "date": "2026-09-30",
            "type": "War",
            "severity": "High",
            "location": "Red Sea",
            "status": "Escalating",
            "riskScore": 81,
            "marketImpact": -1.2,
            "companies": [
                {
                    "name": "Maersk",
                    "symbol": "AMKBY",
                    "price": 8.4,
                    "change": 0.3,
                    "changePercent": 3.7,
                    "category": "Logistics",
                    "role": "Container shipping",
                    "involvement": "Higher freight rates on longer routes",
                    "impact": "Revenue boost from rate spikes",
                    "confidence": 0.7,
                }
            ],
        },
        {
            "id": 2,
            "title": "Andean Earthquake",
            "description": "Magnitude 7.4 earthquake damages mining infrastructure",
            "date": "2026-10-02",
            "type": "Natural Disaster",
            "severity": "Medium",
            "location": "Chile",
            "status": "Ongoing",
            "riskScore": 58,
            "marketImpact": 0.4,
            "companies": [],
        },
    ]
}

OPPORTUNITY_PAYLOAD = {
    "opportunities": [
        {
            "symbol": "NOC",
            "companyName": "Northrop Grumman",
            "currentPrice": 470.0,
            "profitProbability": 60,
            "expectedReturn": 10.0,
            "timeToProfit": 45,
            "crisisContext": "Red Sea Shipping Attacks",
            "investmentThesis": "Naval escort operations increase demand for surveillance and strike systems.",
            "riskFactors": ["Ceasefire"],
            "entryPrice": 470.0,
            "targetPrice": 520.0,
            "stopLoss": 440.0,
            "confidence": 70,
        },
        {
            "symbol": "ZIM",
            "companyName": "ZIM Integrated Shipping",
            "currentPrice": 18.0,
            "profitProbability": 80,
            "expectedReturn": 25.0,
            "timeToProfit": 20,
            "crisisContext": "Red Sea Shipping Attacks",
            "investmentThesis": "Spot container rates rise sharply while capacity is absorbed by rerouting.",
            "riskFactors": ["Rate normalisation"],
            "entryPrice": 18.0,
            "targetPrice": 22.5,
            "stopLoss": 16.0,
            "confidence": 65,
        },
    ]
}

SIGNAL_PAYLOAD = {
    "signals": [
        {
            "symbol": "ZIM",
            "action": "BUY",
            "confidence": 75,
            "targetPrice": 22.5,
            "stopLoss": 16.0,
            "timeHorizon": "short",
            "reasoning": "Freight rates react within weeks of rerouting.",
            "expectedReturn": 20.0,
            "riskLevel": "high",
            "crisisTrigger": "Red Sea Shipping Attacks",
        }
    ]
}


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the developer's environment."""
    return Settings(
        _env_file=None,
        model_provider="anthropic",
        anthropic_api_key="test-key",
        replicate_api_token="test-token",
        request_timeout=5.0,
        rate_limit_max_requests=1000,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_invoker() -> Callable[..., FakeInvoker]:
    """Factory for scripted model backends."""
    return FakeInvoker


@pytest.fixture
def crisis_payload() -> dict:
    return json.loads(json.dumps(CRISIS_PAYLOAD))


@pytest.fixture
def crisis_text() -> str:
    """Crisis payload as a model would return it: fenced and wrapped in prose."""
    return "Here is the analysis you asked for:\n```json\n" + json.dumps(CRISIS_PAYLOAD) + "\n```\nLet me know!"


@pytest.fixture
def opportunity_text() -> str:
    return json.dumps(OPPORTUNITY_PAYLOAD)


@pytest.fixture
def signal_text() -> str:
    return json.dumps(SIGNAL_PAYLOAD)


@pytest.fixture
def make_service(settings, clock):
    """Factory for an AnalysisService around a scripted backend."""
    from crisisfeed.api.services.analysis_service import AnalysisService

    def factory(*outputs, delay: float = 0.0) -> AnalysisService:
        return AnalysisService(settings, invoker=FakeInvoker(outputs, delay=delay), cache=ResultCache(clock=clock))

    return factory


@pytest.fixture
def make_app(settings):
    """Factory for an app wired to a given service."""
    from crisisfeed.api.main import create_app

    def factory(service, **overrides):
        return create_app(settings.model_copy(update=overrides), service=service)

    return factory


@pytest.fixture
def client(make_app, make_service, crisis_text) -> Generator[TestClient, None, None]:
    """Test client for an app whose backend answers with the crisis payload."""
    app = make_app(make_service(crisis_text))
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def slow_service(make_service, crisis_text):
    """Service whose backend takes a moment to answer."""
    return make_service(crisis_text, delay=0.05)


@pytest_asyncio.fixture
async def async_client(make_app, slow_service) -> AsyncGenerator[AsyncClient, None]:
    """Async client for an app backed by ``slow_service``."""
    transport = ASGITransport(app=make_app(slow_service))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
