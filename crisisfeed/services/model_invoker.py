"""Model backends behind a single invocation boundary."""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Union

import anthropic
import httpx

from crisisfeed.config import Settings
from crisisfeed.errors import InvocationCause, ModelInvocationError
from crisisfeed.logger import get_logger

logger = get_logger(__name__)

RawModelOutput = Union[str, list[str]]

ANTHROPIC_BASE_URL = "https://api.anthropic.com"
REPLICATE_BASE_URL = "https://api.replicate.com/v1"
# Replicate holds a synchronous prediction open for at most 60 seconds
REPLICATE_MAX_WAIT = 60


@dataclass(frozen=True)
class InvocationConfig:
    """Per-backend call parameters."""

    model: str
    max_tokens: int = 4096
    temperature: float = 0.3
    timeout: float = 45.0
    health_check_timeout: float = 5.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "InvocationConfig":
        return cls(
            model=settings.model_identifier,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
            timeout=settings.request_timeout,
            health_check_timeout=settings.health_check_timeout,
        )


def join_output(output: RawModelOutput) -> str:
    """Concatenate streamed chunks into one string."""
    if isinstance(output, list):
        return "".join(str(chunk) for chunk in output)
    return output


class ModelInvoker(ABC):
    """Sends one prompt to a model and returns its raw text.

    Exactly one outbound request is made per ``invoke`` call. Every failure
    leaves this class as a ``ModelInvocationError``.
    """

    provider = "unknown"
    health_url = ""

    def __init__(
        self,
        config: InvocationConfig,
        credential: Optional[str],
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.credential = credential
        self._transport = transport

    async def invoke(self, prompt: str) -> str:
        """Run ``prompt`` against the backend and return its text output."""
        if not self.credential:
            raise ModelInvocationError(
                InvocationCause.UNAUTHORIZED, f"{self.provider} credential not configured"
            )

        logger.info(f"Invoking {self.provider} model {self.config.model} ({len(prompt)} char prompt)")
        try:
            output = await asyncio.wait_for(self._request(prompt), timeout=self.config.timeout)
        except ModelInvocationError:
            raise
        except asyncio.TimeoutError as e:
            logger.warning(f"{self.provider} call exceeded {self.config.timeout}s")
            raise ModelInvocationError(InvocationCause.UNAVAILABLE, "model call timed out") from e
        except Exception as e:
            cause = self._classify(e)
            logger.error(f"{self.provider} call failed ({cause.value}): {type(e).__name__}")
            raise ModelInvocationError(cause, type(e).__name__) from e

        text = join_output(output)
        logger.info(f"{self.provider} returned {len(text)} chars")
        return text

    async def health_check(self) -> bool:
        """Return True when the backend host answers at all."""
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self.config.health_check_timeout
            ) as client:
                response = await client.get(self.health_url)
            reachable = response.status_code < 500
        except httpx.HTTPError as e:
            logger.warning(f"{self.provider} health check failed: {type(e).__name__}")
            return False
        logger.debug(f"{self.provider} health check status {response.status_code}")
        return reachable

    @abstractmethod
    async def _request(self, prompt: str) -> RawModelOutput:
        """Perform the provider call."""

    @abstractmethod
    def _classify(self, error: Exception) -> InvocationCause:
        """Map a provider exception to a cause."""

    async def aclose(self):
        """Release network resources."""


class AnthropicInvoker(ModelInvoker):
    """Claude via the Anthropic Messages API."""

    provider = "anthropic"
    health_url = ANTHROPIC_BASE_URL

    def __init__(
        self,
        config: InvocationConfig,
        credential: Optional[str],
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(config, credential, transport)
        self.client = None
        if credential:
            http_client = httpx.AsyncClient(transport=transport) if transport else None
            # Retries belong to the caller, never to the SDK
            self.client = anthropic.AsyncAnthropic(
                api_key=credential,
                timeout=config.timeout,
                max_retries=0,
                http_client=http_client,
            )
        logger.info(f"AnthropicInvoker initialized with model: {config.model}")

    async def _request(self, prompt: str) -> RawModelOutput:
        response = await self.client.messages.create(
            model=self.config.model,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        logger.debug(f"Claude response received, usage: {response.usage}")
        return [block.text for block in response.content if block.type == "text"]

    def _classify(self, error: Exception) -> InvocationCause:
        if isinstance(error, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
            return InvocationCause.UNAUTHORIZED
        if isinstance(error, anthropic.RateLimitError):
            return InvocationCause.RATE_LIMITED
        if isinstance(error, anthropic.APIConnectionError):
            return InvocationCause.UNAVAILABLE
        if isinstance(error, anthropic.APIStatusError) and error.status_code >= 500:
            return InvocationCause.UNAVAILABLE
        return InvocationCause.UNKNOWN

    async def aclose(self):
        if self.client is not None:
            await self.client.close()
            logger.debug("AnthropicInvoker client closed")


class ReplicateInvoker(ModelInvoker):
    """Any Replicate-hosted model via the predictions HTTP API."""

    provider = "replicate"
    health_url = REPLICATE_BASE_URL

    def __init__(
        self,
        config: InvocationConfig,
        credential: Optional[str],
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(config, credential, transport)
        wait = max(1, min(int(config.timeout), REPLICATE_MAX_WAIT))
        self.client = httpx.AsyncClient(
            base_url=REPLICATE_BASE_URL,
            headers={
                "Authorization": f"Bearer {credential or ''}",
                "Prefer": f"wait={wait}",
            },
            timeout=config.timeout,
            transport=transport,
        )
        logger.info(f"ReplicateInvoker initialized with model: {config.model}")

    async def _request(self, prompt: str) -> RawModelOutput:
        response = await self.client.post(
            f"/models/{self.config.model}/predictions",
            json={
                "input": {
                    "prompt": prompt,
                    "max_tokens": self.config.max_tokens,
                    "temperature": self.config.temperature,
                }
            },
        )
        response.raise_for_status()
        data: dict[str, Any] = response.json()

        status = data.get("status")
        logger.debug(f"Replicate prediction {data.get('id')} status: {status}")
        if status == "succeeded":
            output = data.get("output")
            if output is None:
                return ""
            if isinstance(output, list):
                return [str(chunk) for chunk in output]
            return str(output)
        if status in ("failed", "canceled"):
            raise ModelInvocationError(InvocationCause.UNKNOWN, f"prediction {status}")
        raise ModelInvocationError(
            InvocationCause.UNAVAILABLE, "prediction did not finish within the wait window"
        )

    def _classify(self, error: Exception) -> InvocationCause:
        if isinstance(error, httpx.HTTPStatusError):
            code = error.response.status_code
            if code in (401, 403):
                return InvocationCause.UNAUTHORIZED
            if code == 429:
                return InvocationCause.RATE_LIMITED
            if code >= 500:
                return InvocationCause.UNAVAILABLE
            return InvocationCause.UNKNOWN
        if isinstance(error, httpx.TransportError):
            return InvocationCause.UNAVAILABLE
        return InvocationCause.UNKNOWN

    async def aclose(self):
        await self.client.aclose()
        logger.debug("ReplicateInvoker client closed")


def create_invoker(
    settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
) -> ModelInvoker:
    """Build the invoker for the configured provider."""
    config = InvocationConfig.from_settings(settings)
    if settings.model_provider == "replicate":
        return ReplicateInvoker(config, settings.replicate_api_token, transport)
    return AnthropicInvoker(config, settings.anthropic_api_key, transport)
