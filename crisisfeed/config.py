"""Environment configuration."""

from typing import Literal, Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Model backend
    model_provider: Literal["anthropic", "replicate"] = "anthropic"
    anthropic_api_key: Optional[str] = None
    replicate_api_token: Optional[str] = None

    # LLM settings
    model: str = "claude-sonnet-4-5-20250929"
    replicate_model: str = "openai/gpt-5"
    max_tokens: int = 4096
    temperature: float = 0.3
    request_timeout: float = 45.0
    health_check_timeout: float = 5.0
    preflight_health_check: bool = False

    # Cache TTLs (seconds)
    crisis_cache_ttl: float = 30 * 60
    financial_cache_ttl: float = 5 * 60
    company_cache_ttl: float = 5 * 60

    # HTTP surface
    cors_origins: list[str] = ["http://localhost:8080", "http://localhost:5173"]
    rate_limit_window: float = 15 * 60
    rate_limit_max_requests: int = 10

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def model_identifier(self) -> str:
        """Model id for the configured provider."""
        if self.model_provider == "replicate":
            return self.replicate_model
        return self.model


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()
