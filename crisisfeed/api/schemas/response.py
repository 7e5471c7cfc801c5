"""API response models."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Health status")
    timestamp: datetime = Field(..., description="Server time")


class ErrorResponse(BaseModel):
    """Body of every non-2xx answer."""

    error: str = Field(..., description="Generic error message")
    fallback: Optional[dict[str, Any]] = Field(
        default=None, description="Static data the caller can render instead"
    )
