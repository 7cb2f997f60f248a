"""HTTP API response schemas."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status", examples=["ok"])
    browser: bool = Field(..., description="Whether the browser session is ready")
    timestamp: str = Field(..., description="Check timestamp (ISO 8601)")
