"""Transform and health response schemas."""
from __future__ import annotations

from pydantic import BaseModel, Field


class TransformResponse(BaseModel):
    """Successful transform result."""

    output: str = Field(..., description="Transformed text, possibly empty")
    cached: bool | None = Field(None, description="True when served from the response cache")


class HealthResponse(BaseModel):
    """Liveness payload."""

    ok: bool
    env: str
    time: int = Field(..., description="Server time in epoch milliseconds")
