"""Shared Pydantic schema for error responses."""
from __future__ import annotations

from pydantic import BaseModel, Field


class ErrorBody(BaseModel):
    """Machine-readable failure description."""

    code: str = Field(..., description="One of the proxy error codes, e.g. RATE_LIMITED")
    message: str = Field(..., description="Human-readable explanation")
    retry_after_ms: int = Field(0, description="Milliseconds to wait before retrying")


class ErrorResponse(BaseModel):
    """Envelope returned with every non-2xx status."""

    error: ErrorBody
