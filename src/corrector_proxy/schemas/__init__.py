"""Pydantic schemas for request and response bodies."""

from .errors import ErrorBody, ErrorResponse
from .installation import RegisterRequest, RegisterResponse
from .transform import HealthResponse, TransformResponse

__all__ = [
    "ErrorBody",
    "ErrorResponse",
    "HealthResponse",
    "RegisterRequest",
    "RegisterResponse",
    "TransformResponse",
]
