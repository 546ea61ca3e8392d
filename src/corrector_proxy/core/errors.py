"""Closed error taxonomy shared by every proxy endpoint.

Every non-2xx response has the body::

    {"error": {"code": str, "message": str, "retry_after_ms": int}}

and carries a ``Retry-After`` header (whole seconds, rounded up) whenever
``retry_after_ms`` is positive.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Machine-readable error codes returned to the extension."""

    INVALID_REQUEST = "INVALID_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    PAYMENT_REQUIRED = "PAYMENT_REQUIRED"
    BANNED = "BANNED"
    RATE_LIMITED = "RATE_LIMITED"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    INTERNAL = "INTERNAL"


@dataclass(frozen=True)
class ErrorDefinition:
    """HTTP status and default message for an error code."""

    status: int
    message: str


ERROR_DEFINITIONS: dict[ErrorCode, ErrorDefinition] = {
    ErrorCode.INVALID_REQUEST: ErrorDefinition(status.HTTP_400_BAD_REQUEST, "Invalid request"),
    ErrorCode.UNAUTHORIZED: ErrorDefinition(status.HTTP_401_UNAUTHORIZED, "Unauthorized"),
    ErrorCode.PAYMENT_REQUIRED: ErrorDefinition(
        status.HTTP_402_PAYMENT_REQUIRED, "Payment required"
    ),
    ErrorCode.BANNED: ErrorDefinition(status.HTTP_403_FORBIDDEN, "Banned"),
    ErrorCode.RATE_LIMITED: ErrorDefinition(
        status.HTTP_429_TOO_MANY_REQUESTS, "Too many requests"
    ),
    ErrorCode.UPSTREAM_UNAVAILABLE: ErrorDefinition(
        status.HTTP_503_SERVICE_UNAVAILABLE, "Upstream unavailable"
    ),
    ErrorCode.INTERNAL: ErrorDefinition(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal error"),
}


class ProxyError(Exception):
    """A classified failure that maps directly onto an error response."""

    def __init__(
        self,
        code: ErrorCode,
        message: str | None = None,
        *,
        retry_after_ms: int = 0,
    ) -> None:
        self.code = code
        self.message = message or ERROR_DEFINITIONS[code].message
        self.retry_after_ms = max(0, int(retry_after_ms))
        super().__init__(f"{code.value}: {self.message}")

    @classmethod
    def from_code(cls, name: str, message: str | None = None) -> ProxyError:
        """Build an error from a code name, normalizing unknown names to INTERNAL."""
        try:
            code = ErrorCode(name)
        except ValueError:
            code = ErrorCode.INTERNAL
        return cls(code, message)

    @property
    def status_code(self) -> int:
        return ERROR_DEFINITIONS[self.code].status

    def to_payload(self) -> dict[str, dict[str, Any]]:
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "retry_after_ms": self.retry_after_ms,
            }
        }


def retry_after_seconds(retry_after_ms: int) -> int:
    """Convert a millisecond retry hint to whole seconds for the wire header."""
    return math.ceil(retry_after_ms / 1000)


def error_response(error: ProxyError) -> JSONResponse:
    """Render a ProxyError as a JSON response with the matching status."""
    headers: dict[str, str] = {}
    if error.retry_after_ms > 0:
        headers["Retry-After"] = str(retry_after_seconds(error.retry_after_ms))
    return JSONResponse(
        status_code=error.status_code,
        content=error.to_payload(),
        headers=headers,
    )


def _describe_validation_error(exc: RequestValidationError) -> str:
    for err in exc.errors():
        if err.get("type") == "json_invalid":
            return "Invalid JSON"
        loc = [part for part in err.get("loc", ()) if part != "body"]
        if loc:
            return f"Invalid {loc[0]}"
    return ERROR_DEFINITIONS[ErrorCode.INVALID_REQUEST].message


async def _proxy_error_handler(request: Request, exc: ProxyError) -> JSONResponse:
    return error_response(exc)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        ProxyError(ErrorCode.INVALID_REQUEST, _describe_validation_error(exc))
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", None)
    logger.exception("Unhandled error (request_id=%s): %s", request_id, exc)
    return error_response(ProxyError(ErrorCode.INTERNAL))


def install_error_handlers(app: FastAPI) -> None:
    """Register handlers so every failure leaves the app as a classified error."""
    app.add_exception_handler(ProxyError, _proxy_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
