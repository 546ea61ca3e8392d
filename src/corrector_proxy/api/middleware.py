"""HTTP middleware applied to every route."""

from __future__ import annotations

import logging
import secrets
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, Response

from corrector_proxy.core.errors import ErrorCode, ProxyError, error_response
from corrector_proxy.core.security import get_bearer_token, hash_key

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"

CallNext = Callable[[Request], Awaitable[Response]]


def global_rate_limit_key(request: Request) -> str:
    """Key callers by bearer token when one is sent, otherwise by client IP."""
    token = get_bearer_token(request.headers.get("Authorization"))
    if token:
        return f"tok:{hash_key(token)}"
    host = request.client.host if request.client else "unknown"
    return f"ip:{host}"


async def request_id_middleware(request: Request, call_next: CallNext) -> Response:
    request_id = request.headers.get(REQUEST_ID_HEADER) or secrets.token_hex(8)
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


async def global_rate_limit_middleware(request: Request, call_next: CallNext) -> Response:
    limiter = request.app.state.proxy.global_limiter
    decision = limiter.check(global_rate_limit_key(request))
    if decision.limited:
        logger.info(
            "Global rate limit hit request_id=%s retry_after_ms=%d",
            getattr(request.state, "request_id", None),
            decision.retry_after_ms,
        )
        return error_response(
            ProxyError(ErrorCode.RATE_LIMITED, retry_after_ms=decision.retry_after_ms)
        )
    return await call_next(request)


def install_middleware(app: FastAPI) -> None:
    """Attach middleware; the request id wraps the rate limiter."""
    # Starlette runs the most recently added middleware first.
    app.middleware("http")(global_rate_limit_middleware)
    app.middleware("http")(request_id_middleware)
