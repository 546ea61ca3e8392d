# src/corrector_proxy/api/v1/endpoints/transform.py
"""Text transform endpoint."""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from fastapi import APIRouter, Request

from corrector_proxy.api.v1.dependencies import RequestIdDep, StateDep
from corrector_proxy.core.errors import ErrorCode, ProxyError
from corrector_proxy.core.security import get_bearer_token
from corrector_proxy.schemas.errors import ErrorResponse
from corrector_proxy.schemas.transform import TransformResponse
from corrector_proxy.services.cache import fingerprint
from corrector_proxy.services.registry import InstallationRecord
from corrector_proxy.services.upstream import UpstreamResult
from corrector_proxy.services.validation import (
    TransformInput,
    forced_error_code,
    validate_transform_payload,
)
from corrector_proxy.state import ProxyState

logger = logging.getLogger(__name__)

router = APIRouter(tags=["transform"])

TEST_ERROR_HEADER = "X-Test-Error"


async def _read_json(request: Request) -> Any:
    body = await request.body()
    if not body:
        return {}
    try:
        return json.loads(body)
    except ValueError as err:
        raise ProxyError(ErrorCode.INVALID_REQUEST, "Invalid JSON") from err


async def _authenticate(request: Request, state: ProxyState) -> InstallationRecord:
    """Resolve the bearer token and apply ban and per-token rate checks."""
    token = get_bearer_token(request.headers.get("Authorization"))
    if not token:
        raise ProxyError(ErrorCode.UNAUTHORIZED)

    record = await state.registry.resolve(token)
    if record is None:
        raise ProxyError(ErrorCode.UNAUTHORIZED)

    if record.banned:
        raise ProxyError(ErrorCode.BANNED)

    decision = state.token_limiter.check(record.token_hash)
    if decision.limited:
        raise ProxyError(ErrorCode.RATE_LIMITED, retry_after_ms=decision.retry_after_ms)

    await state.registry.touch(record.install_id)
    return record


async def _produce(
    state: ProxyState,
    data: TransformInput,
    cache_key: str,
    *,
    request_id: str | None,
    install_id: str,
) -> UpstreamResult:
    start = time.monotonic()
    logger.info(
        "transform request_id=%s install_id=%s mode=%s len=%d cached=false",
        request_id,
        install_id,
        data.mode,
        len(data.text),
    )

    result = await state.upstream.transform(data.text, data.mode)
    if not result.ok:
        return result

    if result.output:
        state.cache.set(cache_key, result.output)

    logger.info(
        "transform request_id=%s install_id=%s processing_time_ms=%d",
        request_id,
        install_id,
        int((time.monotonic() - start) * 1000),
    )
    return result


@router.post(
    "/transform",
    response_model=TransformResponse,
    response_model_exclude_none=True,
    responses={
        code: {"model": ErrorResponse} for code in (400, 401, 402, 403, 429, 500, 503)
    },
)
async def transform_text(
    request: Request,
    state: StateDep,
    request_id: RequestIdDep,
) -> TransformResponse:
    """Transform user-selected text through the upstream completion API.

    Order of checks: bearer token, ban flag, per-token rate limit, input
    validation. Identical requests within the cache TTL are answered from
    the cache; identical concurrent requests share one upstream call.
    """
    record = await _authenticate(request, state)
    payload = await _read_json(request)

    if state.settings.test_mode:
        forced = forced_error_code(payload, request.headers.get(TEST_ERROR_HEADER))
        if forced:
            raise ProxyError.from_code(forced)

    data = validate_transform_payload(payload, max_text_length=state.settings.max_text_length)
    cache_key = fingerprint(data.mode, data.style, data.text)

    cached = state.cache.get(cache_key)
    if cached is not None:
        logger.info(
            "transform request_id=%s install_id=%s mode=%s len=%d cached=true",
            request_id,
            record.install_id,
            data.mode,
            len(data.text),
        )
        return TransformResponse(output=cached, cached=True)

    result = await state.dedupe.coordinate(
        cache_key,
        lambda: _produce(
            state,
            data,
            cache_key,
            request_id=request_id,
            install_id=record.install_id,
        ),
    )
    if result.error is not None:
        error = result.error
        # Each waiter raises its own instance of the shared error.
        raise ProxyError(error.code, error.message, retry_after_ms=error.retry_after_ms)
    return TransformResponse(output=result.output or "")
