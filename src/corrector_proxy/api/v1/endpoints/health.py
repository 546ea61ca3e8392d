# src/corrector_proxy/api/v1/endpoints/health.py
"""Liveness endpoint."""

from __future__ import annotations

import time

from fastapi import APIRouter

from corrector_proxy.api.v1.dependencies import SettingsDep
from corrector_proxy.schemas.transform import HealthResponse

router = APIRouter(tags=["system"])


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: SettingsDep) -> HealthResponse:
    """Report that the service is running and which environment it serves."""
    return HealthResponse(ok=True, env=settings.proxy_env, time=int(time.time() * 1000))
