# src/corrector_proxy/api/v1/endpoints/register.py
"""Installation registration endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from corrector_proxy.api.v1.dependencies import StateDep
from corrector_proxy.schemas.errors import ErrorResponse
from corrector_proxy.schemas.installation import RegisterRequest, RegisterResponse

router = APIRouter(tags=["installations"])


@router.post(
    "/register",
    response_model=RegisterResponse,
    responses={400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)
async def register_installation(payload: RegisterRequest, state: StateDep) -> RegisterResponse:
    """Issue a bearer token for an installation, revoking any earlier one.

    Args:
        payload: Installation id (UUID) and optional extension version
        state: Per-app services

    Returns:
        The new plaintext token; it cannot be retrieved again
    """
    token = await state.registry.register(payload.install_id, payload.version)
    return RegisterResponse(install_token=token)
