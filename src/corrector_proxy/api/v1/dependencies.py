"""Shared API dependencies giving handlers access to per-app services."""

from typing import Annotated

from fastapi import Depends, Request

from corrector_proxy.core.settings import Settings
from corrector_proxy.state import ProxyState


def get_state(request: Request) -> ProxyState:
    """Return the services owned by the app serving this request."""
    return request.app.state.proxy


def get_settings(request: Request) -> Settings:
    return get_state(request).settings


def get_request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


# Type aliases for dependency injection
StateDep = Annotated[ProxyState, Depends(get_state)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
RequestIdDep = Annotated[str | None, Depends(get_request_id)]
