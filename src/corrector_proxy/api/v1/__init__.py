# src/corrector_proxy/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import health_router, register_router, transform_router

__all__ = ["health_router", "register_router", "transform_router"]
