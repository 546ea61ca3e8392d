# src/corrector_proxy/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .health import router as health_router
from .register import router as register_router
from .transform import router as transform_router

__all__ = ["health_router", "register_router", "transform_router"]
