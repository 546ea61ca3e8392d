# src/corrector_proxy/models/__init__.py
"""SQLAlchemy models for the corrector proxy."""

from .installation import Installation

__all__ = ["Installation"]
