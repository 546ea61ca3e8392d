# src/corrector_proxy/models/installation.py
"""SQLAlchemy model for anonymous extension installations."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from corrector_proxy.db.session import Base
from corrector_proxy.db.time import utcnow


class Installation(Base):
    """One anonymous installation, keyed by its client-generated id.

    Only the SHA-256 hash of the current bearer token is stored. Registering
    again replaces ``token_hash``, which revokes the previous token.
    """

    __tablename__ = "installations"

    install_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    token_hash: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    banned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    plan: Mapped[str] = mapped_column(Text, nullable=False, default="free")
    version: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    last_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
