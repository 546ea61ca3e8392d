"""Installation registry: token issuance, resolution and last-seen tracking."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from corrector_proxy.core.errors import ErrorCode, ProxyError
from corrector_proxy.core.security import generate_install_token, hash_key
from corrector_proxy.db.time import utcnow
from corrector_proxy.models import Installation
from corrector_proxy.services.validation import is_valid_uuid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstallationRecord:
    """Detached snapshot of an installation row."""

    install_id: str
    token_hash: str
    banned: bool
    plan: str
    created_at: datetime
    last_seen_at: datetime

    @classmethod
    def from_row(cls, row: Installation) -> InstallationRecord:
        return cls(
            install_id=row.install_id,
            token_hash=row.token_hash,
            banned=bool(row.banned),
            plan=row.plan,
            created_at=row.created_at,
            last_seen_at=row.last_seen_at,
        )


class InstallationRegistry:
    """Persist one record per installation and map bearer tokens back to it.

    Database work runs in the threadpool so the event loop only suspends on
    storage calls; callers see plain coroutines.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    async def register(self, install_id: str, version: str | None = None) -> str:
        """Issue a new token for ``install_id`` and return it in plaintext.

        The stored hash is replaced, so any token issued earlier for the same
        installation stops resolving immediately.

        Raises:
            ProxyError: ``INVALID_REQUEST`` for a malformed id, ``INTERNAL``
                when storage is unavailable.
        """
        if not is_valid_uuid(install_id):
            raise ProxyError(ErrorCode.INVALID_REQUEST, "Invalid install_id")
        if version is not None and not isinstance(version, str):
            raise ProxyError(ErrorCode.INVALID_REQUEST, "Invalid version")

        token = generate_install_token()
        try:
            await run_in_threadpool(self._upsert, install_id, hash_key(token), version)
        except SQLAlchemyError as exc:
            logger.exception("Failed to store installation %s", install_id)
            raise ProxyError(ErrorCode.INTERNAL) from exc
        logger.info("Issued install token install_id=%s version=%s", install_id, version)
        return token

    async def resolve(self, token: str) -> InstallationRecord | None:
        """Return the installation owning ``token``, or None if nothing matches."""
        if not token:
            return None
        try:
            return await run_in_threadpool(self._find_by_hash, hash_key(token))
        except SQLAlchemyError as exc:
            logger.exception("Failed to resolve install token")
            raise ProxyError(ErrorCode.INTERNAL) from exc

    async def touch(self, install_id: str) -> None:
        """Refresh last-seen-at. Failures are logged and never raised."""
        try:
            await run_in_threadpool(self._touch, install_id)
        except SQLAlchemyError:
            logger.warning("Failed to touch installation %s", install_id, exc_info=True)

    async def set_banned(self, install_id: str, banned: bool) -> bool:
        """Set the ban flag. Returns False if the installation is unknown."""
        return await run_in_threadpool(self._set_banned, install_id, banned)

    async def list_installations(self) -> list[InstallationRecord]:
        """Return every installation, oldest first."""
        return await run_in_threadpool(self._list)

    def _upsert(self, install_id: str, token_hash: str, version: str | None) -> None:
        now = utcnow()
        with self._session_factory() as session:
            row = session.get(Installation, install_id)
            if row is None:
                session.add(
                    Installation(
                        install_id=install_id,
                        token_hash=token_hash,
                        version=version,
                        created_at=now,
                        last_seen_at=now,
                    )
                )
                try:
                    session.commit()
                    return
                except IntegrityError:
                    # A concurrent registration inserted the row first; rotate it instead.
                    session.rollback()
                    row = session.get(Installation, install_id)
                    if row is None:
                        raise
            row.token_hash = token_hash
            row.last_seen_at = now
            if version is not None:
                row.version = version
            session.commit()

    def _find_by_hash(self, token_hash: str) -> InstallationRecord | None:
        with self._session_factory() as session:
            row = session.scalars(
                select(Installation).where(Installation.token_hash == token_hash)
            ).first()
            return InstallationRecord.from_row(row) if row is not None else None

    def _touch(self, install_id: str) -> None:
        with self._session_factory() as session:
            session.execute(
                update(Installation)
                .where(Installation.install_id == install_id)
                .values(last_seen_at=utcnow())
            )
            session.commit()

    def _set_banned(self, install_id: str, banned: bool) -> bool:
        with self._session_factory() as session:
            row = session.get(Installation, install_id)
            if row is None:
                return False
            row.banned = banned
            session.commit()
            return True

    def _list(self) -> list[InstallationRecord]:
        with self._session_factory() as session:
            rows = session.scalars(select(Installation).order_by(Installation.created_at))
            return [InstallationRecord.from_row(row) for row in rows]
