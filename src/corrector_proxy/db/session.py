"""Database session configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


def _ensure_sqlite_directory(database_url: str) -> None:
    database = make_url(database_url).database
    if database and database != ":memory:":
        Path(database).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)


def _enable_wal(dbapi_connection: Any, _connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL")
    finally:
        cursor.close()


def create_db_engine(database_url: str, *, echo: bool = False) -> Engine:
    """Create an engine for the configured storage location.

    File-backed SQLite databases get their parent directory created and run
    in WAL mode; connections may be used from worker threads.
    """
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True, echo=echo)

    _ensure_sqlite_directory(database_url)
    engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False},
        echo=echo,
    )
    if make_url(database_url).database not in (None, "", ":memory:"):
        event.listen(engine, "connect", _enable_wal)
    return engine


def create_session_factory(
    database_url: str, *, echo: bool = False
) -> sessionmaker[Session]:
    """Return a session factory bound to a fresh engine with all tables created."""
    engine = create_db_engine(database_url, echo=echo)
    create_tables(engine)
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def create_tables(engine: Engine) -> None:
    """Create all database tables."""
    # Ensure model modules are imported so that metadata is populated.
    import corrector_proxy.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
