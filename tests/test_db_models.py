"""Unit tests for the ORM models defined in corrector_proxy.models.

These tests verify basic mapping correctness: table name, primary key,
the token-hash index, and column defaults applied on insert.
"""

from sqlalchemy import inspect

from corrector_proxy.db.session import create_session_factory
from corrector_proxy.models import Installation


def test_table_name_and_primary_key():
    """Installation rows are keyed by install_id."""
    table = Installation.__table__
    assert Installation.__tablename__ == "installations"
    assert {c.name for c in table.primary_key} == {"install_id"}


def test_token_hash_is_indexed():
    """Resolving a token is a lookup by hash, so the column must be indexed."""
    table = Installation.__table__
    indexed = {col.name for index in table.indexes for col in index.columns}
    assert "token_hash" in indexed


def test_defaults_applied_on_insert(database_url):
    """New rows start unbanned on the free plan with both timestamps set."""
    session_factory = create_session_factory(database_url)
    with session_factory() as session:
        session.add(Installation(install_id="123e4567-e89b-12d3-a456-426614174000", token_hash="x"))
        session.commit()
        row = session.get(Installation, "123e4567-e89b-12d3-a456-426614174000")
        assert row is not None
        assert row.banned is False
        assert row.plan == "free"
        assert row.version is None
        assert row.created_at is not None
        assert row.last_seen_at is not None


def test_create_session_factory_creates_table(database_url):
    session_factory = create_session_factory(database_url)
    engine = session_factory.kw["bind"]
    assert "installations" in inspect(engine).get_table_names()
