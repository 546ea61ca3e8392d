"""Tests for the installations admin script."""

from __future__ import annotations

import asyncio

import pytest

from corrector_proxy.db.session import create_session_factory
from corrector_proxy.scripts.installations import main
from corrector_proxy.services.registry import InstallationRegistry
from tests.conftest import SCENARIO_INSTALL_ID


@pytest.fixture()
def registry(database_url: str) -> InstallationRegistry:
    registry = InstallationRegistry(create_session_factory(database_url))
    asyncio.run(registry.register(SCENARIO_INSTALL_ID, "1.2.0"))
    return registry


def _is_banned(registry: InstallationRegistry) -> bool:
    records = asyncio.run(registry.list_installations())
    return records[0].banned


def test_list_prints_each_installation(registry, database_url, capsys) -> None:
    assert main(["--url", database_url, "list"]) == 0
    out = capsys.readouterr().out
    assert SCENARIO_INSTALL_ID in out
    assert "active" in out
    assert "plan=free" in out


def test_ban_and_unban(registry, database_url, capsys) -> None:
    assert main(["--url", database_url, "ban", SCENARIO_INSTALL_ID]) == 0
    assert f"{SCENARIO_INSTALL_ID} banned" in capsys.readouterr().out
    assert _is_banned(registry)

    assert main(["--url", database_url, "unban", SCENARIO_INSTALL_ID]) == 0
    assert f"{SCENARIO_INSTALL_ID} unbanned" in capsys.readouterr().out
    assert not _is_banned(registry)


def test_ban_unknown_installation_fails(registry, database_url, capsys) -> None:
    assert main(["--url", database_url, "ban", "00000000-0000-4000-8000-000000000000"]) == 1
    assert "unknown install_id" in capsys.readouterr().err


def test_missing_command_exits() -> None:
    with pytest.raises(SystemExit):
        main([])
