# tests/conftest.py
from __future__ import annotations

import asyncio
import os
import uuid
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

os.environ.setdefault("OPENAI_API_KEY", "test-key")

from corrector_proxy.core.errors import ProxyError
from corrector_proxy.core.settings import Settings, load_settings
from corrector_proxy.main import create_app
from corrector_proxy.services.upstream import UpstreamResult

SCENARIO_INSTALL_ID = "123e4567-e89b-12d3-a456-426614174000"


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class StubUpstream:
    """Stands in for the completion API and counts calls."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self.delay = 0.0
        self.error: ProxyError | None = None
        self.output: str | None = None
        self.closed = False

    async def transform(self, text: str, mode: str) -> UpstreamResult:
        self.calls.append((text, mode))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            return UpstreamResult(error=self.error)
        if self.output is not None:
            return UpstreamResult(output=self.output)
        output = "hello" if mode == "polish" and text == "helo" else "OK"
        return UpstreamResult(output=output)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture()
def database_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'proxy.sqlite'}"


@pytest.fixture()
def test_settings(database_url: str) -> Settings:
    """Provide settings pointing at a throwaway database with test mode on."""
    return load_settings(
        openai_api_key="test-key",
        database_url=database_url,
        test_mode=True,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def upstream() -> StubUpstream:
    return StubUpstream()


@pytest.fixture()
def make_app(
    test_settings: Settings, upstream: StubUpstream, clock: FakeClock
) -> Callable[..., FastAPI]:
    """Return a factory building apps that share the stub upstream and clock."""

    def _make(**overrides: object) -> FastAPI:
        settings = test_settings.model_copy(update=overrides) if overrides else test_settings
        return create_app(settings, upstream=upstream, clock=clock)

    return _make


@pytest.fixture()
def app(make_app: Callable[..., FastAPI]) -> FastAPI:
    return make_app()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def register_install(client: TestClient, install_id: str | None = None) -> str:
    """Register an installation and return its bearer token."""
    response = client.post("/v1/register", json={"install_id": install_id or str(uuid.uuid4())})
    assert response.status_code == 200, response.text
    return response.json()["install_token"]


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def auth_headers(client: TestClient) -> dict[str, str]:
    """Return authorization headers for a freshly registered installation."""
    return bearer(register_install(client))
