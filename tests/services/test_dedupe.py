from __future__ import annotations

import asyncio

import pytest

from corrector_proxy.services.dedupe import DedupCoordinator


def _on_error(exc: BaseException) -> str:
    return f"failed:{type(exc).__name__}"


async def _wait_for_waiters(coordinator: DedupCoordinator, key: str, count: int) -> None:
    for _ in range(200):
        if coordinator.waiters(key) == count:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"expected {count} waiters, saw {coordinator.waiters(key)}")


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_call():
    coordinator: DedupCoordinator[str] = DedupCoordinator(on_error=_on_error)
    gate = asyncio.Event()
    calls = 0

    async def produce() -> str:
        nonlocal calls
        calls += 1
        await gate.wait()
        return "result"

    tasks = [asyncio.create_task(coordinator.coordinate("key", produce)) for _ in range(5)]
    await _wait_for_waiters(coordinator, "key", 5)
    assert "key" in coordinator

    gate.set()
    results = await asyncio.gather(*tasks)

    assert results == ["result"] * 5
    assert calls == 1
    assert "key" not in coordinator
    assert len(coordinator) == 0


@pytest.mark.asyncio
async def test_failure_is_broadcast_as_result():
    coordinator: DedupCoordinator[str] = DedupCoordinator(on_error=_on_error)
    gate = asyncio.Event()

    async def produce() -> str:
        await gate.wait()
        raise RuntimeError("boom")

    tasks = [asyncio.create_task(coordinator.coordinate("key", produce)) for _ in range(3)]
    await _wait_for_waiters(coordinator, "key", 3)
    gate.set()
    results = await asyncio.gather(*tasks)

    assert results == ["failed:RuntimeError"] * 3
    assert len(coordinator) == 0


@pytest.mark.asyncio
async def test_group_removed_after_settlement_so_next_call_recomputes():
    coordinator: DedupCoordinator[int] = DedupCoordinator(on_error=lambda exc: -1)
    calls = 0

    async def produce() -> int:
        nonlocal calls
        calls += 1
        return calls

    assert await coordinator.coordinate("key", produce) == 1
    assert await coordinator.coordinate("key", produce) == 2
    assert calls == 2


@pytest.mark.asyncio
async def test_different_keys_run_independently():
    coordinator: DedupCoordinator[str] = DedupCoordinator(on_error=_on_error)
    seen: list[str] = []

    def make(label: str):
        async def produce() -> str:
            seen.append(label)
            await asyncio.sleep(0)
            return label

        return produce

    results = await asyncio.gather(
        coordinator.coordinate("a", make("a")),
        coordinator.coordinate("b", make("b")),
    )
    assert results == ["a", "b"]
    assert sorted(seen) == ["a", "b"]


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_cancel_shared_call():
    coordinator: DedupCoordinator[str] = DedupCoordinator(on_error=_on_error)
    gate = asyncio.Event()

    async def produce() -> str:
        await gate.wait()
        return "done"

    owner = asyncio.create_task(coordinator.coordinate("key", produce))
    follower = asyncio.create_task(coordinator.coordinate("key", produce))
    await _wait_for_waiters(coordinator, "key", 2)

    owner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await owner

    gate.set()
    assert await follower == "done"
