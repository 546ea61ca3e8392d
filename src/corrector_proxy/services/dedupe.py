"""In-flight request deduplication.

Concurrent callers that present the same fingerprint share one producer call.
The first caller opens a pending group and starts the producer; later callers
attach to the group and wait for its result. The group leaves the index in the
same synchronous step that publishes the result, so a caller arriving after
settlement starts a fresh call instead of seeing a stale group.

No locks are needed: checking for a group and inserting one happen without an
intervening ``await``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT")


@dataclass
class PendingGroup(Generic[ResultT]):
    """One outstanding producer call and the number of callers riding on it."""

    future: asyncio.Future[ResultT]
    waiters: int = 1
    task: asyncio.Task[None] | None = field(default=None, repr=False)


class DedupCoordinator(Generic[ResultT]):
    """Run at most one producer per key and broadcast its result.

    ``on_error`` converts an exception raised by a producer into a result
    value, which every waiter then receives. The coordinator itself never
    raises a producer's exception.
    """

    def __init__(self, on_error: Callable[[BaseException], ResultT]) -> None:
        self._on_error = on_error
        self._groups: dict[str, PendingGroup[ResultT]] = {}

    async def coordinate(
        self,
        key: str,
        produce: Callable[[], Awaitable[ResultT]],
    ) -> ResultT:
        """Return the shared result for ``key``, calling ``produce`` only if no call is pending."""
        group = self._groups.get(key)
        if group is not None:
            group.waiters += 1
            logger.debug("Joined in-flight request key=%s waiters=%d", key, group.waiters)
            # Shield so a departing waiter cannot cancel the shared future.
            return await asyncio.shield(group.future)

        loop = asyncio.get_running_loop()
        group = PendingGroup(future=loop.create_future())
        self._groups[key] = group
        # The producer runs as its own task so it outlives any single caller.
        group.task = loop.create_task(self._run(key, group, produce))
        return await asyncio.shield(group.future)

    async def _run(
        self,
        key: str,
        group: PendingGroup[ResultT],
        produce: Callable[[], Awaitable[ResultT]],
    ) -> None:
        try:
            result = await produce()
        except asyncio.CancelledError as exc:
            self._settle(key, group, self._on_error(exc))
            raise
        except Exception as exc:
            logger.exception("Producer failed for key=%s", key)
            result = self._on_error(exc)
        self._settle(key, group, result)

    def _settle(self, key: str, group: PendingGroup[ResultT], result: ResultT) -> None:
        if self._groups.get(key) is group:
            del self._groups[key]
        if not group.future.done():
            group.future.set_result(result)

    def waiters(self, key: str) -> int:
        """Return how many callers share the pending call for ``key`` (0 if none)."""
        group = self._groups.get(key)
        return group.waiters if group is not None else 0

    def __contains__(self, key: object) -> bool:
        return key in self._groups

    def __len__(self) -> int:
        return len(self._groups)
