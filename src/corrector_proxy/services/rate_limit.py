"""In-memory request rate limiting."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

Clock = Callable[[], int]


def monotonic_ms() -> int:
    """Return a monotonic clock reading in milliseconds."""
    return time.monotonic_ns() // 1_000_000


@dataclass
class RateWindow:
    """Counter state for a single key."""

    remaining: int
    reset_at: int


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a single rate-limit check."""

    limited: bool
    retry_after_ms: int = 0


class FixedWindowRateLimiter:
    """Approximate sliding-window limiter built on per-key fixed windows.

    A window opens on the first request from a key and resets once the clock
    passes its end, so up to twice the nominal rate can pass across a window
    boundary. Windows live in memory only and are never reclaimed.
    """

    def __init__(
        self,
        *,
        max_requests: int,
        window_ms: int,
        clock: Clock = monotonic_ms,
    ) -> None:
        if max_requests <= 0 or window_ms <= 0:
            raise ValueError("max_requests and window_ms must be positive")
        self.max_requests = max_requests
        self.window_ms = window_ms
        self._clock = clock
        self._windows: dict[str, RateWindow] = {}

    def check(self, key: str) -> RateLimitDecision:
        """Consume one request for ``key`` if the window allows it."""
        now = self._clock()
        window = self._windows.get(key)
        if window is None or now > window.reset_at:
            window = RateWindow(remaining=self.max_requests, reset_at=now + self.window_ms)
            self._windows[key] = window

        if window.remaining <= 0:
            return RateLimitDecision(limited=True, retry_after_ms=window.reset_at - now)

        window.remaining -= 1
        return RateLimitDecision(limited=False)

    def reset(self) -> None:
        self._windows.clear()

    def __len__(self) -> int:
        return len(self._windows)
