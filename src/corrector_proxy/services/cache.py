"""Response cache keyed by request fingerprint."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from corrector_proxy.services.rate_limit import Clock, monotonic_ms


def fingerprint(mode: str, style: str, text: str) -> str:
    """Return the cache/dedup key for a transform request.

    The text contributes only its SHA-256 digest, so keys stay short and log
    lines derived from them never carry user text.
    """
    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()
    return f"{mode}:{style}:{digest}"


@dataclass(frozen=True)
class CacheEntry:
    output: str
    timestamp: int


class ResponseCache:
    """TTL cache with an opportunistic sweep once the entry ceiling is exceeded.

    Expired entries read as misses but stay in place until a sweep. Sweeps
    remove only expired entries, so the store can exceed ``max_entries``
    while everything in it is still fresh.
    """

    def __init__(
        self,
        *,
        ttl_ms: int,
        max_entries: int = 1000,
        clock: Clock = monotonic_ms,
    ) -> None:
        self.ttl_ms = ttl_ms
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> str | None:
        entry = self._entries.get(key)
        if entry is None or self._clock() - entry.timestamp >= self.ttl_ms:
            return None
        return entry.output

    def set(self, key: str, output: str) -> None:
        self._entries[key] = CacheEntry(output=output, timestamp=self._clock())
        if len(self._entries) > self.max_entries:
            self._sweep()

    def _sweep(self) -> None:
        now = self._clock()
        expired = [
            key for key, entry in self._entries.items() if now - entry.timestamp >= self.ttl_ms
        ]
        for key in expired:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
