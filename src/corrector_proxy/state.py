"""Per-application service wiring.

All mutable request-path state (rate-limit windows, cached outputs, pending
upstream calls) lives on one ``ProxyState`` owned by the FastAPI app, so two
apps in the same process never share counters or cache entries.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session, sessionmaker

from corrector_proxy.core.settings import Settings
from corrector_proxy.db.session import create_session_factory
from corrector_proxy.services.cache import ResponseCache
from corrector_proxy.services.dedupe import DedupCoordinator
from corrector_proxy.services.rate_limit import Clock, FixedWindowRateLimiter, monotonic_ms
from corrector_proxy.services.registry import InstallationRegistry
from corrector_proxy.services.upstream import (
    TextTransformer,
    UpstreamClient,
    UpstreamResult,
    load_upstream_config,
    unexpected_upstream_error,
)


@dataclass
class ProxyState:
    """Services shared by every request handled by one app instance."""

    settings: Settings
    registry: InstallationRegistry
    global_limiter: FixedWindowRateLimiter
    token_limiter: FixedWindowRateLimiter
    cache: ResponseCache
    dedupe: DedupCoordinator[UpstreamResult]
    upstream: TextTransformer


def build_state(
    settings: Settings,
    *,
    upstream: TextTransformer | None = None,
    session_factory: sessionmaker[Session] | None = None,
    clock: Clock = monotonic_ms,
) -> ProxyState:
    """Construct fresh services for one app instance."""
    if session_factory is None:
        session_factory = create_session_factory(settings.database_url, echo=settings.sql_debug)
    if upstream is None:
        upstream = UpstreamClient(load_upstream_config(settings))

    return ProxyState(
        settings=settings,
        registry=InstallationRegistry(session_factory),
        global_limiter=FixedWindowRateLimiter(
            max_requests=settings.global_rate_max,
            window_ms=settings.global_rate_window_ms,
            clock=clock,
        ),
        token_limiter=FixedWindowRateLimiter(
            max_requests=settings.token_rate_max,
            window_ms=settings.token_rate_window_ms,
            clock=clock,
        ),
        cache=ResponseCache(
            ttl_ms=settings.cache_ttl_ms,
            max_entries=settings.cache_max_entries,
            clock=clock,
        ),
        dedupe=DedupCoordinator(on_error=unexpected_upstream_error),
        upstream=upstream,
    )
