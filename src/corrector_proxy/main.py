# src/corrector_proxy/main.py
"""Main entry point for the corrector proxy."""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session, sessionmaker

from corrector_proxy import __version__
from corrector_proxy.api.middleware import install_middleware
from corrector_proxy.api.v1 import health_router, register_router, transform_router
from corrector_proxy.core.errors import install_error_handlers
from corrector_proxy.core.logging import configure_logging
from corrector_proxy.core.settings import ConfigurationError, Settings, load_settings
from corrector_proxy.services.rate_limit import Clock, monotonic_ms
from corrector_proxy.services.upstream import TextTransformer
from corrector_proxy.state import ProxyState, build_state

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Close the upstream client when the app shuts down."""
    yield
    proxy_state: ProxyState = app.state.proxy
    await proxy_state.upstream.close()


def create_app(
    settings: Settings | None = None,
    *,
    upstream: TextTransformer | None = None,
    session_factory: sessionmaker[Session] | None = None,
    clock: Clock = monotonic_ms,
) -> FastAPI:
    """Build a FastAPI app with its own registry, limiters, cache and upstream client.

    Raises:
        ConfigurationError: If ``settings`` is omitted and the environment is incomplete.
    """
    if settings is None:
        settings = load_settings()

    state = build_state(
        settings,
        upstream=upstream,
        session_factory=session_factory,
        clock=clock,
    )

    app = FastAPI(
        title="Corrector Proxy",
        description="Relay between the corrector extension and a text-completion API",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.proxy = state

    install_error_handlers(app)
    install_middleware(app)

    # Add CORS middleware last so preflight requests bypass rate limiting.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(register_router, prefix="/v1")
    app.include_router(transform_router, prefix="/v1")

    return app


def run() -> None:
    """Validate configuration and serve the app with uvicorn."""
    try:
        settings = load_settings()
    except ConfigurationError as exc:
        configure_logging()
        logger.error("%s. Set OPENAI_API_KEY in the environment or .env", exc)
        sys.exit(1)

    configure_logging(settings.log_level)
    app = create_app(settings)

    import uvicorn

    logger.info("Proxy on http://%s:%d (env=%s)", settings.host, settings.port, settings.proxy_env)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
