from __future__ import annotations

"""Application factory for the FastAPI app.

Owns the throttle store lifecycle: the lifespan builds the store from
settings (unless one is injected), starts its sweeper, exposes it on
``app.state.throttle_store`` and shuts it down on exit.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from request_guard.adapters.throttle.base import AbstractThrottleStore, ThrottleConfig
from request_guard.adapters.throttle.in_memory import InMemoryThrottleStore
from request_guard.api.routes import health_router
from request_guard.core.config import settings
from request_guard.core.exception_handlers import setup_exception_handlers
from request_guard.core.logging import configure_logging
from request_guard.core.middleware import request_id_middleware

logger = logging.getLogger(__name__)


def build_throttle_store() -> InMemoryThrottleStore:
    """Create the in-memory store configured from ``THROTTLE_*`` settings."""
    return InMemoryThrottleStore(
        config=ThrottleConfig(
            window_millis=settings.throttle.window_millis,
            max_requests=settings.throttle.max_requests,
        ),
        sweep_interval_seconds=settings.throttle.sweep_interval_seconds,
    )


def create_app(throttle_store: AbstractThrottleStore | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        throttle_store: Store to use instead of a fresh in-memory one.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        store = throttle_store or build_throttle_store()
        app.state.throttle_store = store
        store.start()
        logger.info("app.startup", extra={"store": type(store).__name__})
        try:
            yield
        finally:
            store.shutdown()
            logger.info("app.shutdown")

    app = FastAPI(
        title=settings.app.title,
        description=(
            "Request throttling and input sanitization for authentication and "
            "mutation endpoints."
        ),
        version="0.1.0",
        debug=settings.app.debug,
        lifespan=lifespan,
    )

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)
    app.include_router(health_router)

    return app
