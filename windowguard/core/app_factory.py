"""Application factory for the FastAPI app.

Centralizes app construction (metadata, lifespan, middleware, handlers,
routers) so tests can build an app around their own store and clock.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI

from windowguard.adapters.rate_limit.base import AbstractRequestStore
from windowguard.adapters.rate_limit.factory import create_request_store
from windowguard.api.routes import health_router, rate_limits_router
from windowguard.core.config import settings
from windowguard.core.exception_handlers import setup_exception_handlers
from windowguard.core.logging import configure_logging
from windowguard.core.middleware import request_id_middleware
from windowguard.services.window_counter import WindowCounter

logger = logging.getLogger(__name__)


def create_app(
    *,
    store: AbstractRequestStore | None = None,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        store: Request store to use; built from settings when omitted.
        clock: Time source handed to the window counter.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        request_store = store if store is not None else create_request_store(settings.store)
        counter = WindowCounter(
            request_store,
            count_timeout_seconds=settings.rate_limit.count_timeout_seconds,
            write_timeout_seconds=settings.rate_limit.write_timeout_seconds,
            clock=clock,
        )
        app.state.request_store = request_store
        app.state.window_counter = counter
        logger.info(
            "app.started",
            extra={
                "store_backend": type(request_store).__name__,
                "rate_limit_enabled": settings.rate_limit.enabled,
            },
        )
        try:
            yield
        finally:
            # Let detached record writes land before the loop goes away.
            await counter.drain()
            await request_store.close()
            logger.info("app.stopped")

    app = FastAPI(
        title="windowguard",
        description=(
            "Shared sliding-window rate limiter for stateless HTTP handlers. "
            "Quotas are counted in a shared store so every instance enforces "
            "the same limit; store failures fail open."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(rate_limits_router, prefix="/v1")
    app.include_router(health_router)

    return app
