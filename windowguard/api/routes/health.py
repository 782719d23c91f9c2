from __future__ import annotations

import logging

from fastapi import APIRouter, Request

from windowguard.core.errors import StoreAppError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe.

    Does not touch the store: a store outage degrades the limiter to fail-open
    but leaves the service itself alive.
    """

    return {"status": "ok"}


@router.get("/health/ready")
async def readiness_check(request: Request) -> dict:
    """Readiness probe that pings the shared request store.

    Raises:
        StoreAppError: 503 when the store cannot be reached.
    """

    store = request.app.state.request_store
    try:
        await store.ping()
    except Exception as exc:
        logger.warning(
            "health.store_unreachable",
            extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
        )
        raise StoreAppError(
            code="store_unavailable",
            message="Shared request store is unreachable; rate limiting is failing open",
            details={"backend": type(store).__name__},
        ) from exc

    return {"status": "ok", "store": "ok"}
