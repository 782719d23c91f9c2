"""Factory pattern for creating request store instances."""

from __future__ import annotations

from windowguard.adapters.rate_limit.base import AbstractRequestStore
from windowguard.adapters.rate_limit.in_memory import InMemoryRequestStore
from windowguard.adapters.rate_limit.redis_store import RedisRequestStore
from windowguard.core.config import StoreSettings, settings
from windowguard.core.errors import ValidationAppError


def create_request_store(store_settings: StoreSettings | None = None) -> AbstractRequestStore:
    """Instantiate the request store selected by configuration.

    Args:
        store_settings: Optional override; defaults to global settings.

    Returns:
        AbstractRequestStore: Configured store instance.

    Raises:
        ValidationAppError: If the backend is unknown or misconfigured.
    """
    cfg = store_settings or settings.store
    backend = cfg.backend.lower()

    if backend == "redis":
        if not cfg.redis_url:
            raise ValidationAppError(
                code="store_missing_redis_url",
                message="Redis store requires STORE_REDIS_URL",
                details={"backend": backend},
            )
        return RedisRequestStore.from_settings(cfg)

    # Single-process only; quotas are not shared between workers.
    if backend == "memory":
        return InMemoryRequestStore()

    raise ValidationAppError(
        code="store_unknown_backend",
        message=f"Unknown store backend: '{backend}'. Supported backends: redis, memory",
        details={"backend": backend},
    )
