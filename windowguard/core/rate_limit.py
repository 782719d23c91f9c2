"""Rate limiting dependency for FastAPI routes.

This module wires the window counter into the HTTP layer.

Design goals:
- Guard clause: routes declare ``Depends(rate_limited("<category>"))`` and
  do no work when the request is denied.
- Shared state only: the counter lives on ``app.state`` and keeps no counts,
  so every instance sees the same quota through the store.
- Fail open: store problems surface as an allowed request, never as a 5xx.

Client identity:
- First address of ``X-Forwarded-For`` (set by the load balancer in front of
  the service, not by the client).
- Otherwise the transport peer address.
- Otherwise a shared ``"unknown"`` bucket.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from fastapi import HTTPException, Request, status

from windowguard.core.config import settings
from windowguard.core.policies import RateLimitPolicy, check_category_name, get_policy
from windowguard.services.window_counter import RateLimitDecision, WindowCounter

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"

RateLimitDependency = Callable[[Request], Awaitable[RateLimitDecision | None]]


def resolve_client_identity(request: Request) -> str:
    """Derive the rate limit identity for the current request.

    Args:
        request: FastAPI request.

    Returns:
        str: Originating address, or ``"unknown"`` when none is available.
    """

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    if request.client and request.client.host:
        return request.client.host

    return UNKNOWN_CLIENT


def get_window_counter(request: Request) -> WindowCounter:
    """Return the counter created by the application lifespan."""

    return request.app.state.window_counter


def _build_throttle_headers(decision: RateLimitDecision) -> dict[str, str]:
    retry_after = decision.retry_after_seconds or decision.window_seconds
    headers = {"Retry-After": str(retry_after)}
    if settings.rate_limit.include_headers:
        headers["X-RateLimit-Limit"] = str(decision.limit)
        headers["X-RateLimit-Remaining"] = "0"
    return headers


def rate_limited(
    endpoint_category: str,
    *,
    policy: RateLimitPolicy | None = None,
) -> RateLimitDependency:
    """Build a FastAPI dependency enforcing the quota of ``endpoint_category``.

    The policy is resolved when the route is declared, so a typo in the
    category name fails at import time rather than on the first request.

    Args:
        endpoint_category: Registered category name.
        policy: Explicit policy overriding the registry entry.

    Returns:
        Dependency callable raising HTTP 429 when the quota is exhausted.

    Raises:
        ValidationAppError: If the category name is invalid, or unknown and no
            policy is given.
    """

    check_category_name(endpoint_category)
    effective_policy = policy if policy is not None else get_policy(endpoint_category)

    async def enforce_rate_limit(request: Request) -> RateLimitDecision | None:
        if not settings.rate_limit.enabled:
            logger.debug(
                "rate_limit.skipped",
                extra={"reason": "rate_limit_disabled", "endpoint_category": endpoint_category},
            )
            return None

        counter = get_window_counter(request)
        client_identity = resolve_client_identity(request)
        decision = await counter.evaluate(client_identity, endpoint_category, effective_policy)
        if decision.allowed:
            return decision

        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "Too Many Requests",
                "message": (
                    f"Rate limit exceeded. Maximum {decision.limit} requests "
                    f"per {decision.window_seconds} seconds."
                ),
                "retry_after": decision.retry_after_seconds,
            },
            headers=_build_throttle_headers(decision),
        )

    return enforce_rate_limit
