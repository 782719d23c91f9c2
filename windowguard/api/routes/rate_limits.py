from __future__ import annotations

from fastapi import APIRouter, Depends

from windowguard.core.config import settings
from windowguard.core.policies import RATE_LIMIT_POLICIES, VENUE
from windowguard.core.rate_limit import rate_limited
from windowguard.schemas.rate_limit import RateLimitPoliciesResponse, RateLimitPolicyOut

router = APIRouter(tags=["Rate limits"])


@router.get(
    "/rate-limits/policies",
    response_model=RateLimitPoliciesResponse,
    dependencies=[Depends(rate_limited(VENUE))],
)
async def list_policies() -> RateLimitPoliciesResponse:
    """List the quota of every endpoint category.

    Guarded by the high-traffic category like any other cheap read.
    """

    return RateLimitPoliciesResponse(
        enabled=settings.rate_limit.enabled,
        policies=[
            RateLimitPolicyOut(
                endpoint_category=category,
                max_requests=policy.max_requests,
                window_seconds=policy.window_seconds,
            )
            for category, policy in sorted(RATE_LIMIT_POLICIES.items())
        ],
    )
