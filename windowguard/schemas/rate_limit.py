"""Pydantic schemas for rate limit policy responses."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class RateLimitPolicyOut(BaseModel):
    """One registered endpoint category and its quota."""

    endpoint_category: str = Field(
        ..., description="Name of the endpoint group sharing this quota."
    )
    max_requests: int = Field(
        ..., description="Requests allowed inside the trailing window."
    )
    window_seconds: int = Field(
        ..., description="Length of the trailing window; also the Retry-After hint on 429."
    )


class RateLimitPoliciesResponse(BaseModel):
    """All policies active in this process."""

    enabled: bool = Field(
        ..., description="Whether guarded routes currently enforce their quotas."
    )
    policies: List[RateLimitPolicyOut] = Field(default_factory=list)
