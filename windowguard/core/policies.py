"""Rate limit policy registry.

Policies are built once from settings when this module is imported and are
read-only afterwards, so request handlers can share them without locking.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from windowguard.core.config import RateLimitSettings, settings
from windowguard.core.errors import ValidationAppError

VENUE = "venue"
SCHEDULE = "schedule"


@dataclass(frozen=True)
class RateLimitPolicy:
    """Quota bound to an endpoint category.

    Attributes:
        max_requests: Requests allowed inside the trailing window.
        window_seconds: Length of the trailing window.
    """

    max_requests: int
    window_seconds: int

    def __post_init__(self) -> None:
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if self.window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")


def build_policies(rate_limit_settings: RateLimitSettings) -> Mapping[str, RateLimitPolicy]:
    """Build the immutable category -> policy mapping."""

    return MappingProxyType(
        {
            # Venue discovery and photo proxy: higher traffic expected.
            VENUE: RateLimitPolicy(
                max_requests=rate_limit_settings.venue_max_requests,
                window_seconds=rate_limit_settings.venue_window_seconds,
            ),
            # Schedule updates and test endpoints: lower traffic, heavier work.
            SCHEDULE: RateLimitPolicy(
                max_requests=rate_limit_settings.schedule_max_requests,
                window_seconds=rate_limit_settings.schedule_window_seconds,
            ),
        }
    )


RATE_LIMIT_POLICIES: Mapping[str, RateLimitPolicy] = build_policies(settings.rate_limit)


def get_policy(endpoint_category: str) -> RateLimitPolicy:
    """Look up the policy for a category.

    Raises:
        ValidationAppError: If the category is not registered.
    """

    try:
        return RATE_LIMIT_POLICIES[endpoint_category]
    except KeyError:
        raise ValidationAppError(
            code="unknown_rate_limit_category",
            message=f"No rate limit policy registered for '{endpoint_category}'",
            details={
                "endpoint_category": endpoint_category,
                "hint": f"Known categories: {', '.join(sorted(RATE_LIMIT_POLICIES))}",
            },
        ) from None


def check_category_name(endpoint_category: str) -> str:
    """Reject category names that cannot be used as a store key segment.

    Store keys join category and client with ``:``, and client identities may
    contain ``:`` themselves (IPv6), so the category must not.

    Raises:
        ValidationAppError: If the name is empty or contains ``:`` or ``|``.
    """

    if not endpoint_category or any(ch in endpoint_category for ch in ":|"):
        raise ValidationAppError(
            code="invalid_rate_limit_category",
            message=f"Invalid rate limit category name '{endpoint_category}'",
            details={
                "endpoint_category": endpoint_category,
                "hint": "Use a non-empty name without ':' or '|'",
            },
        )
    return endpoint_category
