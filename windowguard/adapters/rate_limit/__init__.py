"""Shared request store adapters.

The limiter depends only on ``AbstractRequestStore``; Redis is the shared
backend for multi-instance deployments and the in-memory store covers local
development and tests.
"""

from windowguard.adapters.rate_limit.base import AbstractRequestStore, RateLimitRecord
from windowguard.adapters.rate_limit.factory import create_request_store
from windowguard.adapters.rate_limit.in_memory import InMemoryRequestStore
from windowguard.adapters.rate_limit.redis_store import RedisRequestStore

__all__ = [
    "AbstractRequestStore",
    "InMemoryRequestStore",
    "RateLimitRecord",
    "RedisRequestStore",
    "create_request_store",
]
