"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets the environment before settings are imported so no .env file or live
Redis is needed.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"
os.environ.setdefault("STORE_BACKEND", "memory")

from unittest.mock import Mock  # noqa: E402

import pytest  # noqa: E402

from windowguard.adapters.rate_limit.in_memory import InMemoryRequestStore  # noqa: E402
from windowguard.core.policies import RateLimitPolicy  # noqa: E402
from windowguard.services.window_counter import WindowCounter  # noqa: E402


@pytest.fixture
def clock() -> Mock:
    """Shared clock for the store (server time) and the counter (caller time)."""
    return Mock(return_value=1000.0)


@pytest.fixture
def store(clock: Mock) -> InMemoryRequestStore:
    return InMemoryRequestStore(clock=clock)


@pytest.fixture
def counter(store: InMemoryRequestStore, clock: Mock) -> WindowCounter:
    return WindowCounter(store, clock=clock)


@pytest.fixture
def policy() -> RateLimitPolicy:
    return RateLimitPolicy(max_requests=2, window_seconds=60)
