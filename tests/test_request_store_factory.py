"""Tests for request store backend selection."""

import pytest

from windowguard.adapters.rate_limit.factory import create_request_store
from windowguard.adapters.rate_limit.in_memory import InMemoryRequestStore
from windowguard.adapters.rate_limit.redis_store import RedisRequestStore
from windowguard.core.config import StoreSettings
from windowguard.core.errors import ValidationAppError


def test_memory_backend():
    store = create_request_store(StoreSettings(backend="memory"))

    assert isinstance(store, InMemoryRequestStore)


def test_redis_backend_is_case_insensitive():
    # from_url does not connect until the first command
    store = create_request_store(StoreSettings(backend="Redis", redis_url="redis://localhost:6379/0"))

    assert isinstance(store, RedisRequestStore)


def test_redis_backend_requires_url():
    with pytest.raises(ValidationAppError) as exc_info:
        create_request_store(StoreSettings(backend="redis", redis_url=""))

    assert exc_info.value.code == "store_missing_redis_url"


def test_unknown_backend():
    with pytest.raises(ValidationAppError) as exc_info:
        create_request_store(StoreSettings(backend="firestore"))

    assert exc_info.value.code == "store_unknown_backend"
    assert "firestore" in exc_info.value.message
