from __future__ import annotations

import asyncio
from unittest.mock import Mock

from fastapi.testclient import TestClient

from windowguard.adapters.rate_limit.in_memory import InMemoryRequestStore
from windowguard.core.app_factory import create_app


def _client() -> TestClient:
    return TestClient(create_app(store=InMemoryRequestStore()))


def test_preserves_incoming_request_id_header():
    incoming_id = "test-request-id-123"
    with _client() as client:
        resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing():
    with _client() as client:
        resp = client.get("/health")

    assert resp.status_code == 200
    generated = resp.headers.get("X-Request-ID")
    assert generated
    assert resp.headers.get("X-Request-Duration-ms") is not None


def test_throttled_responses_carry_request_id():
    clock = Mock(return_value=1000.0)
    store = InMemoryRequestStore(clock=clock)
    for _ in range(60):
        asyncio.run(store.record("203.0.113.7", "venue", expires_at=1060.0))

    with TestClient(create_app(store=store, clock=clock)) as client:
        resp = client.get(
            "/v1/rate-limits/policies",
            headers={"X-Request-ID": "throttle-1", "X-Forwarded-For": "203.0.113.7"},
        )

    assert resp.status_code == 429
    assert resp.headers.get("X-Request-ID") == "throttle-1"
