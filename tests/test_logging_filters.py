"""Tests for sensitive data filtering and JSON formatting in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from windowguard.core.logging import (
    JsonFormatter,
    RequestIdFilter,
    SensitiveDataFilter,
    clear_request_id,
    set_request_id,
)


@pytest.fixture
def capture():
    logger = logging.getLogger("test_windowguard_logging")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()
    logger.propagate = False

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    yield logger, stream

    logger.handlers.clear()
    clear_request_id()


def test_redacts_store_credentials(capture):
    logger, stream = capture

    logger.info(
        "app.started",
        extra={"redis_url": "redis://:s3cret@cache:6379/0", "store_backend": "RedisRequestStore"},
    )

    output = stream.getvalue()
    assert "s3cret" not in output
    assert "[REDACTED]" in output
    assert "RedisRequestStore" in output


def test_limiter_context_passes_through(capture):
    logger, stream = capture

    logger.error(
        "rate_limit.count_failed",
        extra={
            "endpoint_category": "venue",
            "client_identity": "203.0.113.7",
            "error_type": "ConnectionError",
        },
    )

    payload = json.loads(stream.getvalue())
    assert payload["message"] == "rate_limit.count_failed"
    assert payload["level"] == "error"
    assert payload["endpoint_category"] == "venue"
    assert payload["client_identity"] == "203.0.113.7"
    assert "[REDACTED]" not in stream.getvalue()


def test_redacts_nested_headers(capture):
    logger, stream = capture

    logger.info(
        "http.headers",
        extra={"headers": {"Authorization": "Bearer abc", "x-forwarded-for": "203.0.113.7"}},
    )

    output = stream.getvalue()
    assert "Bearer abc" not in output
    assert "203.0.113.7" in output


def test_request_id_attached_from_context(capture):
    logger, stream = capture
    set_request_id("req-42")

    logger.info("rate_limit.exceeded")

    assert json.loads(stream.getvalue())["request_id"] == "req-42"
