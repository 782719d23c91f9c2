"""Tests for the scheduled sweep entry point."""

import asyncio
from unittest.mock import AsyncMock, Mock, patch

from windowguard.adapters.rate_limit.base import AbstractRequestStore
from windowguard.adapters.rate_limit.in_memory import InMemoryRequestStore
from windowguard.core.errors import ValidationAppError
from windowguard.jobs import sweep


def test_sweeps_expired_records():
    store = InMemoryRequestStore(clock=Mock(return_value=0.0))
    asyncio.run(store.record("203.0.113.7", "venue", expires_at=1.0))
    asyncio.run(store.record("203.0.113.7", "venue", expires_at=2.0))

    with patch.object(sweep, "create_request_store", return_value=store):
        exit_code = sweep.main(["--batch-size", "1"])

    assert exit_code == 0
    assert len(store) == 0


def test_aborted_sweep_exits_non_zero_and_closes_store():
    store = AsyncMock(spec=AbstractRequestStore)
    store.expired_refs.side_effect = ConnectionError("down")

    with patch.object(sweep, "create_request_store", return_value=store):
        exit_code = sweep.main([])

    assert exit_code == 1
    store.close.assert_awaited_once()


def test_rejects_out_of_range_batch_size():
    with patch.object(sweep, "create_request_store") as factory:
        exit_code = sweep.main(["--batch-size", "1000"])

    assert exit_code == 2
    factory.assert_not_called()


def test_store_configuration_error_is_logged_and_exits_non_zero(caplog):
    error = ValidationAppError(code="store_missing_redis_url", message="STORE_REDIS_URL is empty")

    with patch.object(sweep, "configure_logging"), patch.object(
        sweep, "create_request_store", side_effect=error
    ):
        exit_code = sweep.main([])

    assert exit_code == 2
    [record] = [r for r in caplog.records if r.getMessage() == "sweep.failed"]
    assert record.error_code == "store_missing_redis_url"
