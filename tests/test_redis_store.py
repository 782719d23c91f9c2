"""Unit tests for the Redis request store (no live Redis required)."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from windowguard.adapters.rate_limit.redis_store import RedisRequestStore
from windowguard.core.config import StoreSettings


@pytest.fixture
def client() -> MagicMock:
    client = MagicMock()
    client.register_script.return_value = AsyncMock(return_value="1000.5")
    client.zcount = AsyncMock(return_value=3)
    client.zrangebyscore = AsyncMock(return_value=[])
    client.ping = AsyncMock(return_value=True)
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def redis_store(client: MagicMock) -> RedisRequestStore:
    return RedisRequestStore(client, key_prefix="rl", ttl_grace_seconds=10)


@pytest.mark.asyncio
async def test_record_runs_insert_script_with_server_time(redis_store, client):
    await redis_store.record("203.0.113.7", "venue", expires_at=1060.0)

    script = client.register_script.return_value
    script.assert_awaited_once()
    kwargs = script.await_args.kwargs
    assert kwargs["keys"] == ["{rl}:venue:203.0.113.7", "{rl}:expiry"]
    member, expires_at, key_expiry, trim_batch_size = kwargs["args"]
    assert len(member) == 32
    assert float(expires_at) == 1060.0
    assert key_expiry == 1070
    assert trim_batch_size == 16

    lua = client.register_script.call_args.args[0]
    assert "TIME" in lua
    assert "EXPIREAT" in lua
    assert "ZREM" in lua


@pytest.mark.asyncio
async def test_count_since_is_a_count_only_query(redis_store, client):
    count = await redis_store.count_since("203.0.113.7", "schedule", 940.0)

    assert count == 3
    client.zcount.assert_awaited_once_with("{rl}:schedule:203.0.113.7", 940.0, "+inf")


@pytest.mark.asyncio
async def test_expired_refs_reads_bounded_page_from_index(redis_store, client):
    client.zrangebyscore.return_value = ["{rl}:venue:a|m1", "{rl}:venue:b|m2"]

    refs = await redis_store.expired_refs(100.0, limit=400)

    assert refs == ["{rl}:venue:a|m1", "{rl}:venue:b|m2"]
    client.zrangebyscore.assert_awaited_once_with("{rl}:expiry", "-inf", 100.0, start=0, num=400)


@pytest.mark.asyncio
async def test_delete_batch_uses_one_transaction(redis_store, client):
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[1, 1, 2])
    client.pipeline.return_value.__aenter__.return_value = pipe
    refs = ["{rl}:venue:2001:db8::1|m1", "{rl}:schedule:10.0.0.1|m2"]

    await redis_store.delete_batch(refs)

    client.pipeline.assert_called_once_with(transaction=True)
    pipe.zrem.assert_any_call("{rl}:venue:2001:db8::1", "m1")
    pipe.zrem.assert_any_call("{rl}:schedule:10.0.0.1", "m2")
    pipe.zrem.assert_any_call("{rl}:expiry", *refs)
    pipe.execute.assert_awaited_once()


@pytest.mark.asyncio
async def test_delete_empty_batch_is_noop(redis_store, client):
    await redis_store.delete_batch([])

    client.pipeline.assert_not_called()


@pytest.mark.asyncio
async def test_ping_and_close(redis_store, client):
    await redis_store.ping()
    await redis_store.close()

    client.ping.assert_awaited_once()
    client.aclose.assert_awaited_once()


def test_from_settings_builds_decoded_client():
    store_settings = StoreSettings(
        backend="redis",
        redis_url="redis://cache:6379/3",
        key_prefix="quota",
        socket_timeout_seconds=1.5,
    )

    with patch("windowguard.adapters.rate_limit.redis_store.aioredis.from_url") as from_url:
        store = RedisRequestStore.from_settings(store_settings)

    from_url.assert_called_once_with(
        "redis://cache:6379/3",
        decode_responses=True,
        socket_timeout=1.5,
        socket_connect_timeout=1.5,
    )
    assert store._key("a", "venue") == "{quota}:venue:a"


@pytest.mark.asyncio
async def test_category_with_key_separator_is_rejected(redis_store, client):
    with pytest.raises(ValueError):
        await redis_store.record("203.0.113.7", "venue:photos", expires_at=1060.0)

    client.register_script.return_value.assert_not_awaited()


def test_invalid_trim_batch_size(client):
    with pytest.raises(ValueError):
        RedisRequestStore(client, trim_batch_size=0)
