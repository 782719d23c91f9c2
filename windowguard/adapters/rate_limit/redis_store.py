"""Redis-backed shared request store.

Layout::

    {prefix}:{category}:{client}   sorted set, member = uuid, score = observed_at
    {prefix}:expiry                sorted set, member = "{record_key}|{uuid}",
                                   score = expires_at

``{prefix}`` is a Redis Cluster hash tag, so every key the limiter writes lands
in one slot and the insert script never crosses slots. On a cluster the whole
limiter therefore lives on a single shard.

Cleanup runs on two paths inside Redis itself:

- Every insert moves a native ``EXPIREAT`` on the per-client key, so idle
  clients disappear without help.
- Every insert also removes up to ``trim_batch_size`` expired records (member
  and index entry) found through the expiry index. An insert adds one index
  entry and removes at least one expired entry when any exists, so the index
  stays bounded by the live records plus the expired backlog at the time
  traffic stopped.

The expiry sweeper is a safety net on top of that: it drains whatever is left
after traffic stops.
"""

from __future__ import annotations

import logging
import math
import uuid
from typing import Sequence

import redis.asyncio as aioredis

from windowguard.adapters.rate_limit.base import AbstractRequestStore
from windowguard.core.config import StoreSettings

logger = logging.getLogger(__name__)

# KEYS[1]  record sorted-set key
# KEYS[2]  expiry index key
# ARGV[1]  unique member id
# ARGV[2]  expires_at (UNIX seconds)
# ARGV[3]  absolute expiry for the record key (UNIX seconds)
# ARGV[4]  max expired records to trim
#
# observed_at comes from the Redis server clock so callers on different hosts
# never disagree about when a request happened. Trimmed record keys share the
# hash tag of KEYS[2], so they live in the same slot.
_LUA_RECORD = """
local t = redis.call('TIME')
local observed = tonumber(t[1]) + tonumber(t[2]) / 1000000
redis.call('ZADD', KEYS[1], observed, ARGV[1])
redis.call('ZADD', KEYS[2], ARGV[2], KEYS[1] .. '|' .. ARGV[1])
redis.call('EXPIREAT', KEYS[1], tonumber(ARGV[3]))

local stale = redis.call('ZRANGEBYSCORE', KEYS[2], '-inf', t[1], 'LIMIT', 0, ARGV[4])
for _, ref in ipairs(stale) do
    local record_key, member = string.match(ref, '^(.*)|([^|]*)$')
    if record_key then
        redis.call('ZREM', record_key, member)
    end
    redis.call('ZREM', KEYS[2], ref)
end
return tostring(observed)
"""

_REF_SEPARATOR = "|"
_KEY_SEPARATOR = ":"

DEFAULT_TRIM_BATCH_SIZE = 16


class RedisRequestStore(AbstractRequestStore):
    """Request store shared by every instance through one Redis database.

    Args:
        client: An ``redis.asyncio.Redis`` connection configured with
            ``decode_responses=True``.
        key_prefix: Namespace for all keys written by the limiter.
        ttl_grace_seconds: Extra seconds beyond the newest record's expiry before
            Redis drops the per-client key on its own.
        trim_batch_size: Expired records each insert removes on the way.
    """

    def __init__(
        self,
        client: aioredis.Redis,
        *,
        key_prefix: str = "rate_limits",
        ttl_grace_seconds: int = 10,
        trim_batch_size: int = DEFAULT_TRIM_BATCH_SIZE,
    ) -> None:
        if trim_batch_size < 1:
            raise ValueError("trim_batch_size must be >= 1")
        self._client = client
        self._prefix = f"{{{key_prefix}}}"
        self._ttl_grace = ttl_grace_seconds
        self._trim_batch_size = trim_batch_size
        self._index_key = f"{self._prefix}:expiry"
        self._record_script = client.register_script(_LUA_RECORD)

    @classmethod
    def from_settings(cls, store_settings: StoreSettings) -> "RedisRequestStore":
        """Build a store with its own connection pool from settings."""

        client = aioredis.from_url(
            store_settings.redis_url,
            decode_responses=True,
            socket_timeout=store_settings.socket_timeout_seconds,
            socket_connect_timeout=store_settings.socket_timeout_seconds,
        )
        return cls(
            client,
            key_prefix=store_settings.key_prefix,
            ttl_grace_seconds=store_settings.ttl_grace_seconds,
        )

    def _key(self, client_identity: str, endpoint_category: str) -> str:
        # Client identities may contain ":" (IPv6), categories must not.
        if _KEY_SEPARATOR in endpoint_category:
            raise ValueError(f"endpoint_category must not contain {_KEY_SEPARATOR!r}")
        return f"{self._prefix}:{endpoint_category}:{client_identity}"

    async def record(
        self,
        client_identity: str,
        endpoint_category: str,
        *,
        expires_at: float,
    ) -> None:
        key = self._key(client_identity, endpoint_category)
        member = uuid.uuid4().hex
        await self._record_script(
            keys=[key, self._index_key],
            args=[
                member,
                repr(float(expires_at)),
                math.ceil(expires_at) + self._ttl_grace,
                self._trim_batch_size,
            ],
        )

    async def count_since(
        self,
        client_identity: str,
        endpoint_category: str,
        since: float,
    ) -> int:
        key = self._key(client_identity, endpoint_category)
        return int(await self._client.zcount(key, since, "+inf"))

    async def expired_refs(self, now: float, *, limit: int) -> list[str]:
        return list(
            await self._client.zrangebyscore(
                self._index_key, "-inf", now, start=0, num=limit
            )
        )

    async def delete_batch(self, refs: Sequence[str]) -> None:
        if not refs:
            return
        async with self._client.pipeline(transaction=True) as pipe:
            for ref in refs:
                record_key, _, member = ref.rpartition(_REF_SEPARATOR)
                pipe.zrem(record_key, member)
            pipe.zrem(self._index_key, *refs)
            await pipe.execute()
        logger.debug("rate_limit.store_batch_deleted", extra={"batch_size": len(refs)})

    async def ping(self) -> None:
        await self._client.ping()

    async def close(self) -> None:
        await self._client.aclose()
