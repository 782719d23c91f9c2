"""In-memory request store (development and tests).

Notes:
- Per-process only: running multiple workers gives each its own store, so
  quotas are not shared. Use the Redis store for real deployments.
- Thread-safe: uses a lock around shared state.
- Has no native expiry; stale records stay until the sweeper removes them.
"""

from __future__ import annotations

import threading
import time
import uuid
from typing import Callable, Sequence

from windowguard.adapters.rate_limit.base import AbstractRequestStore, RateLimitRecord


class InMemoryRequestStore(AbstractRequestStore):
    """Request store backed by a dict of immutable records.

    The injected clock plays the role of the store's server clock: it stamps
    ``observed_at`` on every insert.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.RLock()
        self._records: dict[str, RateLimitRecord] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def records(self) -> list[RateLimitRecord]:
        """Snapshot of stored records ordered by observation time."""

        with self._lock:
            return sorted(self._records.values(), key=lambda r: r.observed_at)

    async def record(
        self,
        client_identity: str,
        endpoint_category: str,
        *,
        expires_at: float,
    ) -> None:
        ref = uuid.uuid4().hex
        with self._lock:
            self._records[ref] = RateLimitRecord(
                ref=ref,
                client_identity=client_identity,
                endpoint_category=endpoint_category,
                observed_at=self._clock(),
                expires_at=expires_at,
            )

    async def count_since(
        self,
        client_identity: str,
        endpoint_category: str,
        since: float,
    ) -> int:
        with self._lock:
            return sum(
                1
                for r in self._records.values()
                if r.client_identity == client_identity
                and r.endpoint_category == endpoint_category
                and r.observed_at >= since
            )

    async def expired_refs(self, now: float, *, limit: int) -> list[str]:
        with self._lock:
            expired = sorted(
                (r for r in self._records.values() if r.expires_at <= now),
                key=lambda r: r.expires_at,
            )
            return [r.ref for r in expired[:limit]]

    async def delete_batch(self, refs: Sequence[str]) -> None:
        with self._lock:
            for ref in refs:
                self._records.pop(ref, None)

    async def ping(self) -> None:
        return None
