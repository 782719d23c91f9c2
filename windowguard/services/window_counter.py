"""Sliding-window request counter backed by the shared request store.

Each evaluation costs one count query on the request path. The record for an
allowed request is written by a detached task, so store write latency never
delays the decision. Two instances racing the same client at the quota
boundary may both admit a request; that bounded over-admission is accepted in
exchange for no cross-instance locking.

The counter keeps no counts between calls. The only state it holds is the set
of in-flight write tasks, which must stay referenced until they finish.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable

from windowguard.adapters.rate_limit.base import AbstractRequestStore
from windowguard.core.policies import RateLimitPolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a single evaluation.

    Attributes:
        allowed: Whether the request may proceed.
        limit: Max requests per window for the policy applied.
        window_seconds: Window length of the policy applied.
        retry_after_seconds: Suggested wait when denied (None when allowed).
        observed_count: Records found in the window (None when the count failed).
        failed_open: True when the store failed and the request was let through.
    """

    allowed: bool
    limit: int
    window_seconds: int
    retry_after_seconds: int | None = None
    observed_count: int | None = None
    failed_open: bool = False

    @classmethod
    def allow(
        cls,
        policy: RateLimitPolicy,
        *,
        observed_count: int | None,
        failed_open: bool = False,
    ) -> "RateLimitDecision":
        return cls(
            allowed=True,
            limit=policy.max_requests,
            window_seconds=policy.window_seconds,
            observed_count=observed_count,
            failed_open=failed_open,
        )

    @classmethod
    def deny(cls, policy: RateLimitPolicy, *, observed_count: int) -> "RateLimitDecision":
        return cls(
            allowed=False,
            limit=policy.max_requests,
            window_seconds=policy.window_seconds,
            retry_after_seconds=policy.window_seconds,
            observed_count=observed_count,
        )


class WindowCounter:
    """Allow/deny decisions over a trailing window of stored request records.

    Args:
        store: Shared request store.
        count_timeout_seconds: Bound for the count query; exceeding it fails open.
        write_timeout_seconds: Bound for the detached record write.
        clock: Time source returning UNIX seconds.
    """

    def __init__(
        self,
        store: AbstractRequestStore,
        *,
        count_timeout_seconds: float = 2.0,
        write_timeout_seconds: float = 5.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if count_timeout_seconds <= 0:
            raise ValueError("count_timeout_seconds must be > 0")
        if write_timeout_seconds <= 0:
            raise ValueError("write_timeout_seconds must be > 0")

        self._store = store
        self._count_timeout = count_timeout_seconds
        self._write_timeout = write_timeout_seconds
        self._clock = clock
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def pending_writes(self) -> int:
        """Number of record writes still in flight."""
        return len(self._pending)

    async def evaluate(
        self,
        client_identity: str,
        endpoint_category: str,
        policy: RateLimitPolicy,
    ) -> RateLimitDecision:
        """Decide whether a request fits inside the policy's trailing window.

        Never raises for store failures: a failed or slow count query lets the
        request through.

        Args:
            client_identity: Caller identity (e.g. originating IP).
            endpoint_category: Quota group of the endpoint being called.
            policy: Quota to enforce.

        Returns:
            RateLimitDecision: allow, or deny with a retry hint equal to the window.
        """
        now = self._clock()
        window_start = now - policy.window_seconds

        try:
            count = await asyncio.wait_for(
                self._store.count_since(client_identity, endpoint_category, window_start),
                timeout=self._count_timeout,
            )
        except Exception as exc:
            logger.error(
                "rate_limit.count_failed",
                extra={
                    "endpoint_category": endpoint_category,
                    "client_identity": client_identity,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                    "outcome": "allowed",
                },
            )
            return RateLimitDecision.allow(policy, observed_count=None, failed_open=True)

        if count >= policy.max_requests:
            logger.warning(
                "rate_limit.exceeded",
                extra={
                    "endpoint_category": endpoint_category,
                    "client_identity": client_identity,
                    "count": count,
                    "limit": policy.max_requests,
                    "window_s": policy.window_seconds,
                },
            )
            return RateLimitDecision.deny(policy, observed_count=count)

        self._schedule_record(client_identity, endpoint_category, expires_at=now + policy.window_seconds)

        logger.debug(
            "rate_limit.allowed",
            extra={
                "endpoint_category": endpoint_category,
                "client_identity": client_identity,
                "count": count,
                "limit": policy.max_requests,
                "window_s": policy.window_seconds,
            },
        )
        return RateLimitDecision.allow(policy, observed_count=count)

    def _schedule_record(self, client_identity: str, endpoint_category: str, *, expires_at: float) -> None:
        task = asyncio.create_task(self._record(client_identity, endpoint_category, expires_at))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _record(self, client_identity: str, endpoint_category: str, expires_at: float) -> None:
        try:
            await asyncio.wait_for(
                self._store.record(client_identity, endpoint_category, expires_at=expires_at),
                timeout=self._write_timeout,
            )
        except Exception as exc:
            # The allow decision has already been returned; nothing to undo.
            logger.error(
                "rate_limit.record_failed",
                extra={
                    "endpoint_category": endpoint_category,
                    "client_identity": client_identity,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )

    async def drain(self) -> None:
        """Wait for every in-flight record write to finish.

        Called at shutdown so pending writes are not cancelled with the loop.
        """
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
