"""Expiry sweeper for stale rate limit records.

Safety net for stores whose native expiry is missing or misconfigured. The
window counter never reads ``expires_at``, so it stays correct whether or not
this runs. Intended for an external schedule (e.g. daily), never the request
path.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from windowguard.adapters.rate_limit.base import AbstractRequestStore
from windowguard.core.errors import SweepAppError

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 400
MAX_BATCH_SIZE = 500


class ExpirySweeper:
    """Deletes records whose ``expires_at`` has passed, one batch at a time.

    Each page is deleted atomically; pages are independent, so an aborted
    sweep keeps every batch it already committed and the next run resumes
    from whatever is left.
    """

    def __init__(
        self,
        store: AbstractRequestStore,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not 1 <= batch_size <= MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}")

        self._store = store
        self._batch_size = batch_size
        self._clock = clock

    async def sweep(self) -> int:
        """Delete every record with ``expires_at <= now``.

        ``now`` is fixed when the sweep starts, so records written by live
        traffic during the sweep are left alone.

        Returns:
            int: Number of records deleted.

        Raises:
            SweepAppError: If a page query or batch delete fails.
        """
        now = self._clock()
        total_deleted = 0

        try:
            while True:
                refs = await self._store.expired_refs(now, limit=self._batch_size)
                if not refs:
                    break

                await self._store.delete_batch(refs)
                total_deleted += len(refs)

                if len(refs) < self._batch_size:
                    break
        except Exception as exc:
            logger.error(
                "rate_limit.sweep_aborted",
                extra={
                    "deleted_before_failure": total_deleted,
                    "batch_size": self._batch_size,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            raise SweepAppError(
                code="sweep_aborted",
                message="Expiry sweep aborted; remaining records are left for the next run",
                details={"deleted_before_failure": total_deleted},
            ) from exc

        if total_deleted > 0:
            logger.info(
                "rate_limit.sweep_completed",
                extra={"deleted": total_deleted, "batch_size": self._batch_size},
            )

        return total_deleted
