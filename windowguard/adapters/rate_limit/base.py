"""Request store interfaces.

The window counter and the expiry sweeper depend on this abstraction (not the
concrete implementation) so the shared backend can be swapped without
touching the limiter logic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class RateLimitRecord:
    """One observed request attempt.

    Attributes:
        ref: Opaque store reference used for deletion.
        client_identity: Caller identity (usually the originating IP).
        endpoint_category: Quota group the request was counted against.
        observed_at: UNIX seconds, assigned by the store's own clock.
        expires_at: UNIX seconds after which the sweeper may delete it.
    """

    ref: str
    client_identity: str
    endpoint_category: str
    observed_at: float
    expires_at: float


class AbstractRequestStore(ABC):
    """Interface for the shared counted-request store."""

    @abstractmethod
    async def record(
        self,
        client_identity: str,
        endpoint_category: str,
        *,
        expires_at: float,
    ) -> None:
        """Insert one record; ``observed_at`` is assigned by the store.

        Args:
            client_identity: Caller identity tag.
            endpoint_category: Endpoint category tag.
            expires_at: UNIX seconds used only by expiry cleanup.
        """
        raise NotImplementedError

    @abstractmethod
    async def count_since(
        self,
        client_identity: str,
        endpoint_category: str,
        since: float,
    ) -> int:
        """Count records matching both tags with ``observed_at >= since``.

        Only the count is returned; no record bodies are fetched.
        """
        raise NotImplementedError

    @abstractmethod
    async def expired_refs(self, now: float, *, limit: int) -> list[str]:
        """Return up to ``limit`` refs whose ``expires_at <= now``."""
        raise NotImplementedError

    @abstractmethod
    async def delete_batch(self, refs: Sequence[str]) -> None:
        """Delete refs as one all-or-nothing batch.

        Refs that no longer exist are ignored.
        """
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> None:
        """Raise if the store is unreachable."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release connections held by the store."""
        return None
