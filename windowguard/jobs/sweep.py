"""Delete expired rate limit records.

Safety net for when the store's native expiry is not configured. Run it from
an external scheduler (cron, Kubernetes CronJob, Cloud Scheduler), e.g. once
a day. It is idempotent: an interrupted run leaves only whole batches
deleted and the next run picks up the rest.

Usage:
    windowguard-sweep
    windowguard-sweep --batch-size 200

Environment:
    STORE_BACKEND / STORE_REDIS_URL select the store, see windowguard.core.config.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from windowguard.adapters.rate_limit.base import AbstractRequestStore
from windowguard.adapters.rate_limit.factory import create_request_store
from windowguard.core.config import settings
from windowguard.core.errors import SweepAppError, ValidationAppError
from windowguard.core.logging import configure_logging
from windowguard.services.expiry_sweeper import MAX_BATCH_SIZE, ExpirySweeper

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="windowguard-sweep",
        description="Delete rate limit records whose expiry has passed.",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=settings.rate_limit.sweep_batch_size,
        help=f"Records per atomic delete batch (1-{MAX_BATCH_SIZE}, default: %(default)s)",
    )
    return parser.parse_args(argv)


async def run_sweep(store: AbstractRequestStore, *, batch_size: int) -> int:
    """Run one sweep and always release the store's connections."""

    try:
        return await ExpirySweeper(store, batch_size=batch_size).sweep()
    finally:
        await store.close()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(settings.log)

    if not 1 <= args.batch_size <= MAX_BATCH_SIZE:
        logger.error("sweep.invalid_batch_size", extra={"batch_size": args.batch_size})
        return 2

    try:
        store = create_request_store(settings.store)
    except ValidationAppError as exc:
        logger.error(
            "sweep.failed",
            extra={"error_code": exc.code, "details": exc.details},
        )
        return 2

    try:
        deleted = asyncio.run(run_sweep(store, batch_size=args.batch_size))
    except SweepAppError as exc:
        logger.error(
            "sweep.failed",
            extra={"error_code": exc.code, "details": exc.details},
        )
        return 1

    logger.info("sweep.finished", extra={"deleted": deleted})
    return 0


if __name__ == "__main__":
    sys.exit(main())
