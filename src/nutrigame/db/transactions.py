"""Unit-of-work runner with bounded retry on store contention.

A unit of work is an async callable taking the session. It runs inside a
single transaction; the runner commits on success and rolls back on any
failure. Contention (lock timeouts, serialization failures, a concurrent
writer creating the same row) is retried with exponential backoff; domain
errors propagate unchanged after rollback.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from nutrigame.config import get_settings
from nutrigame.errors import StoreConflict, TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE = (OperationalError, StoreConflict)


async def run_in_transaction(
    db: AsyncSession,
    work: Callable[[AsyncSession], Awaitable[T]],
    *,
    attempts: int | None = None,
) -> T:
    """Run ``work`` in one transaction, retrying on contention."""
    settings = get_settings()
    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts or settings.store_retry_attempts),
        wait=wait_exponential(
            multiplier=settings.store_retry_min_wait_seconds,
            min=settings.store_retry_min_wait_seconds,
            max=settings.store_retry_max_wait_seconds,
        ),
        retry=retry_if_exception_type(RETRYABLE),
        before_sleep=before_sleep_log(logger, logging.INFO),
        reraise=False,
    )

    async def unit() -> T:
        try:
            result = await work(db)
            await db.commit()
        except BaseException:
            await db.rollback()
            raise
        return result

    try:
        return await retrying(unit)
    except RetryError as exc:
        logger.warning("Store contention outlasted %d attempts", exc.last_attempt.attempt_number)
        raise TransientStoreError() from exc.last_attempt.exception()


async def flush_or_conflict(db: AsyncSession) -> None:
    """Flush pending inserts; a unique violation means another writer won the race."""
    try:
        await db.flush()
    except IntegrityError as exc:
        raise StoreConflict(str(exc.orig)) from exc
