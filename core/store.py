"""
core/store.py — Store Call Guard
=================================
Every call the registry makes to the database goes through here so that:

- no call blocks longer than STORE_TIMEOUT_SECONDS
- driver / SQLAlchemy failures surface as PersistenceError (retryable)
- constraint violations (IntegrityError) reach the caller untouched, because
  only the caller knows which rule was broken
- multi-step writes that fail are rolled back, and a failed rollback is
  reported as "history may be incomplete"
"""

import asyncio
import logging
from typing import Awaitable, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from config import settings
from core.errors import ConcurrentTransferError, PersistenceError

logger = logging.getLogger("landregistry.store")

T = TypeVar("T")


async def store_call(awaitable: Awaitable[T], operation: str) -> T:
    """Await one store operation with a timeout and error mapping."""
    try:
        return await asyncio.wait_for(awaitable, timeout=settings.STORE_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        logger.error(f"Store call timed out: {operation} (>{settings.STORE_TIMEOUT_SECONDS}s)")
        raise PersistenceError(
            f"Store did not answer in time during '{operation}'.",
            {"operation": operation, "timeout_seconds": settings.STORE_TIMEOUT_SECONDS},
        ) from None
    except IntegrityError:
        raise
    except SQLAlchemyError as e:
        logger.error(f"Store call failed: {operation}: {e}")
        raise PersistenceError(
            f"Store rejected '{operation}': {e.__class__.__name__}",
            {"operation": operation},
        ) from e


async def abort(db: AsyncSession, operation: str) -> None:
    """Roll back the session's open transaction after a failed write."""
    try:
        await db.rollback()
    except SQLAlchemyError as e:
        logger.critical(f"Rollback failed after '{operation}' — history may be incomplete: {e}")
        raise PersistenceError(
            f"Could not roll back '{operation}'; parcel and transfer history may be incomplete.",
            {"operation": operation},
            history_incomplete=True,
        ) from e


def transfer_retrying() -> AsyncRetrying:
    """Bounded exponential backoff for transfers that lost a race."""
    return AsyncRetrying(
        stop=stop_after_attempt(settings.TRANSFER_MAX_ATTEMPTS),
        wait=wait_exponential(
            multiplier=settings.TRANSFER_RETRY_MIN_SECONDS,
            min=settings.TRANSFER_RETRY_MIN_SECONDS,
            max=settings.TRANSFER_RETRY_MAX_SECONDS,
        ),
        retry=retry_if_exception_type(ConcurrentTransferError),
        reraise=True,
    )
