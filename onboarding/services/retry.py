"""Bounded retry for transient store failures (caller-side policy)."""
import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from onboarding.errors import TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_store_retry(operation: Callable[[], Awaitable[T]], attempts: int = 3, backoff: float = 0.2) -> T:
    attempt = 1
    while True:
        try:
            return await operation()
        except TransientStoreError as e:
            if attempt >= attempts:
                logger.error("Store operation failed after %d attempt(s): %s", attempt, e)
                raise
            logger.warning("Transient store error (attempt %d/%d): %s", attempt, attempts, e)
            await asyncio.sleep(backoff * attempt)
            attempt += 1
