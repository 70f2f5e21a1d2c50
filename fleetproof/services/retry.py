"""
Retry - Bounded retry with exponential backoff for collaborator calls.

Only ExternalServiceError and timeouts are retried. Anything else
(claim mismatches, programming errors) propagates on the first try.
"""

from __future__ import annotations
from typing import Awaitable, Callable, TypeVar
import asyncio
import logging

from ..errors import ExternalServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    *,
    description: str,
    error_type: type[ExternalServiceError] = ExternalServiceError,
    attempts: int = 3,
    backoff: float = 0.5,
    timeout: float | None = None,
) -> T:
    """
    Await `operation()` up to `attempts` times.

    Sleeps backoff * 2**n between attempts. Raises `error_type` chained
    to the last failure once attempts are exhausted.
    """
    last_error: BaseException | None = None

    for attempt in range(1, attempts + 1):
        try:
            if timeout is None:
                return await operation()
            return await asyncio.wait_for(operation(), timeout)
        except (ExternalServiceError, asyncio.TimeoutError) as e:
            last_error = e
            logger.warning(
                "%s failed (attempt %d/%d): %s",
                description, attempt, attempts, e or type(e).__name__,
            )
            if attempt < attempts:
                await asyncio.sleep(backoff * (2 ** (attempt - 1)))

    raise error_type(f"{description} failed after {attempts} attempt(s)") from last_error
