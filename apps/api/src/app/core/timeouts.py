"""Timeouts for calls to external collaborators (database, hashing, mailer)."""

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from app.core.config import settings
from app.core.exceptions import UpstreamError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def with_timeout(
    awaitable: Awaitable[T],
    operation: str,
    message: str = "Request failed. Please try again.",
) -> T:
    """
    Await an external call, failing closed after EXTERNAL_CALL_TIMEOUT_SECONDS.

    Raises:
        UpstreamError: If the call times out
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=settings.external_call_timeout_seconds)
    except TimeoutError as e:
        logger.error(f"Timed out during {operation}")
        raise UpstreamError(message) from e
