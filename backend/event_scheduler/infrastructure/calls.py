"""
Bounded external calls.

Identity lookups and backend reads/writes can hang under platform load;
every one of them goes through ``bounded`` so a stall surfaces as
``Unavailable`` instead of pinning a session.
"""

import asyncio
from typing import Awaitable, Optional, TypeVar

from event_scheduler.core.config import get_settings
from event_scheduler.core.logging import get_logger
from event_scheduler.services.exceptions import Unavailable

logger = get_logger(__name__)

T = TypeVar("T")


async def bounded(call: Awaitable[T], operation: str, timeout: Optional[float] = None) -> T:
    timeout = get_settings().EXTERNAL_CALL_TIMEOUT if timeout is None else timeout
    try:
        return await asyncio.wait_for(call, timeout)
    except asyncio.TimeoutError as e:
        logger.error("external_call_timeout", operation=operation, timeout=timeout)
        raise Unavailable(f"{operation} timed out after {timeout}s") from e
