"""
Locked write strategy - serialize each post's writes in this process.
"""

import asyncio
import weakref

from event_scheduler.infrastructure.calls import bounded
from event_scheduler.infrastructure.kv_backend import KeyValueBackend
from event_scheduler.schemas.event import decode_event_list, encode_event_list
from event_scheduler.services.interfaces.write_strategy import Mutation, WriteStrategy


class LockedWrite(WriteStrategy):
    """
    One asyncio lock per document key around read-modify-write.

    Use when:
    - A single server process owns the backend
    - Retries are undesirable (every write succeeds on first attempt)
    """

    def __init__(self):
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def apply(self, backend: KeyValueBackend, key: str, mutate: Mutation):
        async with self._lock_for(key):
            events = decode_event_list(await bounded(backend.get(key), "kv_get"))
            updated, result = mutate(events)
            if updated is None:
                return events, result
            await bounded(backend.set(key, encode_event_list(updated)), "kv_set")
            return updated, result
