"""
Write strategy interface.
Allows swapping between different concurrency control approaches for the
whole-document read-modify-write cycle.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from event_scheduler.infrastructure.kv_backend import KeyValueBackend
from event_scheduler.schemas.event import EventList

# Receives the freshly read list; returns (new list, result) or (None, result)
# when nothing needs to be written.
Mutation = Callable[[EventList], tuple[Optional[EventList], Any]]


class WriteStrategy(ABC):
    """
    Interface for persisting a mutation of one post's event list.

    Implementations:
    - LockedWrite: per-key asyncio lock, correct within a single process
    - OptimisticWrite: version compare-and-set with retry, safe across processes
    """

    @abstractmethod
    async def apply(
        self, backend: KeyValueBackend, key: str, mutate: Mutation
    ) -> tuple[EventList, Any]:
        """
        Read the document at ``key``, run ``mutate`` on it and persist the result.

        Args:
            backend: Document store
            key: Document key of the post
            mutate: Pure function of the current list; may raise service errors

        Returns:
            (list as stored after the call, mutation result)
        """
        pass
