"""
Optimistic write strategy for the per-post event document.

CONCURRENCY STRATEGY: Version Stamp with Retry
==============================================

Problem:
  Two members RSVP to the same post at the same time. Both read the list,
  both append their RSVP, both write the whole document back.
  Result: one RSVP silently disappears (lost update).

Solution:
  Every document has a version counter next to it.

  1. Read the document and its current version
  2. Apply the mutation to the freshly decoded list
  3. Write only if the version is still the one we read (compare-and-set)
  4. If another writer got there first, re-read and re-apply

  Validation and authorization run inside the mutation, so a retry is
  judged against the list as it is now, not as it was on the first read.
"""

from event_scheduler.core.config import get_settings
from event_scheduler.core.logging import get_logger
from event_scheduler.core.metrics import version_conflicts
from event_scheduler.infrastructure.calls import bounded
from event_scheduler.infrastructure.kv_backend import KeyValueBackend
from event_scheduler.schemas.event import decode_event_list, encode_event_list
from event_scheduler.services.exceptions import ConcurrencyConflict
from event_scheduler.services.interfaces.write_strategy import Mutation, WriteStrategy

logger = get_logger(__name__)


class OptimisticWrite(WriteStrategy):
    """
    Compare-and-set on the document version.

    Use when:
    - Several server instances share one backend
    - Contention per post is low (most writes win on the first attempt)
    """

    def __init__(self, max_attempts: int | None = None):
        if max_attempts is None:
            max_attempts = get_settings().MAX_RETRY_ATTEMPTS
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts

    async def apply(self, backend: KeyValueBackend, key: str, mutate: Mutation):
        for attempt in range(1, self.max_attempts + 1):
            raw, version = await bounded(backend.get_versioned(key), "kv_get")
            events = decode_event_list(raw)

            updated, result = mutate(events)
            if updated is None:
                return events, result

            written = await bounded(
                backend.set_if_version(key, encode_event_list(updated), version),
                "kv_compare_and_set",
            )
            if written:
                return updated, result

            version_conflicts.inc()
            logger.info("write_retry", key=key, attempt=attempt, reason="version_conflict")

        logger.warning("write_conflict_exhausted", key=key, attempts=self.max_attempts)
        raise ConcurrencyConflict("The event list changed too many times, please retry")
