"""
Event store: the canonical event list of one post.

Every mutation is a whole-document read-modify-write through the configured
WriteStrategy. Validation and authorization run inside the mutation so they
are re-checked against fresh data on every optimistic retry. The cached list
is replaced only after the backend accepted the write.
"""

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from pydantic import ValidationError

from event_scheduler.core.config import get_settings
from event_scheduler.core.logging import get_logger
from event_scheduler.core.metrics import record_mutation, store_write_latency
from event_scheduler.infrastructure.calls import bounded
from event_scheduler.infrastructure.kv_backend import KeyValueBackend
from event_scheduler.schemas.event import (
    RSVP,
    Event,
    EventDraft,
    EventList,
    EventPatch,
    decode_event_list,
    new_event_id,
    utcnow,
)
from event_scheduler.services.exceptions import Forbidden, NotFound, ServiceError, ValidationFailed
from event_scheduler.services.interfaces.write_strategy import Mutation, WriteStrategy
from event_scheduler.services.strategy_factory import get_write_strategy

logger = get_logger(__name__)


@dataclass(frozen=True)
class Actor:
    """The user a session acts for; the moderator flag is resolved once per session."""

    username: str
    is_moderator: bool = False


def events_key(post_id: str) -> str:
    return f"events_{post_id}"


def can_moderate(actor: Actor) -> bool:
    return actor.is_moderator


def check_event_fields(
    title: str,
    category: str,
    start_time: Optional[datetime],
    end_time: Optional[datetime],
    now: datetime,
    require_future_start: bool,
) -> None:
    """Raise ValidationFailed listing every broken field."""
    failed = []
    if not title or not title.strip():
        failed.append("title")
    if not category or not category.strip():
        failed.append("category")
    if start_time is None or (require_future_start and start_time <= now):
        failed.append("startTime")
    if end_time is not None and start_time is not None and end_time <= start_time:
        failed.append("endTime")
    if failed:
        raise ValidationFailed(failed)


def _find(events: EventList, event_id: str) -> Optional[Event]:
    return next((event for event in events if event.id == event_id), None)


def _apply_patch(event: Event, changes: dict) -> Event:
    """Merge patch fields into an event, re-validating the whole record."""
    try:
        return Event.model_validate({**event.model_dump(), **changes})
    except ValidationError as e:
        raise ValidationFailed([str(err["loc"][0]) for err in e.errors() if err["loc"]]) from e


class EventStore:
    def __init__(
        self,
        post_id: str,
        backend: KeyValueBackend,
        strategy: Optional[WriteStrategy] = None,
        clock: Callable[[], datetime] = utcnow,
        delete_allows_moderator: Optional[bool] = None,
    ):
        self.post_id = post_id
        self.key = events_key(post_id)
        self.backend = backend
        self.strategy = strategy or get_write_strategy()
        self.clock = clock
        if delete_allows_moderator is None:
            delete_allows_moderator = get_settings().DELETE_ALLOWS_MODERATOR
        self.delete_allows_moderator = delete_allows_moderator
        self._events: Optional[EventList] = None

    async def load(self, refresh: bool = False) -> EventList:
        """Current list; an empty list when the post has no document yet."""
        if self._events is None or refresh:
            raw = await bounded(self.backend.get(self.key), "kv_get")
            self._events = decode_event_list(raw)
        return list(self._events)

    async def create(self, draft: EventDraft, actor: Actor) -> tuple[Event, EventList]:
        def mutate(events: EventList):
            now = self.clock()
            check_event_fields(
                draft.title, draft.category, draft.start_time, draft.end_time, now,
                require_future_start=True,
            )
            taken = {e.id for e in events}
            event_id = new_event_id()
            while event_id in taken:
                event_id = new_event_id()
            event = Event(
                id=event_id,
                title=draft.title,
                description=draft.description,
                start_time=draft.start_time,
                end_time=draft.end_time,
                location=draft.location,
                category=draft.category,
                creator=actor.username,
                created_at=now,
                rsvps=[],
            )
            return [*events, event], event

        events, created = await self._write("create", mutate)
        logger.info("event_created", event_id=created.id, title=created.title, creator=actor.username)
        return created, events

    async def update(self, event_id: str, patch: EventPatch, actor: Actor) -> EventList:
        changes = patch.changes()

        def mutate(events: EventList):
            event = _find(events, event_id)
            if event is None:
                raise NotFound(event_id)
            if event.creator != actor.username and not can_moderate(actor):
                raise Forbidden("Only the creator or a moderator can edit this event")

            candidate = _apply_patch(event, changes)
            check_event_fields(
                candidate.title, candidate.category, candidate.start_time, candidate.end_time,
                self.clock(), require_future_start="start_time" in changes,
            )
            return [candidate if e.id == event_id else e for e in events], candidate

        events, _ = await self._write("update", mutate)
        logger.info("event_updated", event_id=event_id, fields=sorted(changes), actor=actor.username)
        return events

    async def delete(self, event_id: str, actor: Actor) -> EventList:
        """Remove an event. Deleting an id that is already gone is a no-op."""

        def mutate(events: EventList):
            event = _find(events, event_id)
            if event is None:
                return None, False
            moderator_override = self.delete_allows_moderator and can_moderate(actor)
            if event.creator != actor.username and not moderator_override:
                raise Forbidden("Only the creator can delete this event")
            return [e for e in events if e.id != event_id], True

        events, removed = await self._write("delete", mutate)
        logger.info("event_deleted", event_id=event_id, removed=removed, actor=actor.username)
        return events

    async def toggle_rsvp(self, event_id: str, actor: Actor) -> EventList:
        """Add the actor's RSVP, or remove it if one is already recorded."""

        def mutate(events: EventList):
            event = _find(events, event_id)
            if event is None:
                raise NotFound(event_id)
            if event.has_rsvp(actor.username):
                rsvps = [r for r in event.rsvps if r.user_id != actor.username]
            else:
                rsvps = [*event.rsvps, RSVP(user_id=actor.username, timestamp=self.clock())]
            toggled = event.model_copy(update={"rsvps": rsvps})
            attending = len(rsvps) > len(event.rsvps)
            return [toggled if e.id == event_id else e for e in events], attending

        events, attending = await self._write("toggle_rsvp", mutate)
        logger.info("rsvp_toggled", event_id=event_id, attending=attending, actor=actor.username)
        return events

    async def _write(self, operation: str, mutate: Mutation):
        start = time.perf_counter()
        try:
            events, result = await self.strategy.apply(self.backend, self.key, mutate)
        except ServiceError as e:
            outcome = "rejected" if e.code in ("validation_failed", "not_found", "forbidden") else "error"
            record_mutation(operation, outcome)
            logger.warning(f"{operation}_failed", code=e.code, reason=e.message)
            raise
        finally:
            store_write_latency.observe(time.perf_counter() - start)

        record_mutation(operation, "ok")
        self._events = events
        return list(events), result
