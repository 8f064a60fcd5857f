from event_scheduler.schemas.event import (
    Event, EventDraft, EventPatch, EventStatus, RSVP, event_status,
)
from event_scheduler.schemas.post import PostCreate, PostResponse, EventSnapshot, PostEventsResponse

__all__ = [
    "Event", "EventDraft", "EventPatch", "EventStatus", "RSVP", "event_status",
    "PostCreate", "PostResponse", "EventSnapshot", "PostEventsResponse",
]
