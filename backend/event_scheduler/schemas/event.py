"""
Pydantic schemas for the event list document and its mutations.

Field names serialize in camelCase so the stored JSON matches what display
surfaces exchange (``startTime``, ``createdAt``, ``userId``...).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from event_scheduler.services.exceptions import UnreadableDocument


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_event_id() -> str:
    return uuid4().hex


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RSVP(CamelModel):
    user_id: str
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def normalize_utc(cls, value):
        return _as_utc(value)


class Event(CamelModel):
    id: str
    title: str
    description: str = ""
    start_time: datetime
    end_time: Optional[datetime] = None
    location: str = ""
    category: str
    creator: str
    created_at: datetime
    rsvps: list[RSVP] = Field(default_factory=list)

    @field_validator("end_time", mode="before")
    @classmethod
    def blank_end_time_is_none(cls, value):
        return None if value == "" else value

    @field_validator("start_time", "end_time", "created_at")
    @classmethod
    def normalize_utc(cls, value):
        return _as_utc(value)

    def has_rsvp(self, username: str) -> bool:
        return any(rsvp.user_id == username for rsvp in self.rsvps)


class EventDraft(CamelModel):
    """Fields a member fills in when proposing an event."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True
    )

    title: str = Field(..., min_length=1, max_length=300)
    description: str = Field("", max_length=5000)
    start_time: datetime
    end_time: Optional[datetime] = None
    location: str = Field("", max_length=300)
    category: str = Field(..., min_length=1, max_length=100)

    @field_validator("end_time", mode="before")
    @classmethod
    def blank_end_time_is_none(cls, value):
        return None if value == "" else value

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_utc(cls, value):
        return _as_utc(value)


class EventPatch(CamelModel):
    """Partial update. Only fields present in the payload are applied."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True
    )

    title: Optional[str] = Field(None, min_length=1, max_length=300)
    description: Optional[str] = Field(None, max_length=5000)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=300)
    category: Optional[str] = Field(None, min_length=1, max_length=100)

    @field_validator("end_time", mode="before")
    @classmethod
    def blank_end_time_is_none(cls, value):
        return None if value == "" else value

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_utc(cls, value):
        return _as_utc(value)

    @field_validator("description", "location", mode="before")
    @classmethod
    def null_text_is_blank(cls, value):
        return "" if value is None else value

    @field_validator("title", "category", "start_time")
    @classmethod
    def required_fields_not_cleared(cls, value, info):
        # explicit null would clear a required field
        if value is None:
            raise ValueError(f"{info.field_name} cannot be cleared")
        return value

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class EventStatus(str, Enum):
    UPCOMING = "upcoming"
    LIVE = "live"
    ENDED = "ended"


def event_status(event: Event, now: Optional[datetime] = None) -> EventStatus:
    """Derived display status. Never persisted."""
    now = now or utcnow()
    if now < event.start_time:
        return EventStatus.UPCOMING
    if event.end_time is not None and now >= event.end_time:
        return EventStatus.ENDED
    return EventStatus.LIVE


EventList = list[Event]

_event_list_adapter = TypeAdapter(EventList)


def decode_event_list(raw: Optional[str]) -> EventList:
    """Parse a stored document; a missing document is an empty list."""
    if not raw:
        return []
    try:
        return _event_list_adapter.validate_json(raw)
    except ValidationError as e:
        raise UnreadableDocument(f"Stored event list unreadable: {e.error_count()} error(s)") from e


def encode_event_list(events: EventList) -> str:
    return _event_list_adapter.dump_json(events, by_alias=True).decode()


def dump_events(events: EventList) -> list[dict]:
    return _event_list_adapter.dump_python(events, mode="json", by_alias=True)
