"""
Pydantic schemas for scheduler posts and the read-only REST snapshot.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from event_scheduler.schemas.event import CamelModel, Event, EventStatus


class PostCreate(CamelModel):
    title: str = Field("Community Event Scheduler", min_length=1, max_length=300)
    community: Optional[str] = Field(None, min_length=1, max_length=100)


class PostResponse(CamelModel):
    post_id: str
    title: str
    community: str
    created_at: datetime


class EventSnapshot(Event):
    status: EventStatus


class PostEventsResponse(CamelModel):
    post_id: str
    count: int
    events: list[EventSnapshot]
