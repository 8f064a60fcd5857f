"""
Scheduler posts: allocation, metadata lookup and read-only snapshots.
"""

import json
from datetime import datetime
from typing import Optional
from uuid import uuid4

from event_scheduler.core.config import get_settings
from event_scheduler.core.logging import get_logger
from event_scheduler.infrastructure.calls import bounded
from event_scheduler.infrastructure.kv_backend import KeyValueBackend
from event_scheduler.schemas.event import event_status, utcnow
from event_scheduler.schemas.post import EventSnapshot, PostCreate, PostEventsResponse, PostResponse
from event_scheduler.services.event_store import EventStore

logger = get_logger(__name__)


def post_key(post_id: str) -> str:
    return f"post_{post_id}"


async def create_post(backend: KeyValueBackend, data: PostCreate) -> PostResponse:
    """
    Allocate a post to host an event list.
    The list itself is created lazily on first read.
    """
    post = PostResponse(
        post_id=uuid4().hex,
        title=data.title,
        community=data.community or get_settings().DEFAULT_COMMUNITY,
        created_at=utcnow(),
    )
    await bounded(
        backend.set(post_key(post.post_id), post.model_dump_json(by_alias=True)),
        "kv_set",
    )
    logger.info("post_created", post_id=post.post_id, community=post.community)
    return post


async def get_post(backend: KeyValueBackend, post_id: str) -> Optional[PostResponse]:
    raw = await bounded(backend.get(post_key(post_id)), "kv_get")
    if raw is None:
        return None
    return PostResponse.model_validate(json.loads(raw))


async def resolve_community(backend: KeyValueBackend, post_id: str) -> str:
    """Community a post belongs to; posts created elsewhere use the default."""
    post = await get_post(backend, post_id)
    return post.community if post else get_settings().DEFAULT_COMMUNITY


async def snapshot_events(
    backend: KeyValueBackend, post_id: str, now: Optional[datetime] = None
) -> PostEventsResponse:
    """Read-only view with derived status, the same data the post preview shows."""
    now = now or utcnow()
    events = await EventStore(post_id, backend).load()
    snapshots = [
        EventSnapshot(**event.model_dump(), status=event_status(event, now))
        for event in events
    ]
    return PostEventsResponse(post_id=post_id, count=len(snapshots), events=snapshots)
