"""
Post endpoints: create a scheduler post and read its events.
"""

from fastapi import APIRouter, Depends, status

from event_scheduler.api.deps import get_kv_backend
from event_scheduler.api.errors import http_error_from_service
from event_scheduler.infrastructure.kv_backend import KeyValueBackend
from event_scheduler.schemas.post import PostCreate, PostEventsResponse, PostResponse
from event_scheduler.services.exceptions import ServiceError
from event_scheduler.services.post_service import create_post, snapshot_events
from event_scheduler.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/posts", tags=["Posts"])


@router.post(
    "/",
    response_model=PostResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_post_endpoint(
    data: PostCreate,
    backend: KeyValueBackend = Depends(get_kv_backend),
):
    """Create a new event scheduler post in a community."""
    try:
        return await create_post(backend, data)
    except ServiceError as e:
        raise http_error_from_service(e) from e


@router.get("/{post_id}/events", response_model=PostEventsResponse, response_model_by_alias=True)
async def list_post_events_endpoint(
    post_id: str,
    backend: KeyValueBackend = Depends(get_kv_backend),
):
    """
    Read-only snapshot of a post's events with their derived status.
    Mutations go through the session WebSocket.
    """
    try:
        return await snapshot_events(backend, post_id)
    except ServiceError as e:
        raise http_error_from_service(e) from e
