"""
WebSocket transport for the sync protocol: one connection per post view.
"""

import asyncio

import structlog
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from event_scheduler.api.deps import get_identity, get_kv_backend
from event_scheduler.core.logging import bind_session_context, get_logger
from event_scheduler.infrastructure.identity import IdentityProvider
from event_scheduler.infrastructure.kv_backend import KeyValueBackend
from event_scheduler.services.event_store import EventStore
from event_scheduler.services.exceptions import Unavailable
from event_scheduler.services.post_service import resolve_community
from event_scheduler.services.session import SessionController

logger = get_logger(__name__)
router = APIRouter(prefix="/posts", tags=["Sessions"])


def _log_loading_failure(task: asyncio.Task) -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.error("session_open_crashed", error=repr(task.exception()))


@router.websocket("/{post_id}/session")
async def post_session(
    websocket: WebSocket,
    post_id: str,
    backend: KeyValueBackend = Depends(get_kv_backend),
    identity: IdentityProvider = Depends(get_identity),
):
    """
    Accept a display surface and run its session until it disconnects.

    Loading starts right away; requests received before it finishes are
    queued by the controller and answered once the session is ready.
    """
    await websocket.accept()
    structlog.contextvars.clear_contextvars()
    bind_session_context(post_id)

    try:
        community = await resolve_community(backend, post_id)
    except Unavailable as e:
        logger.error("session_rejected", post_id=post_id, reason=e.message)
        await websocket.close(code=1011, reason="Storage unavailable")
        return

    controller = SessionController(
        store=EventStore(post_id, backend),
        identity=identity,
        send=websocket.send_json,
        community=community,
    )
    loading = asyncio.create_task(controller.open())
    loading.add_done_callback(_log_loading_failure)

    try:
        while True:
            payload = await websocket.receive_text()
            await controller.handle(payload)
    except WebSocketDisconnect:
        logger.info("display_disconnected", post_id=post_id)
    finally:
        if not loading.done():
            loading.cancel()
        controller.close()
