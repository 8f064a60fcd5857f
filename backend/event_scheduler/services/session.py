"""
Per-post-view session: Uninitialized -> Loading -> Ready (or Failed).

The controller loads identity, moderator flag and the event list once, then
dispatches protocol requests to the EventStore one at a time and pushes
exactly one response per request back to the display surface.
"""

import asyncio
from collections import deque
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from event_scheduler.core.config import get_settings
from event_scheduler.core.logging import bind_session_context, get_logger
from event_scheduler.core.metrics import identity_errors, open_sessions, protocol_messages, record_deferred
from event_scheduler.infrastructure.calls import bounded
from event_scheduler.infrastructure.identity import IdentityProvider
from event_scheduler.schemas.protocol import (
    CreatedResponse,
    CreateRequest,
    DeletedResponse,
    DeleteRequest,
    InitialStateResponse,
    ReadyRequest,
    RejectedResponse,
    RsvpChangedResponse,
    ToggleRsvpRequest,
    UpdatedResponse,
    UpdateRequest,
    dump_response,
    parse_request,
)
from event_scheduler.services.event_store import Actor, EventStore
from event_scheduler.services.exceptions import ProtocolError, ServiceError, Unavailable, ValidationFailed

logger = get_logger(__name__)

Send = Callable[[dict[str, Any]], Awaitable[None]]


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


def rejection(error: ServiceError) -> RejectedResponse:
    return RejectedResponse(
        reason=error.message,
        code=error.code,
        fields=getattr(error, "fields", []),
    )


class SessionController:
    """
    Orchestrates one display surface against one post's EventStore.

    Identity and the moderator flag are resolved once in ``open`` and cached
    for the lifetime of the session; permission changes take effect on the
    next session (or the next ``ready`` after a failure).
    """

    def __init__(
        self,
        store: EventStore,
        identity: IdentityProvider,
        send: Send,
        community: str,
        pending_limit: Optional[int] = None,
    ):
        self.store = store
        self.identity = identity
        self.send = send
        self.community = community
        self.pending_limit = get_settings().PENDING_REQUEST_LIMIT if pending_limit is None else pending_limit
        self.state = SessionState.UNINITIALIZED
        self.actor: Optional[Actor] = None
        self._pending: deque = deque()
        self._lock = asyncio.Lock()
        self._counted = False

    async def open(self) -> None:
        """Load the session, then replay anything that arrived meanwhile."""
        self.state = SessionState.LOADING
        if not self._counted:
            open_sessions.inc()
            self._counted = True
        bind_session_context(self.store.post_id)

        error = await self._load()

        async with self._lock:
            self.state = SessionState.FAILED if error else SessionState.READY
            pending, self._pending = list(self._pending), deque()
            if error:
                for _ in pending:
                    await self._reply(rejection(error))
                return
            for payload in pending:
                await self._dispatch(payload)

    async def handle(self, payload: Any) -> None:
        """Process one raw request from the display surface."""
        if self.state in (SessionState.UNINITIALIZED, SessionState.LOADING):
            self._defer(payload)
            return
        async with self._lock:
            await self._dispatch(payload)

    def close(self) -> None:
        if self._counted:
            open_sessions.dec()
            self._counted = False
        logger.info("session_closed", state=self.state.value)

    def _defer(self, payload: Any) -> None:
        if len(self._pending) >= self.pending_limit:
            record_deferred(queued=False)
            logger.warning("request_dropped_while_loading", pending=len(self._pending))
            return
        record_deferred(queued=True)
        self._pending.append(payload)

    async def _load(self) -> Optional[Unavailable]:
        try:
            username, _ = await asyncio.gather(
                self._identity_call(self.identity.get_current_username(), "get_current_username"),
                self.store.load(refresh=True),
            )
            is_moderator = await self._identity_call(
                self.identity.get_moderator_flag(username, self.community), "get_moderator_flag"
            )
        except Unavailable as e:
            logger.error("session_load_failed", reason=e.message)
            return e
        except Exception as e:
            logger.exception("session_load_failed", error=str(e))
            return Unavailable("Session could not be loaded")

        self.actor = Actor(username=username, is_moderator=bool(is_moderator))
        bind_session_context(self.store.post_id, username)
        logger.info("session_ready", community=self.community, is_moderator=self.actor.is_moderator)
        return None

    async def _identity_call(self, call: Awaitable, operation: str):
        try:
            return await bounded(call, operation)
        except Unavailable:
            identity_errors.inc()
            raise
        except Exception as e:
            identity_errors.inc()
            logger.error("identity_lookup_failed", operation=operation, error=str(e))
            raise Unavailable(f"Identity lookup failed: {operation}") from e

    async def _dispatch(self, payload: Any) -> None:
        try:
            request = parse_request(payload)
        except ProtocolError as e:
            logger.error("protocol_error", reason=e.message)
            await self._reply(rejection(e))
            return
        except ValidationFailed as e:
            await self._reply(rejection(e))
            return

        protocol_messages.labels(tag=request.type).inc()

        if self.state is SessionState.FAILED:
            if not isinstance(request, ReadyRequest):
                await self._reply(rejection(Unavailable("Session is unavailable, send ready to reload")))
                return
            error = await self._load()
            if error:
                await self._reply(rejection(error))
                return
            self.state = SessionState.READY

        try:
            response = await self._execute(request)
        except Unavailable as e:
            self.state = SessionState.FAILED
            response = rejection(e)
        except ServiceError as e:
            response = rejection(e)
        except Exception as e:
            logger.exception("request_failed", tag=request.type, error=str(e))
            self.state = SessionState.FAILED
            response = rejection(Unavailable("Request could not be completed"))
        await self._reply(response)

    async def _execute(self, request):
        store, actor = self.store, self.actor

        if isinstance(request, ReadyRequest):
            events = await store.load(refresh=True)
            return InitialStateResponse(
                username=actor.username, events=events, is_moderator=actor.is_moderator
            )
        if isinstance(request, CreateRequest):
            event, events = await store.create(request.draft, actor)
            return CreatedResponse(event=event, events=events)
        if isinstance(request, UpdateRequest):
            return UpdatedResponse(events=await store.update(request.event_id, request.patch, actor))
        if isinstance(request, ToggleRsvpRequest):
            return RsvpChangedResponse(events=await store.toggle_rsvp(request.event_id, actor))
        if isinstance(request, DeleteRequest):
            return DeletedResponse(events=await store.delete(request.event_id, actor))
        raise ProtocolError(f"Unhandled message type: {request.type!r}")

    async def _reply(self, response) -> None:
        await self.send(dump_response(response))
