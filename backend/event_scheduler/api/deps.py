"""
FastAPI dependencies shared by the REST and WebSocket routes.
"""

from typing import Optional

from fastapi import Header, Query

from event_scheduler.core.config import get_settings
from event_scheduler.infrastructure.identity import IdentityProvider, StaticIdentityProvider
from event_scheduler.infrastructure.kv_backend import KeyValueBackend, get_backend


def get_kv_backend() -> KeyValueBackend:
    return get_backend()


def get_identity(
    username: Optional[str] = Query(None, min_length=1, max_length=100),
    x_username: Optional[str] = Header(None),
) -> IdentityProvider:
    """
    Identity of the connecting member.

    The hosting platform authenticates members in front of this service and
    forwards the username; browsers cannot set headers on WebSocket
    handshakes, hence the query parameter fallback.
    """
    return StaticIdentityProvider(x_username or username, get_settings().MODERATORS)
