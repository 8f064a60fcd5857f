"""
Pytest fixtures: in-memory backend, static identities, stores and a
recording display surface.

Everything runs against InMemoryBackend, so no Redis is needed.
"""

import os

os.environ.setdefault("KV_BACKEND", "memory")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("MODERATORS", '{"community": ["carol"]}')

from datetime import datetime, timezone, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from event_scheduler.api.deps import get_kv_backend
from event_scheduler.core.config import get_settings
from event_scheduler.infrastructure.identity import StaticIdentityProvider
from event_scheduler.infrastructure.kv_backend import InMemoryBackend
from event_scheduler.main import app
from event_scheduler.schemas.event import EventDraft
from event_scheduler.services.event_store import Actor, EventStore
from event_scheduler.services.optimistic_write import OptimisticWrite

POST_ID = "post-1"
MODERATORS = {"community": ["carol"]}


def future(days: int = 7, hours: int = 0) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days, hours=hours)


def make_draft(**overrides) -> EventDraft:
    data = {
        "title": "Meetup",
        "category": "Social",
        "startTime": future().isoformat(),
        "description": "Monthly meetup",
        "location": "Library",
    }
    data.update(overrides)
    return EventDraft.model_validate(data)


class Recorder:
    """Display surface double: collects every response pushed to it."""

    def __init__(self):
        self.messages: list[dict] = []

    async def __call__(self, message: dict) -> None:
        self.messages.append(message)

    @property
    def types(self) -> list[str]:
        return [m["type"] for m in self.messages]

    @property
    def last(self) -> dict:
        return self.messages[-1]


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def store(backend) -> EventStore:
    return EventStore(POST_ID, backend, strategy=OptimisticWrite(max_attempts=3), delete_allows_moderator=True)


@pytest.fixture
def alice() -> Actor:
    return Actor("alice")


@pytest.fixture
def bob() -> Actor:
    return Actor("bob")


@pytest.fixture
def carol() -> Actor:
    return Actor("carol", is_moderator=True)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def identity_for():
    def build(username: str) -> StaticIdentityProvider:
        return StaticIdentityProvider(username, MODERATORS)
    return build


@pytest.fixture
def fast_timeout(monkeypatch):
    """Shrink the external call timeout so hanging doubles fail quickly."""
    monkeypatch.setattr(get_settings(), "EXTERNAL_CALL_TIMEOUT", 0.05)


@pytest_asyncio.fixture
async def client(backend) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the test backend."""
    app.dependency_overrides[get_kv_backend] = lambda: backend

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
