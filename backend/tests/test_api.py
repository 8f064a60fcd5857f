"""
Tests for the HTTP surface and the WebSocket session transport.
"""

import pytest
from fastapi.testclient import TestClient
from httpx import AsyncClient

from event_scheduler.api.deps import get_kv_backend
from event_scheduler.infrastructure.kv_backend import InMemoryBackend
from event_scheduler.main import app
from event_scheduler.services.exceptions import Unavailable
from event_scheduler.services.event_store import Actor, EventStore
from tests.conftest import future, make_draft


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_metrics(client: AsyncClient):
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "event_store_mutations_total" in response.text


@pytest.mark.asyncio
async def test_create_post(client: AsyncClient):
    response = await client.post("/api/v1/posts/", json={"community": "boardgames"})
    assert response.status_code == 201
    data = response.json()
    assert data["title"] == "Community Event Scheduler"
    assert data["community"] == "boardgames"
    assert data["postId"]


@pytest.mark.asyncio
async def test_create_post_defaults_community(client: AsyncClient):
    response = await client.post("/api/v1/posts/", json={"title": "Spring meetups"})
    assert response.status_code == 201
    assert response.json()["community"] == "community"


@pytest.mark.asyncio
async def test_post_events_snapshot(client: AsyncClient, backend):
    """Snapshot lists events with their derived status."""
    await EventStore("p1", backend).create(make_draft(), Actor("alice"))

    response = await client.get("/api/v1/posts/p1/events")
    assert response.status_code == 200
    data = response.json()
    assert data["count"] == 1
    assert data["events"][0]["status"] == "upcoming"
    assert data["events"][0]["creator"] == "alice"


@pytest.mark.asyncio
async def test_post_events_snapshot_empty(client: AsyncClient):
    response = await client.get("/api/v1/posts/unknown/events")
    assert response.status_code == 200
    assert response.json() == {"postId": "unknown", "count": 0, "events": []}


def test_websocket_session(backend):
    """Full exchange over the WebSocket transport."""
    app.dependency_overrides[get_kv_backend] = lambda: backend
    try:
        with TestClient(app) as http:
            with http.websocket_connect("/api/v1/posts/p1/session?username=alice") as ws:
                ws.send_json({"type": "ready"})
                initial = ws.receive_json()
                assert initial["type"] == "initialState"
                assert initial["username"] == "alice"
                assert initial["isModerator"] is False

                ws.send_json({
                    "type": "create",
                    "draft": {"title": "Meetup", "category": "Social", "startTime": future().isoformat()},
                })
                created = ws.receive_json()
                assert created["type"] == "created"

                ws.send_text("{not json")
                assert ws.receive_json()["code"] == "protocol_error"

            with http.websocket_connect(
                "/api/v1/posts/p1/session", headers={"X-Username": "carol"}
            ) as ws:
                ws.send_json({"type": "ready"})
                initial = ws.receive_json()
                assert initial["isModerator"] is True

                ws.send_json({"type": "delete", "eventId": created["event"]["id"]})
                assert ws.receive_json() == {"type": "deleted", "events": []}
    finally:
        app.dependency_overrides.clear()


def test_websocket_uses_post_community(backend):
    """Moderator privilege is evaluated against the post's community."""
    app.dependency_overrides[get_kv_backend] = lambda: backend
    try:
        with TestClient(app) as http:
            post = http.post("/api/v1/posts/", json={"community": "elsewhere"}).json()
            with http.websocket_connect(
                f"/api/v1/posts/{post['postId']}/session?username=carol"
            ) as ws:
                ws.send_json({"type": "ready"})
                assert ws.receive_json()["isModerator"] is False
    finally:
        app.dependency_overrides.clear()


class BrokenBackend(InMemoryBackend):
    async def get(self, key):
        raise Unavailable("Storage get failed")


@pytest.mark.asyncio
async def test_snapshot_backend_unavailable(client: AsyncClient):
    app.dependency_overrides[get_kv_backend] = lambda: BrokenBackend()
    response = await client.get("/api/v1/posts/p1/events")
    assert response.status_code == 503
    assert response.json()["detail"]["code"] == "unavailable"
