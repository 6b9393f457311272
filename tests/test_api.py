"""Tests for the HTTP surface."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from planreview.api.app import create_app
from planreview.config import Settings
from planreview.events import ChangeEvent, ChangeEventType

PLAN = "Intro\n\n## Setup\nStep one.\n\n## Run\nStep two.\n"


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    plans = tmp_path / "plans"
    plans.mkdir()
    (plans / "doc.md").write_text(PLAN, encoding="utf-8")
    return Settings(plans_dir=plans, reviews_dir=tmp_path / "plan-comments", watch_enabled=False)


@pytest.fixture
def client(settings: Settings) -> TestClient:
    return TestClient(create_app(settings))


def test_health(client: TestClient) -> None:
    """It should report ok."""

    assert client.get("/api/health").json() == {"status": "ok"}


def test_list_and_get_plan(client: TestClient) -> None:
    """It should list plans and return parsed plans with camelCase fields."""

    resp = client.get("/api/plans")
    assert resp.status_code == 200
    [item] = resp.json()
    assert item["id"] == "doc"
    assert item["title"] == "doc"
    assert item["statusCounts"] == {"pending": 2, "approved": 0, "rejected": 0, "resolved": 0, "total": 2}
    assert item["hasComments"] is False

    plan = client.get("/api/plans/doc").json()
    assert [s["id"] for s in plan["sections"]] == ["2_setup", "2_run"]
    assert plan["sections"][0]["startLine"] == 2
    assert plan["metadata"]["sectionCount"] == 2

    assert client.get("/api/plans/missing").status_code == 404
    assert client.post("/api/plans/refresh").json() == {"count": 1}


def test_comment_endpoints(client: TestClient) -> None:
    """It should add, update and delete comments."""

    empty = client.get("/api/comments/doc").json()
    assert empty["planId"] == "doc"
    assert empty["sections"] == []

    resp = client.post("/api/comments/doc", json={"sectionId": "2_setup", "text": "Needs more detail", "heading": "Setup"})
    assert resp.status_code == 201
    comment = resp.json()
    assert comment["sectionId"] == "2_setup"
    assert comment["author"] == "User"
    assert "updatedAt" not in comment

    reviews = client.get("/api/comments/doc").json()
    assert reviews["sections"][0]["heading"] == "Setup"

    patched = client.patch(f"/api/comments/doc/{comment['id']}", json={"resolved": True})
    assert patched.status_code == 200
    assert patched.json()["resolved"] is True
    assert "resolvedAt" in patched.json()

    assert client.get("/api/plans").json()[0]["unresolvedCount"] == 0

    assert client.patch("/api/comments/doc/unknown", json={"text": "x"}).status_code == 404
    assert client.patch(f"/api/comments/doc/{comment['id']}", json={"author": "x"}).status_code == 400

    assert client.delete(f"/api/comments/doc/{comment['id']}").status_code == 204
    assert client.delete(f"/api/comments/doc/{comment['id']}").status_code == 404


def test_add_comment_requires_text(client: TestClient) -> None:
    """It should reject incomplete comments with a 400."""

    resp = client.post("/api/comments/doc", json={"sectionId": "2_setup"})
    assert resp.status_code == 400
    assert "error" in resp.json()


def test_section_status_endpoint(client: TestClient) -> None:
    """It should validate and apply section status changes."""

    bad = client.patch("/api/sections/doc/2_setup/status", json={"status": "done"})
    assert bad.status_code == 400

    resolved = client.patch("/api/sections/doc/2_setup/status", json={"status": "resolved", "heading": "Setup"})
    assert resolved.status_code == 200
    assert resolved.json()["status"] == "resolved"
    assert "resolvedAt" in resolved.json()

    counts = client.get("/api/plans").json()[0]["statusCounts"]
    assert counts["resolved"] == 1
    assert counts["pending"] == 1

    reopened = client.patch("/api/sections/doc/2_setup/status", json={"status": "pending"})
    assert "resolvedAt" not in reopened.json()


@pytest.mark.parametrize(
    "path, body",
    [
        ("/api/comments/doc", {"sectionId": "2_setup", "text": None}),
        ("/api/comments/doc", {"sectionId": ["2_setup"], "text": "hello"}),
        ("/api/sections/doc/2_setup/status", {"status": None}),
    ],
)
def test_malformed_bodies_are_400(client: TestClient, settings: Settings, path: str, body: dict) -> None:
    """It should answer malformed request bodies with the same 400 error shape."""

    send = client.post if path.startswith("/api/comments") else client.patch
    resp = send(path, json=body)

    assert resp.status_code == 400
    assert set(resp.json()) == {"error"}
    assert not (settings.reviews_dir / "doc.json").exists()


class _OpenConnection:
    async def is_disconnected(self) -> bool:
        return False


def test_event_stream_frames(settings: Settings) -> None:
    """It should greet subscribers and push each change as a `data:` frame."""

    app = create_app(settings)
    broker = app.state.broker
    endpoint = next(r.endpoint for r in app.routes if getattr(r, "path", None) == "/api/events")

    async def scenario() -> list[bytes]:
        resp = await endpoint(_OpenConnection())
        assert resp.media_type == "text/event-stream"
        stream = resp.body_iterator
        frames = [await stream.__anext__()]
        broker.publish(ChangeEvent.build(ChangeEventType.DOCUMENT_CHANGED, path="/plans/doc.md", plan_id="doc"))
        frames.append(await asyncio.wait_for(stream.__anext__(), timeout=5.0))
        await stream.aclose()
        return frames

    connected, data = asyncio.run(scenario())

    assert connected == b": connected\n\n"
    assert data.startswith(b"data: ") and data.endswith(b"\n\n")
    assert json.loads(data[len(b"data: ") :]) == {
        "type": "document:changed",
        "data": {"path": "/plans/doc.md", "id": "doc"},
    }
    assert broker.subscriber_count == 0
