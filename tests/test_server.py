import time

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from gigace.gig import GigService
from gigace.llm.provider import OfflineProvider
from gigace.web import server
from gigace.web.server import RUNS, app, get_service


@pytest.fixture
def client():
    app.dependency_overrides[get_service] = lambda: GigService(provider=OfflineProvider(), seed=5)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    RUNS.clear()


def test_generate_gig(client):
    response = client.post("/api/gig", json={"keyword": "logo design"})

    assert response.status_code == 200
    body = response.json()
    assert body["error"] is None
    assert body["title"].startswith("I will")
    assert len(body["search_tags"]) == 5
    assert body["pricing"]["basic"]["price"] < body["pricing"]["premium"]["price"]


def test_empty_keyword_returns_error_body(client):
    response = client.post("/api/gig", json={"keyword": ""})

    assert response.status_code == 200
    assert response.json()["error"] == "Main keyword cannot be empty."


def test_missing_keyword_is_a_validation_error(client):
    assert client.post("/api/gig", json={}).status_code == 422


def test_supplementary_endpoints(client):
    title = client.post("/api/gig/title", json={"keyword": "logo design", "current_title": "I will do logos"})
    tags = client.post("/api/gig/tags", json={"keyword": "logo design", "title": "I will do logos"})
    market = client.post("/api/market", json={"keyword": "logo design"})
    video = client.post(
        "/api/video",
        json={"keyword": "logo design", "title": "I will do logos", "description": "Logos for brands"},
    )

    assert title.json()["title"].startswith("I will")
    assert len(tags.json()["tags"]) == 5
    assert 2 <= len(market.json()["competitor_profiles"]) <= 4
    assert 10 <= video.json()["duration_seconds"] <= 60


def test_meta_describes_the_graph(client):
    body = client.get("/api/meta").json()

    assert [task["id"] for task in body["tasks"]][0] == "title"
    assert "category_lookup" in body["tools"]
    assert body["generation"]["tag_count"] == 5


def test_index_page(client):
    response = client.get("/")

    assert response.status_code == 200
    assert "Gig Generator" in response.text


def test_run_streams_status_then_result(client):
    run_id = client.post("/api/runs", json={"keyword": "logo design"}).json()["run_id"]

    events = []
    with client.websocket_connect(f"/ws/{run_id}") as websocket:
        while True:
            event = websocket.receive_json()
            events.append(event)
            if event["type"] == "result":
                break

    statuses = {(event["task_id"], event["status"]) for event in events if event["type"] == "status"}
    assert ("title", "pending") in statuses
    assert ("requirements", "repaired") in statuses
    assert any(event["type"] == "complete" for event in events)
    assert events[-1]["gig"]["title"].startswith("I will")


def test_unknown_run_is_rejected(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws/unknown") as websocket:
            websocket.receive_json()


class BrokenService(GigService):
    async def generate_gig(self, keyword, **kwargs):
        raise RuntimeError("backend exploded")


def wait_until(condition, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if condition():
            return True
        time.sleep(0.01)
    return condition()


def test_failed_run_still_ends_with_a_result(client):
    app.dependency_overrides[get_service] = lambda: BrokenService(provider=OfflineProvider(), seed=5)
    run_id = client.post("/api/runs", json={"keyword": "logo design"}).json()["run_id"]

    with client.websocket_connect(f"/ws/{run_id}") as websocket:
        event = websocket.receive_json()

    assert event["type"] == "result"
    assert event["gig"]["error"] == "backend exploded"


def test_unwatched_runs_are_dropped_after_retention(client, monkeypatch):
    monkeypatch.setattr(server, "RUN_RETENTION_SECONDS", 0.0)

    run_id = client.post("/api/runs", json={"keyword": "logo design"}).json()["run_id"]

    assert wait_until(lambda: run_id not in RUNS)
