"""HTTP tests for boardroom/server.py using FastAPI's TestClient."""

import time

import pytest
from fastapi.testclient import TestClient

from boardroom.agents import DemoResponder
from boardroom.server import create_app
from boardroom.service import CollaborationService

_PLAN = {
    "discussionTopic": "Migrate to Kubernetes?",
    "requiredAgents": ["ceo", "cfo", "cto", "hr"],
    "maxRounds": 3,
    "consensusThreshold": 0.7,
    "timeoutMinutes": 10,
    "facilitator": "ceo",
}


@pytest.fixture
def client():
    app = create_app(CollaborationService(DemoResponder()))
    with TestClient(app) as test_client:
        yield test_client


def _poll(client: TestClient, discussion_id: str, attempts: int = 200) -> dict:
    for _ in range(attempts):
        body = client.post(
            "/api/collaboration",
            json={"action": "get_discussion", "discussionId": discussion_id},
        ).json()
        if body["discussion"]["status"] != "active":
            return body["discussion"]
        time.sleep(0.01)
    raise AssertionError("discussion did not finish")


def test_demo_discussion_reaches_consensus_over_http(client):
    response = client.post(
        "/api/collaboration",
        json={"action": "start_collaboration", "sessionId": "s-1", "plan": _PLAN, "context": "Infra review"},
    )
    assert response.status_code == 200
    discussion_id = response.json()["discussion"]["id"]

    final = _poll(client, discussion_id)

    assert final["status"] == "consensus_reached"
    # proposals, a contested round, a fully agreeing round, then synthesis
    assert [e["type"] for e in final["events"]].count("proposal") == 4
    assert final["events"][-1]["type"] == "synthesis"
    assert set(final["consensus"]["supportingAgents"]) == {"ceo", "cfo", "cto", "hr"}


def test_invalid_plan_is_400(client):
    response = client.post(
        "/api/collaboration",
        json={
            "action": "start_collaboration",
            "sessionId": "s-1",
            "plan": {**_PLAN, "facilitator": "cmo"},
            "context": "x",
        },
    )
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_unknown_discussion_is_404(client):
    response = client.post("/api/collaboration", json={"action": "get_discussion", "discussionId": "nope"})
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Discussion not found"}


def test_invalid_action_is_400(client):
    response = client.post("/api/collaboration", json={"action": "dance"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid action"}


def test_malformed_json_is_400(client):
    response = client.post(
        "/api/collaboration",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )
    assert response.status_code == 400


def test_health_endpoint(client):
    response = client.get("/api/collaboration", params={"action": "health"})
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "operational"
    assert body["activeDiscussions"] == 0


def test_get_without_action_is_400(client):
    response = client.get("/api/collaboration")
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid action parameter"}


def test_internal_error_is_500(client, monkeypatch):
    def explode(*args, **kwargs):
        raise RuntimeError("registry corrupted")

    monkeypatch.setattr(CollaborationService, "get_discussion", explode)
    response = client.post("/api/collaboration", json={"action": "get_discussion", "discussionId": "x"})
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error", "details": "registry corrupted"}


def test_get_internal_error_is_500(client, monkeypatch):
    def explode(*args, **kwargs):
        raise RuntimeError("registry corrupted")

    monkeypatch.setattr(CollaborationService, "active_discussions", explode)
    response = client.get("/api/collaboration", params={"action": "health"})
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error", "details": "registry corrupted"}
