from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import MemoryLoader, build_tree, make_solution
from spottrainer.data.tree_store import DecisionTreeStore
from spottrainer.features.session import SessionManager
from spottrainer.web.app import create_app


def _client(*solutions) -> TestClient:
    trees = {solution.id: build_tree() for solution in solutions}
    store = DecisionTreeStore(solutions, MemoryLoader(trees, solutions))
    return TestClient(create_app(manager=SessionManager(store)))


@pytest.fixture
def client() -> TestClient:
    return _client(make_solution())


def _create(client: TestClient, **body) -> str:
    response = client.post("/api/v1/session", json=body)
    assert response.status_code == 201
    return response.json()["session"]


def test_health_and_catalog(client):
    assert client.get("/healthz").json() == {"status": "ok", "solutions": 1, "features": []}
    listing = client.get("/api/v1/solutions").json()
    assert listing[0]["id"] == "final_table/speed32"
    assert listing[0]["players"] == 4
    assert listing[0]["avg_stack_bb"] == 20.0


def test_full_round(client):
    sid = _create(client, spot_types="vs Shove", seed="4", timebank=0)

    dealt = client.post(f"/api/v1/session/{sid}/spot").json()
    assert dealt["pending"] is False
    spot = dealt["spot"]
    assert spot["spot_type"] == "vs Shove"
    assert spot["options"] == ["Fold", "Call"]
    assert "timebank_seconds" not in spot
    assert client.get(f"/api/v1/session/{sid}/spot").json()["spot"] == spot

    feedback = client.post(f"/api/v1/session/{sid}/answer", json={"action": "Call"})
    assert feedback.status_code == 200
    body = feedback.json()
    assert body["chosen"] == "Call"
    assert [row["label"] for row in body["actions"]] == ["Fold", "Call"]

    again = client.post(f"/api/v1/session/{sid}/answer", json={"action": "Call"})
    assert again.status_code == 400

    summary = client.get(f"/api/v1/session/{sid}/summary").json()
    assert summary["total"] == 1
    history = client.get(f"/api/v1/session/{sid}/history").json()
    assert history[0]["spot_type"] == "vs Shove"


def test_timeout_endpoint(client):
    sid = _create(client, spot_types=["RFI"], seed=1)
    client.post(f"/api/v1/session/{sid}/spot")
    response = client.post(f"/api/v1/session/{sid}/timeout")
    assert response.status_code == 200
    assert response.json()["timed_out"] is True


def test_errors(client):
    assert client.post("/api/v1/session", json={"spot_types": ["3bet"]}).status_code == 400
    assert client.get("/api/v1/session/nope/summary").status_code == 404
    assert client.post("/api/v1/session/nope/spot").status_code == 404
    sid = _create(client, seed=2)
    assert client.post(f"/api/v1/session/{sid}/answer", json={"action": "Fold"}).status_code == 400


def test_exhausted_generation_is_503():
    client = _client()
    sid = _create(client)
    response = client.post(f"/api/v1/session/{sid}/spot")
    assert response.status_code == 503
