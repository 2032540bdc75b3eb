"""
API tests against the FastAPI app with a scripted provider
"""
import time

import pytest
from fastapi.testclient import TestClient

import main
from conftest import QUESTION, ScriptedProvider, make_engine


def make_client(provider: ScriptedProvider):
    main.app.state.engine = make_engine(provider)
    return TestClient(main.app)


@pytest.fixture
def client():
    with make_client(ScriptedProvider()) as client:
        yield client
    main.app.state.engine = None


@pytest.fixture
def slow_client():
    with make_client(ScriptedProvider(delay=0.05)) as client:
        yield client
    main.app.state.engine = None


def wait_done(client: TestClient, run_id: str, timeout: float = 5.0) -> dict:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        state = client.get(f"/api/runs/{run_id}").json()
        if state["done"]:
            return state
        time.sleep(0.02)
    raise AssertionError(f"Run {run_id} did not finish")


# =============================================================================
# Health
# =============================================================================

class TestHealth:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_health_reports_provider(self, client):
        body = client.get("/api/health").json()
        assert body["status"] == "healthy"
        assert body["services"]["provider"] == "scripted"


# =============================================================================
# Runs
# =============================================================================

class TestRunsAPI:

    def test_start_and_poll(self, client):
        response = client.post("/api/runs", json={
            "question": QUESTION,
            "processing_depth": 2,
            "archetype_ids": ["visionary", "skeptic"],
        })
        assert response.status_code == 202
        started = response.json()
        assert started["stream_url"] == f"/api/runs/{started['run_id']}/stream"

        state = wait_done(client, started["run_id"])
        assert state["result"]["status"] == "completed"
        assert state["result"]["metrics"]["layers_processed"] == 2
        assert state["error"] is None

    def test_invalid_request_lists_problems(self, client):
        response = client.post("/api/runs", json={
            "question": "short",
            "processing_depth": 0,
            "circuit_type": "spiral",
        })
        assert response.status_code == 422
        assert len(response.json()["detail"]) == 3

    def test_unknown_run(self, client):
        assert client.get("/api/runs/missing").status_code == 404
        assert client.post("/api/runs/missing/cancel").status_code == 404

    def test_stream_ends_with_result(self, slow_client):
        run_id = slow_client.post("/api/runs", json={
            "question": QUESTION,
            "processing_depth": 2,
            "circuit_type": "parallel",
            "archetype_ids": ["visionary", "skeptic"],
        }).json()["run_id"]

        messages = []
        with slow_client.websocket_connect(f"/api/runs/{run_id}/stream") as websocket:
            while True:
                message = websocket.receive_json()
                messages.append(message)
                if message["type"] != "progress":
                    break

        assert messages[-1]["type"] == "complete"
        assert messages[-1]["result"]["run_id"] == run_id
        progress = [m["event"] for m in messages if m["type"] == "progress"]
        assert progress[-1]["phase"] == "completed"
        assert all(0 <= e["current_layer"] <= 2 for e in progress)

    def test_stream_unknown_run(self, client):
        with client.websocket_connect("/api/runs/missing/stream") as websocket:
            message = websocket.receive_json()
        assert message["type"] == "error"

    def test_cancel(self, slow_client):
        run_id = slow_client.post("/api/runs", json={
            "question": QUESTION,
            "processing_depth": 10,
            "archetype_ids": ["visionary", "skeptic"],
            "tension": {"contradiction_threshold": 10, "archetype_overlap": 5},
        }).json()["run_id"]

        assert slow_client.post(f"/api/runs/{run_id}/cancel").status_code == 200
        state = wait_done(slow_client, run_id)

        if state["result"] is not None:
            assert state["result"]["status"] == "cancelled"
        else:
            assert state["error"]["kind"] == "cancelled"


# =============================================================================
# Archetypes
# =============================================================================

class TestArchetypesAPI:

    def test_list(self, client):
        body = client.get("/api/archetypes").json()
        assert body["total"] == 9
        assert body["active"] == ["analyst", "visionary", "skeptic", "pragmatist", "synthesizer"]

    def test_get_unknown(self, client):
        assert client.get("/api/archetypes/oracle").status_code == 404

    def test_create_custom_with_defaults(self, client):
        response = client.put("/api/archetypes/gardener", json={"name": "The Gardener", "imagination": 12})
        assert response.status_code == 200
        archetype = response.json()
        assert archetype["id"] == "gardener"
        assert archetype["imagination"] == 10.0
        assert archetype["skepticism"] == 5.0
        assert archetype["language_style"] == "logical"

        assert client.get("/api/archetypes/gardener").json()["name"] == "The Gardener"
        assert client.delete("/api/archetypes/gardener").json()["message"] == "Archetype deleted successfully"
        assert client.get("/api/archetypes/gardener").status_code == 404

    def test_invalid_language_style(self, client):
        response = client.put("/api/archetypes/odd", json={"name": "Odd", "language_style": "whispered"})
        assert response.status_code == 422

    def test_delete_builtin_restores_defaults(self, client):
        client.put("/api/archetypes/skeptic", json={"name": "Gentle Skeptic", "skepticism": 2})
        body = client.delete("/api/archetypes/skeptic").json()

        assert body["archetype"]["name"] == "The Skeptic"
        assert client.get("/api/archetypes/skeptic").json()["skepticism"] == 9.0

    def test_edited_archetype_is_used_by_new_runs(self, client):
        client.put("/api/archetypes/gardener", json={"name": "The Gardener"})
        run_id = client.post("/api/runs", json={
            "question": QUESTION,
            "processing_depth": 1,
            "archetype_ids": ["gardener", "skeptic"],
        }).json()["run_id"]

        state = wait_done(client, run_id)
        names = [p["archetype_name"] for p in state["result"]["layers"][0]["perspectives"]]
        assert names == ["The Skeptic", "The Gardener"]


# =============================================================================
# Learning
# =============================================================================

class TestLearningAPI:

    def test_recommendation_without_history(self, client):
        body = client.get("/api/learning/recommendations", params={"question": QUESTION}).json()
        assert body["domain"] == "Business"
        assert body["options"]["processing_depth"] == 3

    def test_best_configurations_after_run(self, client):
        run_id = client.post("/api/runs", json={
            "question": QUESTION,
            "processing_depth": 1,
            "archetype_ids": ["visionary", "skeptic"],
        }).json()["run_id"]
        wait_done(client, run_id)

        deadline = time.monotonic() + 2.0
        while client.get("/api/learning/stats").json()["total_records"] == 0:
            assert time.monotonic() < deadline
            time.sleep(0.02)

        body = client.get("/api/learning/best", params={"domain": "Business"}).json()
        assert body["configurations"][0]["signature"] == "sequential-enhanced-depth1"

    def test_similar_questions_after_run(self, client):
        run_id = client.post("/api/runs", json={
            "question": QUESTION,
            "processing_depth": 1,
            "archetype_ids": ["visionary", "skeptic"],
        }).json()["run_id"]
        wait_done(client, run_id)

        deadline = time.monotonic() + 2.0
        while client.get("/api/learning/stats").json()["total_records"] == 0:
            assert time.monotonic() < deadline
            time.sleep(0.02)

        body = client.get("/api/learning/similar", params={"question": QUESTION}).json()
        assert body[0]["question"] == QUESTION
        assert client.get("/api/learning/similar", params={"question": "Unrelated cosmic weather query"}).json() == []
