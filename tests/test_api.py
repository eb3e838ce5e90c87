import pytest
from fastapi.testclient import TestClient

from wordcoach.api.dependencies import build_services
from wordcoach.api.schemas.plan_schemas import DailySession, Plan, PlanProgress
from wordcoach.main import create_application
from wordcoach.utils.database import get_db
from wordcoach.utils.remote_client import MockRemotePlanClient

PLAN = Plan(id=1, plan_name="每日", category="小学", selected_plan="小学核心词", daily_count=5)


@pytest.fixture
def remote():
    return MockRemotePlanClient(
        plans=[PLAN],
        daily_sessions={1: DailySession(new_words=["cat", "dog"])},
        progress={1: PlanProgress(learned_count=1, total_count=20)},
    )


@pytest.fixture
def client(dictionary_service, remote, history_db):
    services = build_services(history_db, remote_client=remote, dictionary_service=dictionary_service)
    app = create_application(services)
    app.dependency_overrides[get_db] = lambda: history_db
    with TestClient(app) as test_client:
        yield test_client


def answer_all(client, wrong=()):
    state = client.get("/api/v1/sessions/current").json()
    test_type = state["session"]["current_test_type"]
    results = [
        {"word": q["word"], "is_correct": q["word"] not in wrong, "test_type": test_type}
        for q in state["questions"]
    ]
    return client.post("/api/v1/sessions/complete", json={"results": results})


def test_root_and_health(client):
    assert client.get("/").json()["status"] == "running"
    health = client.get("/health").json()
    assert health["dictionary"] == "loaded"


def test_dictionary_endpoints(client):
    response = client.get("/api/v1/dictionary/lookup/cats")
    assert response.status_code == 200
    data = response.json()
    assert data["word"] == "cat"
    assert data["simplified_definition"] == "n. 猫"
    assert data["related_words"] == ["cats"]

    assert client.get("/api/v1/dictionary/lookup/nothing").status_code == 404

    search = client.get("/api/v1/dictionary/search", params={"q": "苹果"}).json()
    assert search["results"][0]["word"] == "apple"

    assert client.get("/api/v1/dictionary/status").json()["word_count"] == 5


def test_session_lifecycle(client, remote):
    response = client.post("/api/v1/sessions/start", json={"words": ["cat", "dog"], "is_new_word_session": False, "plan_id": 1})
    assert response.status_code == 200
    assert response.json()["phase"] == "active"

    conflict = client.post("/api/v1/sessions/start", json={"words": ["run"]})
    assert conflict.status_code == 409

    answer_all(client, wrong=("dog",))
    answer_all(client)
    final = answer_all(client).json()

    assert final["phase"] == "completed"
    assert final["verdicts"] == {"cat": True, "dog": False}

    retry = client.post("/api/v1/sessions/retry").json()
    assert retry["session"]["words"] == ["dog"]

    client.post("/api/v1/sessions/cancel")
    assert client.get("/api/v1/sessions/current").json()["phase"] == "idle"

    history = client.get("/api/v1/sessions/history", params={"plan_id": 1}).json()
    assert history["total"] == 1
    assert history["sessions"][0]["failed_words"] == ["dog"]


def test_session_errors(client):
    assert client.post("/api/v1/sessions/start", json={"words": []}).status_code == 400
    assert client.post("/api/v1/sessions/complete", json={"results": []}).status_code == 409
    assert client.post("/api/v1/sessions/retry").status_code == 409


def test_plan_endpoints(client):
    plans = client.get("/api/v1/plans/").json()
    assert [p["id"] for p in plans] == [1]

    assert client.get("/api/v1/plans/1/progress").json()["learned_count"] == 1
    assert client.get("/api/v1/plans/1/daily-session").json()["new_words"] == ["cat", "dog"]


def test_learning_with_familiar_words(client, remote):
    marked = client.post("/api/v1/words/familiar", json={"word": "Dog"}).json()
    assert marked == {"word": "dog", "reported": False}
    assert client.get("/api/v1/words/familiar").json()["words"] == ["dog"]

    result = client.post("/api/v1/plans/1/learn", json={"words": ["cat", "dog"]}).json()
    assert result["started"] is True
    assert result["tested_words"] == ["cat"]
    assert result["skipped_familiar_words"] == ["dog"]


def test_learning_fully_familiar_batch(client, remote):
    client.post("/api/v1/words/familiar", json={"word": "cat"})
    result = client.post("/api/v1/plans/1/learn", json={"words": ["cat"]}).json()

    assert result["started"] is False
    assert client.get("/api/v1/sessions/current").json()["phase"] == "idle"
    assert "get_plan_progress" in remote.calls


def test_websocket_receives_snapshot_and_events(client):
    with client.websocket_connect("/ws/coordinator") as websocket:
        assert websocket.receive_json()["type"] == "snapshot"

        websocket.send_json({"type": "heartbeat"})
        assert websocket.receive_json()["type"] == "heartbeat_ack"

        client.post("/api/v1/sessions/start", json={"words": ["cat"]})
        event = websocket.receive_json()
        assert event["type"] == "session_started"
        assert event["state"]["session"]["words"] == ["cat"]


def test_session_record_lookup(client):
    client.post("/api/v1/sessions/start", json={"words": ["cat"], "is_new_word_session": False})
    for _ in range(3):
        answer_all(client)
    session_uid = client.get("/api/v1/sessions/current").json()["session"]["session_id"]

    record = client.get(f"/api/v1/sessions/history/{session_uid}").json()
    assert record["accuracy"] == 1.0
    assert record["plan_id"] is None
    assert client.get("/api/v1/sessions/history/missing").status_code == 404
