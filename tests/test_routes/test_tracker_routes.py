import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient

from buybox.dependencies import get_tracker
from buybox.main import app
from tests.mocks import COMPETITOR, SUBJECT_ID


@pytest.fixture
def test_client(tracker):
    """Test client wired to the in-memory tracker"""
    app.dependency_overrides[get_tracker] = lambda: tracker
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def test_status_when_idle(test_client):
    response = test_client.get("/api/tracker/status")

    assert response.status_code == 200
    data = response.json()
    assert data["running"] is False
    assert data["cycles_completed"] == 0
    assert data["last_cycle"] is None


def test_trigger_subject(test_client, store, provider):
    store.add_item(SUBJECT_ID, "B001")
    provider.set_offer("B001", COMPETITOR)

    response = test_client.post(f"/api/tracker/trigger/{SUBJECT_ID}")

    assert response.status_code == 200
    assert response.json() == {"subject_id": SUBJECT_ID, "processed": 1, "skipped": 0, "failed": 0}
    assert store.states[(SUBJECT_ID, "B001")].holder_id == COMPETITOR


def test_trigger_unknown_subject_is_404(test_client):
    response = test_client.post("/api/tracker/trigger/nobody")
    assert response.status_code == 404


def test_trigger_with_database_down_is_503(test_client, store):
    store.fail_reads = True
    response = test_client.post(f"/api/tracker/trigger/{SUBJECT_ID}")
    assert response.status_code == 503


def test_start_passes_period(test_client, tracker, mocker):
    mock_start = mocker.patch.object(tracker, "start", new=AsyncMock(return_value=True))
    tracker.period_seconds = 120

    response = test_client.post("/api/tracker/start", params={"period_seconds": 120})

    assert response.status_code == 200
    assert response.json()["status"] == "success"
    mock_start.assert_awaited_once_with(120)


def test_start_when_running_warns(test_client, tracker, mocker):
    mocker.patch.object(tracker, "start", new=AsyncMock(return_value=False))

    response = test_client.post("/api/tracker/start")

    assert response.json()["status"] == "warning"


def test_start_rejects_non_positive_period(test_client):
    response = test_client.post("/api/tracker/start", params={"period_seconds": 0})
    assert response.status_code == 422


def test_stop_when_not_running(test_client):
    response = test_client.post("/api/tracker/stop")

    assert response.status_code == 200
    assert response.json()["status"] == "warning"


def test_health(test_client):
    response = test_client.get("/health")
    assert response.json() == {"status": "healthy", "service": "BuyBox Tracker"}
