"""Tests for the HTTP run trigger."""

import pytest
from fastapi.testclient import TestClient

import server
from claims_autopilot import agent
from claims_autopilot.models.summary import RunSummary
from claims_autopilot.utils.config import Config
from claims_autopilot.utils.errors import AutopilotError, ErrorContext, ErrorType


@pytest.fixture
def runs(monkeypatch):
    calls = []

    def fake_run_agent():
        calls.append(1)
        return RunSummary(processed=3, emails_sent=1).to_dict()

    monkeypatch.setattr(agent, "run_agent", fake_run_agent)
    return calls


def _use_secret(monkeypatch, secret):
    config = Config.from_dict({"trigger": {"cron_secret": secret}})
    monkeypatch.setattr(agent, "load_config", lambda config_path="config.yaml": config)


@pytest.fixture
def client(monkeypatch):
    monkeypatch.delenv("CRON_SECRET", raising=False)
    return TestClient(server.app)


def test_valid_secret_runs_the_agent(client, monkeypatch, runs):
    _use_secret(monkeypatch, "s3cret")

    response = client.post("/api/run", headers={"X-Cron-Secret": "s3cret"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["results"]["processed"] == 3
    assert body["results"]["emailsSent"] == 1
    assert runs == [1]


@pytest.mark.parametrize("headers", [{}, {"X-Cron-Secret": "wrong"}, {"X-Cron-Secret": ""}])
def test_bad_secret_is_rejected_before_running(client, monkeypatch, runs, headers):
    _use_secret(monkeypatch, "s3cret")

    response = client.post("/api/run", headers=headers)

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}
    assert runs == []


def test_unset_secret_rejects_every_request(client, monkeypatch, runs):
    _use_secret(monkeypatch, "")

    response = client.post("/api/run", headers={"X-Cron-Secret": ""})

    assert response.status_code == 401
    assert runs == []


def test_unreadable_config_rejects(client, monkeypatch, runs):
    def broken(config_path="config.yaml"):
        raise FileNotFoundError(config_path)

    monkeypatch.setattr(agent, "load_config", broken)

    response = client.post("/api/run", headers={"X-Cron-Secret": "anything"})

    assert response.status_code == 401
    assert runs == []


def test_initialization_failure_returns_500(client, monkeypatch):
    _use_secret(monkeypatch, "s3cret")

    def failing_run():
        raise AutopilotError(ErrorContext(
            error_type=ErrorType.INITIALIZATION_FAILED,
            message="Failed to initialize claims autopilot: boom",
            recoverable=False,
        ))

    monkeypatch.setattr(agent, "run_agent", failing_run)

    response = client.post("/api/run", headers={"X-Cron-Secret": "s3cret"})

    assert response.status_code == 500
    assert response.json()["success"] is False


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
