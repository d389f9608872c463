"""Tests for the run_agent entry point over a JSON state file."""

from datetime import datetime, timedelta, timezone

import pytest

from claims_autopilot import agent
from claims_autopilot.models.actions import ActionStatus, ActionType, DraftContent, PendingAction
from claims_autopilot.models.claim import Claim
from claims_autopilot.models.policy import AutomationPolicy, AutonomyLevel
from claims_autopilot.storage.json_store import JsonFileStore
from claims_autopilot.utils.config import Config
from claims_autopilot.utils.errors import AutopilotError

from conftest import FakeClassifier, FakeDelivery, FakeTextGenerator


@pytest.fixture
def state_path(tmp_path, monkeypatch):
    path = tmp_path / "autopilot_state.json"
    monkeypatch.delenv("AUTOPILOT_STATE_PATH", raising=False)
    monkeypatch.setattr(agent, "_config", Config.from_dict({"storage": {"state_path": str(path)}}))
    return path


@pytest.fixture
def delivery(monkeypatch):
    fake = FakeDelivery()
    monkeypatch.setattr(agent, "_collaborators", {
        "text_generator": FakeTextGenerator(),
        "delivery": fake,
        "classifier": FakeClassifier(),
    })
    return fake


def _add_claim(path, claim_id):
    now = datetime.now(timezone.utc)
    JsonFileStore(str(path)).add_claim(
        Claim(id=claim_id, claim_number=f"CLM-{claim_id}", status="Open", created_at=now - timedelta(days=1)),
        AutomationPolicy(claim_id=claim_id, enabled=True, autonomy_level=AutonomyLevel.FULLY_AUTONOMOUS),
    )


def test_each_run_sees_changes_made_between_runs(state_path, delivery):
    assert agent.run_agent()["processed"] == 0

    _add_claim(state_path, "c1")

    assert agent.run_agent()["processed"] == 1


def test_run_does_not_overwrite_external_edits(state_path, delivery):
    _add_claim(state_path, "c1")
    agent.run_agent()

    JsonFileStore(str(state_path)).create_pending_action(PendingAction(
        id="p1",
        claim_id="c1",
        action_type=ActionType.EMAIL_RESPONSE,
        draft_content=DraftContent("pat@example.com", "Pat", "policyholder", "Checking in", "Claim update"),
        created_at=datetime.now(timezone.utc),
    ))
    _add_claim(state_path, "c2")

    result = agent.run_agent()

    assert result["processed"] == 2
    assert result["emailsSent"] == 1
    reloaded = JsonFileStore(str(state_path))
    assert reloaded.get_pending_action("p1").status == ActionStatus.SENT
    assert reloaded.get_claim("c2") is not None
    assert delivery.emails[0]["to"] == "pat@example.com"


def test_corrupt_state_fails_the_run(state_path, delivery):
    state_path.write_text("{not json", encoding="utf-8")

    with pytest.raises(AutopilotError):
        agent.run_agent()
