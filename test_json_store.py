"""Tests for the JSON snapshot store and the audit log helpers."""

import json
import threading
from datetime import timedelta

import pytest

from claims_autopilot.models.actions import ActionStatus, ActionType, DraftContent, PendingAction
from claims_autopilot.models.audit import AuditAction, AuditLogEntry
from claims_autopilot.models.claim import Claim
from claims_autopilot.models.policy import AutomationPolicy, AutonomyLevel
from claims_autopilot.storage.audit_log import AuditLog
from claims_autopilot.storage.json_store import JsonFileStore
from claims_autopilot.storage.memory_store import InMemoryStore

from conftest import NOW


def _seed(store):
    store.add_claim(
        Claim(id="c1", claim_number="CLM-1", status="Under Review", created_at=NOW - timedelta(days=3)),
        AutomationPolicy(
            claim_id="c1",
            enabled=True,
            autonomy_level=AutonomyLevel.SEMI_AUTONOMOUS,
            keyword_blockers=["mold"],
        ),
    )
    store.create_pending_action(PendingAction(
        id="p1",
        claim_id="c1",
        action_type=ActionType.SMS,
        draft_content=DraftContent("+15550100", "Pat", "policyholder", "Hi Pat"),
        created_at=NOW,
    ))
    AuditLog(store).record("c1", AuditAction.EMAIL_SENT, auto_executed=True, summary="sent",
                           detail={"to": "pat@example.com"}, executed_at=NOW)


def test_snapshot_round_trips_through_disk(tmp_path):
    path = tmp_path / "state" / "autopilot.json"
    _seed(JsonFileStore(str(path)))

    reloaded = JsonFileStore(str(path))

    claim = reloaded.get_claim("c1")
    assert claim.created_at == NOW - timedelta(days=3)
    policy = reloaded.list_policies()[0]
    assert policy.autonomy_level == AutonomyLevel.SEMI_AUTONOMOUS
    assert policy.keyword_blockers == ["mold"]
    action = reloaded.get_pending_action("p1")
    assert action.action_type == ActionType.SMS
    assert action.status == ActionStatus.PENDING
    assert action.draft_content.recipient_address == "+15550100"
    entry = reloaded.all_audit_entries()[0]
    assert entry.executed_at == NOW
    assert entry.detail == {"to": "pat@example.com"}


def test_snapshot_is_plain_json(tmp_path):
    path = tmp_path / "autopilot.json"
    _seed(JsonFileStore(str(path)))

    data = json.loads(path.read_text(encoding="utf-8"))

    assert data["pending_actions"][0]["action_type"] == "sms"
    assert data["audit_log"][0]["executed_at"] == NOW.isoformat()
    assert not (tmp_path / "autopilot.json.tmp").exists()


def test_corrupt_snapshot_raises(tmp_path):
    path = tmp_path / "autopilot.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(IOError):
        JsonFileStore(str(path))


def test_mark_pending_action_sent_only_once():
    store = InMemoryStore()
    _seed(store)

    store.mark_pending_action_sent("p1", NOW)

    assert store.get_pending_action("p1").status == ActionStatus.SENT
    assert store.list_pending_actions("c1") == []
    with pytest.raises(ValueError):
        store.mark_pending_action_sent("p1", NOW)


def test_record_once_dedups_within_window():
    store = InMemoryStore()
    audit = AuditLog(store)

    first = audit.record_once("c1", AuditAction.ESCALATION, auto_executed=True, summary="a",
                              detail={"reason": "stalled_claim"}, dedup_on={"reason": "stalled_claim"},
                              since=NOW - timedelta(days=7), executed_at=NOW - timedelta(days=8))
    second = audit.record_once("c1", AuditAction.ESCALATION, auto_executed=True, summary="b",
                               detail={"reason": "stalled_claim"}, dedup_on={"reason": "stalled_claim"},
                               since=NOW - timedelta(days=7), executed_at=NOW)
    third = audit.record_once("c1", AuditAction.ESCALATION, auto_executed=True, summary="c",
                              detail={"reason": "stalled_claim"}, dedup_on={"reason": "stalled_claim"},
                              since=NOW - timedelta(days=7), executed_at=NOW)

    assert first is not None
    assert second is not None
    assert third is None
    assert audit.exists("c1", AuditAction.ESCALATION, detail_match={"reason": "stalled_claim"})
    assert not audit.exists("c1", AuditAction.ESCALATION, detail_match={"reason": "approaching_deadline"})


def test_conditional_append_is_atomic_across_threads():
    store = InMemoryStore()
    barrier = threading.Barrier(8)
    results = []

    def append():
        barrier.wait()
        entry = AuditLogEntry(claim_id="c1", action_type=AuditAction.IDLE_NUDGE,
                              was_auto_executed=True, result_summary="nudge", executed_at=NOW)
        results.append(store.append_audit_entry_if_absent(entry, since=NOW - timedelta(days=7)))

    threads = [threading.Thread(target=append) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count(True) == 1
    assert len(store.all_audit_entries()) == 1


def test_claim_lock_is_per_claim():
    store = InMemoryStore()
    with store.claim_lock("c1"):
        acquired = threading.Event()

        def other_claim():
            with store.claim_lock("c2"):
                acquired.set()

        thread = threading.Thread(target=other_claim)
        thread.start()
        thread.join(timeout=2)

    assert acquired.is_set()


def test_pending_actions_are_listed_oldest_first():
    store = InMemoryStore()
    for action_id, hours_ago in (("newest", 1), ("oldest", 48), ("middle", 5)):
        store.create_pending_action(PendingAction(
            id=action_id,
            claim_id="c1",
            action_type=ActionType.EMAIL_RESPONSE,
            draft_content=DraftContent("a@b.com", "A", "adjuster", "Hi"),
            created_at=NOW - timedelta(hours=hours_ago),
        ))

    assert [a.id for a in store.list_pending_actions("c1")] == ["oldest", "middle", "newest"]
