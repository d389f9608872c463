"""In-process implementation of the automation store."""

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List, Optional

from ..models.actions import ActionStatus, ClassificationResult, PendingAction
from ..models.audit import AuditLogEntry
from ..models.claim import CarrierDeadline, Claim, ClaimDocument, ClaimUpdate, Message, Task
from ..models.policy import AutomationPolicy
from .store import AutomationStore

logger = logging.getLogger(__name__)

# Table name -> (record type, key attribute)
TABLES = {
    "claims": (Claim, "id"),
    "policies": (AutomationPolicy, "claim_id"),
    "tasks": (Task, "id"),
    "messages": (Message, "id"),
    "claim_updates": (ClaimUpdate, "id"),
    "pending_actions": (PendingAction, "id"),
    "deadlines": (CarrierDeadline, "id"),
    "documents": (ClaimDocument, "id"),
    "audit_log": (AuditLogEntry, "id"),
}

# Sort key for records with no timestamp
EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


class InMemoryStore(AutomationStore):
    """
    Dictionary-backed store.

    A single re-entrant lock guards every table so that the conditional
    audit append is atomic; claim_lock hands out one lock per claim id.
    Subclasses persist state by overriding _after_write.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._claim_locks: Dict[str, threading.Lock] = {}
        self._tables: Dict[str, Dict[str, Any]] = {name: {} for name in TABLES}

    # Seeding helpers

    def add_claim(self, claim: Claim, policy: Optional[AutomationPolicy] = None) -> Claim:
        with self._lock:
            self._tables["claims"][claim.id] = claim
            if policy is not None:
                self._tables["policies"][policy.claim_id] = policy
            self._after_write()
        return claim

    def add_policy(self, policy: AutomationPolicy) -> AutomationPolicy:
        return self._insert("policies", policy)

    def add_task(self, task: Task) -> Task:
        return self._insert("tasks", task)

    def add_deadline(self, deadline: CarrierDeadline) -> CarrierDeadline:
        return self._insert("deadlines", deadline)

    def add_document(self, document: ClaimDocument) -> ClaimDocument:
        return self._insert("documents", document)

    def get_task(self, task_id: str) -> Optional[Task]:
        return self._tables["tasks"].get(task_id)

    def get_pending_action(self, action_id: str) -> Optional[PendingAction]:
        return self._tables["pending_actions"].get(action_id)

    def get_document(self, document_id: str) -> Optional[ClaimDocument]:
        return self._tables["documents"].get(document_id)

    def all_audit_entries(self) -> List[AuditLogEntry]:
        with self._lock:
            return list(self._tables["audit_log"].values())

    # AutomationStore

    def list_policies(self) -> List[AutomationPolicy]:
        with self._lock:
            return list(self._tables["policies"].values())

    def get_claim(self, claim_id: str) -> Optional[Claim]:
        return self._tables["claims"].get(claim_id)

    def list_tasks(self, claim_id: str, *, open_only: bool = False) -> List[Task]:
        with self._lock:
            tasks = [t for t in self._tables["tasks"].values() if t.claim_id == claim_id]
        if open_only:
            tasks = [t for t in tasks if not t.is_completed]
        return sorted(tasks, key=lambda t: t.created_at)

    def complete_task(self, task_id: str, completed_at: datetime, completed_by: Optional[str] = None) -> None:
        with self._lock:
            task = self._tables["tasks"][task_id]
            task.is_completed = True
            task.completed_at = completed_at
            task.completed_by = completed_by
            self._after_write()

    def create_task(self, task: Task) -> Task:
        return self._insert("tasks", task)

    def list_messages(
        self,
        claim_id: str,
        *,
        direction: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> List[Message]:
        with self._lock:
            messages = [m for m in self._tables["messages"].values() if m.claim_id == claim_id]
        if direction is not None:
            messages = [m for m in messages if m.direction == direction]
        if since is not None:
            messages = [m for m in messages if m.sent_at >= since]
        return sorted(messages, key=lambda m: m.sent_at)

    def record_message(self, message: Message) -> Message:
        return self._insert("messages", message)

    def list_claim_updates(self, claim_id: str, *, since: Optional[datetime] = None) -> List[ClaimUpdate]:
        with self._lock:
            updates = [u for u in self._tables["claim_updates"].values() if u.claim_id == claim_id]
        if since is not None:
            updates = [u for u in updates if u.created_at >= since]
        return sorted(updates, key=lambda u: u.created_at)

    def add_claim_update(self, update: ClaimUpdate) -> ClaimUpdate:
        return self._insert("claim_updates", update)

    def list_pending_actions(
        self,
        claim_id: str,
        *,
        status: ActionStatus = ActionStatus.PENDING,
    ) -> List[PendingAction]:
        with self._lock:
            actions = [
                a for a in self._tables["pending_actions"].values()
                if a.claim_id == claim_id and a.status == status
            ]
        return sorted(actions, key=lambda a: a.created_at or EARLIEST)

    def create_pending_action(self, action: PendingAction) -> PendingAction:
        return self._insert("pending_actions", action)

    def mark_pending_action_sent(self, action_id: str, sent_at: datetime) -> None:
        with self._lock:
            action = self._tables["pending_actions"][action_id]
            if action.status != ActionStatus.PENDING:
                raise ValueError(f"Pending action {action_id} is already {action.status.value}")
            self._tables["pending_actions"][action_id] = replace(
                action,
                status=ActionStatus.SENT,
                auto_executed=True,
                auto_executed_at=sent_at,
            )
            self._after_write()

    def list_deadlines(
        self,
        claim_id: str,
        *,
        status: str = "pending",
        due_from: Optional[datetime] = None,
        due_until: Optional[datetime] = None,
    ) -> List[CarrierDeadline]:
        with self._lock:
            deadlines = [
                d for d in self._tables["deadlines"].values()
                if d.claim_id == claim_id and d.status == status
            ]
        if due_from is not None:
            deadlines = [d for d in deadlines if d.deadline_date >= due_from]
        if due_until is not None:
            deadlines = [d for d in deadlines if d.deadline_date <= due_until]
        return sorted(deadlines, key=lambda d: d.deadline_date)

    def list_unclassified_documents(self, claim_ids: Iterable[str], limit: int) -> List[ClaimDocument]:
        wanted = set(claim_ids)
        with self._lock:
            documents = [
                d for d in self._tables["documents"].values()
                if d.claim_id in wanted and d.classification is None
            ]
        return documents[:limit]

    def update_document_classification(
        self,
        document_id: str,
        result: ClassificationResult,
        processed_at: datetime,
    ) -> None:
        with self._lock:
            document = self._tables["documents"][document_id]
            document.classification = result.label
            document.classification_confidence = result.confidence
            document.classification_metadata = dict(result.metadata)
            document.processed_at = processed_at
            self._after_write()

    def append_audit_entry(self, entry: AuditLogEntry) -> AuditLogEntry:
        return self._insert("audit_log", entry)

    def append_audit_entry_if_absent(
        self,
        entry: AuditLogEntry,
        *,
        match_detail: Optional[Dict[str, Any]] = None,
        since: Optional[datetime] = None,
    ) -> bool:
        with self._lock:
            existing = self.find_audit_entries(
                entry.claim_id,
                action_type=entry.action_type,
                since=since,
                detail_match=match_detail,
            )
            if existing:
                logger.debug(
                    f"Skipping duplicate {entry.action_type} for claim {entry.claim_id} "
                    f"(match={match_detail}, since={since})"
                )
                return False
            self._insert("audit_log", entry)
            return True

    def find_audit_entries(
        self,
        claim_id: str,
        *,
        action_type: Optional[str] = None,
        since: Optional[datetime] = None,
        detail_match: Optional[Dict[str, Any]] = None,
        auto_executed: Optional[bool] = None,
    ) -> List[AuditLogEntry]:
        with self._lock:
            entries = [e for e in self._tables["audit_log"].values() if e.claim_id == claim_id]
        if action_type is not None:
            entries = [e for e in entries if e.action_type == action_type]
        if since is not None:
            entries = [e for e in entries if e.executed_at >= since]
        if auto_executed is not None:
            entries = [e for e in entries if e.was_auto_executed == auto_executed]
        entries = [e for e in entries if e.matches(detail_match)]
        return sorted(entries, key=lambda e: e.executed_at)

    @contextmanager
    def claim_lock(self, claim_id: str) -> Iterator[None]:
        with self._lock:
            lock = self._claim_locks.setdefault(claim_id, threading.Lock())
        with lock:
            yield

    # Internals

    def _insert(self, table: str, record: Any) -> Any:
        _, key = TABLES[table]
        with self._lock:
            self._tables[table][getattr(record, key)] = record
            self._after_write()
        return record

    def _after_write(self) -> None:
        """Hook called with the store lock held after every mutation."""
