"""Data store interface used by the autonomous agent."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, ContextManager, Dict, Iterable, List, Optional

from ..models.actions import ActionStatus, ClassificationResult, PendingAction
from ..models.audit import AuditLogEntry
from ..models.claim import CarrierDeadline, Claim, ClaimDocument, ClaimUpdate, Message, Task
from ..models.policy import AutomationPolicy


class AutomationStore(ABC):
    """
    Read/write access to claims, policies, tasks, drafts, deadlines, documents
    and the audit log.

    Implementations must make append_audit_entry_if_absent atomic and must
    serialise holders of claim_lock for the same claim, so that budget and
    dedup checks cannot interleave with another worker's writes.
    """

    # Policies and claims

    @abstractmethod
    def list_policies(self) -> List[AutomationPolicy]:
        """Return every automation policy."""

    @abstractmethod
    def get_claim(self, claim_id: str) -> Optional[Claim]:
        """Return a claim by id, or None."""

    # Tasks

    @abstractmethod
    def list_tasks(self, claim_id: str, *, open_only: bool = False) -> List[Task]:
        """Return the claim's tasks, optionally only the incomplete ones."""

    @abstractmethod
    def complete_task(self, task_id: str, completed_at: datetime, completed_by: Optional[str] = None) -> None:
        """Mark a task completed."""

    @abstractmethod
    def create_task(self, task: Task) -> Task:
        """Insert a new task."""

    # Message history and activity

    @abstractmethod
    def list_messages(
        self,
        claim_id: str,
        *,
        direction: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> List[Message]:
        """Return messages on the claim ordered by sent_at ascending."""

    @abstractmethod
    def record_message(self, message: Message) -> Message:
        """Append a message to the claim's history."""

    @abstractmethod
    def list_claim_updates(self, claim_id: str, *, since: Optional[datetime] = None) -> List[ClaimUpdate]:
        """Return activity notes ordered by created_at ascending."""

    @abstractmethod
    def add_claim_update(self, update: ClaimUpdate) -> ClaimUpdate:
        """Append an activity note."""

    # Pending actions

    @abstractmethod
    def list_pending_actions(
        self,
        claim_id: str,
        *,
        status: ActionStatus = ActionStatus.PENDING,
    ) -> List[PendingAction]:
        """Return the claim's drafts in the given status, oldest first."""

    @abstractmethod
    def create_pending_action(self, action: PendingAction) -> PendingAction:
        """Insert a new draft."""

    @abstractmethod
    def mark_pending_action_sent(self, action_id: str, sent_at: datetime) -> None:
        """Transition a draft from pending to sent by the agent."""

    # Deadlines and documents

    @abstractmethod
    def list_deadlines(
        self,
        claim_id: str,
        *,
        status: str = "pending",
        due_from: Optional[datetime] = None,
        due_until: Optional[datetime] = None,
    ) -> List[CarrierDeadline]:
        """Return carrier deadlines in status with due_from <= deadline_date <= due_until."""

    @abstractmethod
    def list_unclassified_documents(self, claim_ids: Iterable[str], limit: int) -> List[ClaimDocument]:
        """Return up to limit documents without a classification."""

    @abstractmethod
    def update_document_classification(
        self,
        document_id: str,
        result: ClassificationResult,
        processed_at: datetime,
    ) -> None:
        """Store a classification on a document."""

    # Audit log

    @abstractmethod
    def append_audit_entry(self, entry: AuditLogEntry) -> AuditLogEntry:
        """Append an entry unconditionally."""

    @abstractmethod
    def append_audit_entry_if_absent(
        self,
        entry: AuditLogEntry,
        *,
        match_detail: Optional[Dict[str, Any]] = None,
        since: Optional[datetime] = None,
    ) -> bool:
        """
        Atomically append entry unless an entry with the same claim_id,
        action_type and matching detail exists at or after since.

        Returns:
            True if the entry was written, False if it was a duplicate
        """

    @abstractmethod
    def find_audit_entries(
        self,
        claim_id: str,
        *,
        action_type: Optional[str] = None,
        since: Optional[datetime] = None,
        detail_match: Optional[Dict[str, Any]] = None,
        auto_executed: Optional[bool] = None,
    ) -> List[AuditLogEntry]:
        """Return matching entries ordered by executed_at ascending."""

    def count_audit_entries(self, claim_id: str, **filters: Any) -> int:
        return len(self.find_audit_entries(claim_id, **filters))

    # Concurrency

    @abstractmethod
    def claim_lock(self, claim_id: str) -> ContextManager[None]:
        """Exclusive section for one claim's read-check-write sequences."""
