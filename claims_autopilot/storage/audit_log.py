"""Append-only audit log of the agent's decisions."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..models.audit import AuditLogEntry
from .store import AutomationStore

logger = logging.getLogger(__name__)


class AuditLog:
    """
    Writes and queries decision records through the automation store.

    Every decision the agent takes (or declines to take) is recorded here;
    the daily budget and all dedup windows are derived from these entries.
    """

    def __init__(self, store: AutomationStore):
        self.store = store

    def record(
        self,
        claim_id: str,
        action_type: str,
        *,
        auto_executed: bool,
        summary: str,
        detail: Optional[Dict[str, Any]] = None,
        executed_at: Optional[datetime] = None,
        error_message: Optional[str] = None,
    ) -> AuditLogEntry:
        """
        Append an entry unconditionally.

        Args:
            claim_id: Claim the decision concerns
            action_type: One of AuditAction
            auto_executed: Whether the agent acted without approval
            summary: Human-readable outcome
            detail: Structured detail
            executed_at: Timestamp, defaults to now
            error_message: Optional error text

        Returns:
            The stored entry
        """
        entry = self._build(claim_id, action_type, auto_executed, summary, detail, executed_at, error_message)
        self.store.append_audit_entry(entry)
        logger.info(f"Audit: {action_type} (auto={auto_executed}) {summary}")
        return entry

    def record_once(
        self,
        claim_id: str,
        action_type: str,
        *,
        auto_executed: bool,
        summary: str,
        detail: Optional[Dict[str, Any]] = None,
        dedup_on: Optional[Dict[str, Any]] = None,
        since: Optional[datetime] = None,
        executed_at: Optional[datetime] = None,
    ) -> Optional[AuditLogEntry]:
        """
        Append an entry unless an equivalent one exists.

        Args:
            dedup_on: Detail keys and values that identify an equivalent entry
            since: Start of the dedup window; None means all history

        Returns:
            The stored entry, or None if it was a duplicate
        """
        entry = self._build(claim_id, action_type, auto_executed, summary, detail, executed_at, None)
        written = self.store.append_audit_entry_if_absent(entry, match_detail=dedup_on, since=since)
        if not written:
            return None
        logger.info(f"Audit: {action_type} (auto={auto_executed}) {summary}")
        return entry

    def exists(
        self,
        claim_id: str,
        action_type: str,
        *,
        since: Optional[datetime] = None,
        detail_match: Optional[Dict[str, Any]] = None,
    ) -> bool:
        return bool(self.store.find_audit_entries(
            claim_id, action_type=action_type, since=since, detail_match=detail_match
        ))

    def count_auto_executed_since(self, claim_id: str, since: datetime) -> int:
        return self.store.count_audit_entries(claim_id, since=since, auto_executed=True)

    def entries(self, claim_id: str, action_type: Optional[str] = None) -> List[AuditLogEntry]:
        return self.store.find_audit_entries(claim_id, action_type=action_type)

    @staticmethod
    def _build(
        claim_id: str,
        action_type: str,
        auto_executed: bool,
        summary: str,
        detail: Optional[Dict[str, Any]],
        executed_at: Optional[datetime],
        error_message: Optional[str],
    ) -> AuditLogEntry:
        entry = AuditLogEntry(
            claim_id=claim_id,
            action_type=action_type,
            was_auto_executed=auto_executed,
            result_summary=summary,
            detail=dict(detail or {}),
            error_message=error_message,
        )
        if executed_at is not None:
            entry.executed_at = executed_at
        return entry
