"""Audit log models."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any, Optional

DEFAULT_TRIGGER_SOURCE = "claims_autopilot"


class AuditAction:
    """Action types written to the audit log."""
    TASK_COMPLETED = "task_completed"
    EMAIL_SENT = "email_sent"
    SMS_SENT = "sms_sent"
    PENDING_REVIEW = "pending_review"
    ESCALATION = "escalation"
    CARRIER_FOLLOW_UP = "carrier_follow_up"
    IDLE_NUDGE = "idle_nudge"


class EscalationReason:
    STALLED_CLAIM = "stalled_claim"
    APPROACHING_DEADLINE = "approaching_deadline"
    BLOCKED_KEYWORD = "blocked_keyword"


@dataclass
class AuditLogEntry:
    """
    One append-only record of a decision made by the agent.

    Attributes:
        claim_id: Claim the decision concerns
        action_type: One of AuditAction
        was_auto_executed: True when the agent acted without approval; counts against the daily budget
        result_summary: Human-readable outcome
        detail: Structured detail, also used as the dedup key
        executed_at: When the decision was recorded (UTC)
        trigger_source: Component family that wrote the entry
        id: Unique identifier
        error_message: Optional error text
        created_by: Author of the entry
    """
    claim_id: str
    action_type: str
    was_auto_executed: bool
    result_summary: str
    detail: Dict[str, Any] = field(default_factory=dict)
    executed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    trigger_source: str = DEFAULT_TRIGGER_SOURCE
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    error_message: Optional[str] = None
    created_by: str = "autopilot"

    def matches(self, detail_match: Optional[Dict[str, Any]]) -> bool:
        """True when every key in detail_match has the same value in this entry's detail."""
        if not detail_match:
            return True
        return all(self.detail.get(key) == value for key, value in detail_match.items())
