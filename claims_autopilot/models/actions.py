"""Pending outbound action models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class ActionType(str, Enum):
    """Channel of a drafted outbound message."""
    EMAIL_RESPONSE = "email_response"
    SMS = "sms"


class ActionStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    REJECTED = "rejected"


class RecipientClass(str, Enum):
    """Coarse recipient classes used by the content safety gate."""
    INSURANCE_PARTY = "insurance_party"
    OTHER = "other"


@dataclass
class DraftContent:
    """
    Body of a drafted message.

    Attributes:
        recipient_address: Email address or phone number
        recipient_name: Display name of the recipient
        recipient_class: Free-text role of the recipient (e.g. "primary adjuster", "policyholder")
        body: Message text
        subject: Subject line, email only
    """
    recipient_address: str
    recipient_name: str
    recipient_class: str
    body: str
    subject: Optional[str] = None

    @property
    def scan_text(self) -> str:
        """Text that the keyword scan runs over."""
        return f"{self.subject or ''} {self.body or ''}"


@dataclass
class PendingAction:
    """
    A drafted outbound message awaiting automatic dispatch or human approval.

    Attributes:
        id: Unique identifier
        claim_id: Claim the draft belongs to
        action_type: email_response or sms
        draft_content: Recipient and text of the draft
        status: pending until sent or rejected
        ai_reasoning: Why the draft was produced
        created_at: When the draft was created
        auto_executed: Whether the agent sent it without approval
        auto_executed_at: When the agent sent it
    """
    id: str
    claim_id: str
    action_type: ActionType
    draft_content: DraftContent
    status: ActionStatus = ActionStatus.PENDING
    ai_reasoning: str = ""
    created_at: Optional[datetime] = None
    auto_executed: bool = False
    auto_executed_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.status == ActionStatus.PENDING


@dataclass
class ClassificationResult:
    """Label returned by the document classification collaborator."""
    label: str
    confidence: float
    metadata: dict = field(default_factory=dict)
