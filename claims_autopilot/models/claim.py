"""Claim records read (and occasionally updated) by the agent."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Any, Optional


@dataclass
class Claim:
    """
    A claim as seen by the agent.

    Attributes:
        id: Unique identifier
        claim_number: Human-facing claim number
        status: Free-text claim status
        policyholder_name: Name of the insured
        policyholder_email: Insured's email address
        policyholder_phone: Insured's mobile number, used for SMS
        adjuster_name: Carrier adjuster name
        adjuster_email: Carrier adjuster email address
        insurance_company: Carrier name
        loss_type: Loss type (wind, water, fire, ...)
        created_at: When the claim was opened
    """
    id: str
    claim_number: str
    status: str = ""
    policyholder_name: str = ""
    policyholder_email: Optional[str] = None
    policyholder_phone: Optional[str] = None
    adjuster_name: Optional[str] = None
    adjuster_email: Optional[str] = None
    insurance_company: Optional[str] = None
    loss_type: Optional[str] = None
    created_at: Optional[datetime] = None

    def facts(self) -> Dict[str, Any]:
        """Claim facts handed to the text generator."""
        return {
            "claim_number": self.claim_number,
            "status": self.status or "N/A",
            "policyholder_name": self.policyholder_name or "N/A",
            "insurance_company": self.insurance_company or "N/A",
            "adjuster_name": self.adjuster_name or "N/A",
            "loss_type": self.loss_type or "N/A",
        }


@dataclass
class Task:
    """A to-do item owned by a claim. completed_by=None means the system completed it."""
    id: str
    claim_id: str
    title: str
    created_at: datetime
    is_completed: bool = False
    completed_at: Optional[datetime] = None
    completed_by: Optional[str] = None
    description: str = ""
    due_date: Optional[date] = None


@dataclass
class Message:
    """
    An email or SMS exchanged on a claim.

    Attributes:
        direction: "inbound" or "outbound"
        channel: "email" or "sms"
        recipient_class: Role of the counterparty (adjuster, policyholder, ...)
    """
    id: str
    claim_id: str
    direction: str
    channel: str
    sent_at: datetime
    recipient_address: str = ""
    recipient_name: str = ""
    recipient_class: str = ""
    subject: Optional[str] = None

    @property
    def is_inbound(self) -> bool:
        return self.direction == "inbound"


@dataclass
class ClaimUpdate:
    """Activity note on a claim. update_type "automation" marks notes written by the agent."""
    id: str
    claim_id: str
    content: str
    created_at: datetime
    update_type: str = "note"

    @property
    def is_automation(self) -> bool:
        return self.update_type == "automation"


@dataclass
class CarrierDeadline:
    """A carrier-side deadline tracked on the claim (e.g. acknowledgement due)."""
    id: str
    claim_id: str
    deadline_type: str
    deadline_date: datetime
    status: str = "pending"


@dataclass
class ClaimDocument:
    """
    An uploaded file awaiting or carrying a classification.

    Attributes:
        file_type: MIME type as stored at upload
        extracted_text: OCR/extracted text, when available
        classification: Label such as estimate, denial, photo; None when unclassified
    """
    id: str
    claim_id: str
    file_name: str
    file_type: str = ""
    extracted_text: Optional[str] = None
    classification: Optional[str] = None
    classification_confidence: Optional[float] = None
    classification_metadata: Dict[str, Any] = field(default_factory=dict)
    processed_at: Optional[datetime] = None
