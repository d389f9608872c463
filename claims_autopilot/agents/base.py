"""Base class and shared run context for the per-claim workers."""

import logging
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Set

from ..models.actions import ActionType, DraftContent, PendingAction
from ..models.audit import AuditAction, EscalationReason
from ..models.claim import Claim, ClaimUpdate, Message
from ..models.policy import AutomationPolicy
from ..models.summary import RunSummary
from ..orchestration.budget import ActionBudgetGate, start_of_utc_day
from ..plugins.content_safety import ContentSafetyPlugin, SafetyOutcome, SafetyVerdict
from ..plugins.document_classifier import DocumentClassifier
from ..storage.audit_log import AuditLog
from ..storage.store import AutomationStore
from ..utils.config import AgentConfig
from ..utils.delivery_client import DeliveryClient
from ..utils.errors import ConfigurationError, DeliveryError, TextGenerationError
from ..utils.text_generator import DraftPrompt, TextGenerator

logger = logging.getLogger(__name__)

# Capabilities that a configuration error can switch off for a run
TEXT_GENERATION = "text_generation"
EMAIL_DELIVERY = "email_delivery"
SMS_DELIVERY = "sms_delivery"
DOCUMENT_CLASSIFICATION = "document_classification"


@dataclass
class RunContext:
    """
    Collaborators and shared state for a single orchestrator run.

    Attributes:
        store: Automation data store
        audit: Audit log over the store
        budget: Daily action budget gate
        safety: Content safety gate
        config: Agent windows and thresholds
        clock: Returns the current UTC time
        text_generator: Drafting collaborator, None when not configured
        delivery: Email/SMS transport, None when not configured
        classifier: Document classifier, None when not configured
        disabled_capabilities: Capabilities switched off for the rest of the run
    """
    store: AutomationStore
    audit: AuditLog
    budget: ActionBudgetGate
    safety: ContentSafetyPlugin
    config: AgentConfig
    clock: Callable[[], datetime]
    text_generator: Optional[TextGenerator] = None
    delivery: Optional[DeliveryClient] = None
    classifier: Optional[DocumentClassifier] = None
    disabled_capabilities: Set[str] = field(default_factory=set)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def now(self) -> datetime:
        return self.clock()

    def collaborator(self, capability: str) -> Optional[Any]:
        """
        Return the collaborator for a capability, or None if it is unavailable.

        A collaborator that was never configured disables its capability
        the first time it is asked for.
        """
        if capability in self.disabled_capabilities:
            return None
        instance = {
            TEXT_GENERATION: self.text_generator,
            EMAIL_DELIVERY: self.delivery,
            SMS_DELIVERY: self.delivery,
            DOCUMENT_CLASSIFICATION: self.classifier,
        }[capability]
        if instance is None:
            self.disable(capability, ConfigurationError.missing(capability, "collaborator"))
        return instance

    def disable(self, capability: str, error: ConfigurationError) -> None:
        """Switch a capability off for the rest of the run, logging only the first time."""
        with self._lock:
            if capability in self.disabled_capabilities:
                return
            self.disabled_capabilities.add(capability)
        logger.error(f"Disabling {capability} for this run: {error}")


class BaseClaimWorker(ABC):
    """
    Base class for the components that run once per claim.

    Workers are called with the claim lock held, so their budget and dedup
    checks and the writes that follow them are not interleaved with other
    workers on the same claim.
    """

    name = "worker"

    def __init__(self, context: RunContext):
        self.context = context
        self.store = context.store
        self.audit = context.audit
        self.budget = context.budget
        self.config = context.config

    @abstractmethod
    def run(self, claim: Claim, policy: AutomationPolicy, summary: RunSummary) -> None:
        """Process one claim, adding to the claim's summary."""

    def now(self) -> datetime:
        return self.context.now()

    def today(self) -> datetime:
        return start_of_utc_day(self.now())

    def budget_allows(self, policy: AutomationPolicy, action: str) -> bool:
        if self.budget.allowed(policy):
            return True
        logger.info(f"{self.name}: skipping {action}, daily action budget exhausted")
        return False

    def deliver(self, claim: Claim, action_type: ActionType, draft: DraftContent) -> bool:
        """
        Send a draft through the delivery collaborator and record the message.

        Returns:
            True if the message was sent; False if delivery failed or is unavailable
        """
        channel = "sms" if action_type == ActionType.SMS else "email"
        capability = SMS_DELIVERY if channel == "sms" else EMAIL_DELIVERY
        delivery = self.context.collaborator(capability)
        if delivery is None:
            return False

        try:
            if channel == "sms":
                delivery.send_sms(to_number=draft.recipient_address, body=draft.body, claim_id=claim.id)
            else:
                delivery.send_email(
                    to_address=draft.recipient_address,
                    to_name=draft.recipient_name,
                    subject=draft.subject or claim.claim_number,
                    body=draft.body,
                    claim_id=claim.id,
                )
        except ConfigurationError as e:
            self.context.disable(capability, e)
            return False
        except DeliveryError as e:
            logger.warning(f"{self.name}: delivery to {draft.recipient_address} failed: {e}")
            return False

        self.store.record_message(Message(
            id=str(uuid.uuid4()),
            claim_id=claim.id,
            direction="outbound",
            channel=channel,
            sent_at=self.now(),
            recipient_address=draft.recipient_address,
            recipient_name=draft.recipient_name,
            recipient_class=draft.recipient_class,
            subject=draft.subject,
        ))
        return True

    def queue_for_review(
        self,
        claim: Claim,
        action_type: ActionType,
        draft: DraftContent,
        reasoning: str
    ) -> PendingAction:
        action = PendingAction(
            id=str(uuid.uuid4()),
            claim_id=claim.id,
            action_type=action_type,
            draft_content=draft,
            ai_reasoning=reasoning,
            created_at=self.now(),
        )
        return self.store.create_pending_action(action)

    def escalate_blocked_draft(
        self,
        claim: Claim,
        verdict: SafetyVerdict,
        draft: DraftContent,
        summary: RunSummary,
        dedup_on: Dict[str, Any],
        since: Optional[datetime] = None
    ) -> bool:
        """
        Log a keyword escalation for a draft that must not be sent.

        Returns:
            True if a new escalation was written
        """
        detail = {
            "reason": EscalationReason.BLOCKED_KEYWORD,
            "blocked_keyword": verdict.blocked_keyword,
            "draft_subject": draft.subject,
            **dedup_on,
        }
        entry = self.audit.record_once(
            claim.id,
            AuditAction.ESCALATION,
            auto_executed=False,
            summary=f"Message blocked due to keyword \"{verdict.blocked_keyword}\" - requires human review",
            detail=detail,
            dedup_on={"reason": EscalationReason.BLOCKED_KEYWORD, **dedup_on},
            since=since,
            executed_at=self.now(),
        )
        if entry is None:
            return False
        summary.escalations += 1
        return True

    def add_activity_note(self, claim: Claim, content: str) -> None:
        self.store.add_claim_update(ClaimUpdate(
            id=str(uuid.uuid4()),
            claim_id=claim.id,
            content=content,
            created_at=self.now(),
            update_type="automation",
        ))

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name})"


class DraftingWorker(BaseClaimWorker):
    """
    Base for the schedulers that draft a new message and route it through
    the content safety gate.

    Each scheduler writes exactly one entry of its own action type per
    attempt (sent, queued or escalated), which is what its dedup window is
    checked against.
    """

    audit_action = ""

    def generate_draft(self, prompt: DraftPrompt) -> Optional[str]:
        """Return a drafted body, or None if drafting is unavailable or failed this cycle."""
        generator = self.context.collaborator(TEXT_GENERATION)
        if generator is None:
            return None
        try:
            return generator.generate(prompt)
        except ConfigurationError as e:
            self.context.disable(TEXT_GENERATION, e)
        except TextGenerationError as e:
            logger.warning(f"{self.name}: drafting failed, retrying next cycle: {e}")
        return None

    def route_draft(
        self,
        claim: Claim,
        policy: AutomationPolicy,
        summary: RunSummary,
        action_type: ActionType,
        draft: DraftContent,
        *,
        since: datetime,
        detail: Dict[str, Any],
        reasoning: str,
        client_facing: bool = False
    ) -> Optional[SafetyOutcome]:
        """
        Send, queue or escalate a freshly drafted message.

        Args:
            since: Start of this scheduler's dedup window
            detail: Extra detail for the scheduler's audit entry
            reasoning: Stored on the pending action when queued

        Returns:
            The outcome acted on, or None if nothing was recorded
        """
        verdict = self.context.safety.evaluate(draft, policy, client_facing=client_facing)

        if verdict.outcome == SafetyOutcome.AUTO_SEND:
            if not self.budget_allows(policy, f"{self.name} send"):
                return None
            if not self.deliver(claim, action_type, draft):
                return None
            entry = self._record(claim, True, f"Sent {self.name.replace('_', ' ')} to {draft.recipient_address}",
                                 {**detail, "autoSent": True, "to": draft.recipient_address}, since)
            summary.emails_sent += 1
            if entry is None:
                logger.warning(f"{self.name}: message sent but an entry for this window already existed")
            return verdict.outcome

        if verdict.outcome == SafetyOutcome.REVIEW:
            action = self.queue_for_review(claim, action_type, draft, reasoning)
            self._record(claim, False, f"Queued {self.name.replace('_', ' ')} for review: {verdict.reason}",
                         {**detail, "queuedForReview": True, "pending_action_id": action.id}, since)
            summary.queued_for_review += 1
            return verdict.outcome

        self.escalate_blocked_draft(claim, verdict, draft, summary, dedup_on={"source": self.name}, since=since)
        self._record(claim, False, f"Blocked {self.name.replace('_', ' ')}: keyword \"{verdict.blocked_keyword}\"",
                     {**detail, "escalated": True, "blocked_keyword": verdict.blocked_keyword}, since)
        return verdict.outcome

    def _record(
        self,
        claim: Claim,
        auto_executed: bool,
        summary_text: str,
        detail: Dict[str, Any],
        since: datetime
    ):
        return self.audit.record_once(
            claim.id,
            self.audit_action,
            auto_executed=auto_executed,
            summary=summary_text,
            detail=detail,
            since=since,
            executed_at=self.now(),
        )
