"""Carrier follow-up scheduler for claims waiting on the insurer."""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional

from ..models.actions import ActionType, DraftContent, RecipientClass
from ..models.audit import AuditAction
from ..models.claim import Claim, Task
from ..models.policy import AutomationPolicy, AutonomyLevel
from ..models.summary import RunSummary
from ..plugins.claim_state import ClaimState, classify_claim_status
from ..plugins.content_safety import SafetyOutcome, classify_recipient
from ..utils.text_generator import DraftPrompt
from .base import DraftingWorker
from .task_completion import FOLLOW_UP_TITLE_PATTERN

logger = logging.getLogger(__name__)


class CarrierFollowUpScheduler(DraftingWorker):
    """
    Nudges the carrier when a claim awaiting its response has gone quiet.

    A follow-up is due when the claim status classifies as awaiting carrier,
    at least follow_up_interval_days have passed since the last outbound
    message to an insurance party, and no follow-up was attempted today.
    It stops after follow_up_max_count follow-ups without an inbound reply,
    and does not queue another while an earlier one is awaiting review.
    """

    name = "carrier_follow_up"
    audit_action = AuditAction.CARRIER_FOLLOW_UP

    def run(self, claim: Claim, policy: AutomationPolicy, summary: RunSummary) -> None:
        if classify_claim_status(claim.status) != ClaimState.AWAITING_CARRIER:
            return

        now = self.now()
        interval = policy.follow_up_interval_days or self.config.default_follow_up_interval_days
        last_contact = self.last_carrier_contact(claim)
        days_since_contact = (now - last_contact).days if last_contact else None
        if days_since_contact is not None and days_since_contact < interval:
            return

        if self.audit.exists(claim.id, AuditAction.CARRIER_FOLLOW_UP, since=self.today()):
            logger.debug(f"Carrier follow-up already attempted today for claim {claim.claim_number}")
            return

        follow_ups = self.follow_ups_since_last_reply(claim)
        if follow_ups >= policy.follow_up_max_count:
            logger.info(
                f"Claim {claim.claim_number}: {follow_ups} follow-ups without a reply "
                f"(max {policy.follow_up_max_count}), not following up again"
            )
            return

        if self.has_unreviewed_follow_up(claim):
            logger.debug(f"Claim {claim.claim_number}: earlier follow-up still awaiting review")
            return

        if not claim.adjuster_email:
            logger.info(f"Claim {claim.claim_number}: no adjuster email on file, skipping carrier follow-up")
            return

        # Fully autonomous follow-ups are sent; do not draft one the budget cannot cover
        if policy.autonomy_level == AutonomyLevel.FULLY_AUTONOMOUS and not self.budget_allows(policy, "carrier follow-up"):
            return

        body = self.generate_draft(DraftPrompt(
            purpose=self.name,
            claim_facts=claim.facts(),
            reason="The claim is awaiting a response from the carrier. Politely ask for a status update "
                   "and whether any additional information is needed.",
            tone="polite, professional, not pushy",
            channel="email",
            recipient_name=claim.adjuster_name or "",
            days_since_contact=days_since_contact,
        ))
        if body is None:
            return

        draft = DraftContent(
            recipient_address=claim.adjuster_email,
            recipient_name=claim.adjuster_name or "Adjuster",
            recipient_class="primary adjuster",
            body=body,
            subject=f"Follow-up: Claim {claim.claim_number}",
        )
        outcome = self.route_draft(
            claim,
            policy,
            summary,
            ActionType.EMAIL_RESPONSE,
            draft,
            since=self.today(),
            detail={"days_since_contact": days_since_contact},
            reasoning=f"Carrier follow-up due: {days_since_contact if days_since_contact is not None else 'no'} "
                      f"days since last carrier contact",
        )

        if outcome == SafetyOutcome.AUTO_SEND:
            self.add_activity_note(
                claim,
                f"Automated carrier follow-up sent to {draft.recipient_name} ({draft.recipient_address})",
            )
            self.chain_follow_up_task(claim, interval)

    def last_carrier_contact(self, claim: Claim) -> Optional[datetime]:
        """Time of the last outbound message to an insurance party, falling back to claim creation."""
        sent = [
            message.sent_at
            for message in self.store.list_messages(claim.id, direction="outbound")
            if classify_recipient(message.recipient_class) == RecipientClass.INSURANCE_PARTY
        ]
        if sent:
            return max(sent)
        return claim.created_at

    def follow_ups_since_last_reply(self, claim: Claim) -> int:
        """Count follow-ups sent or queued since the last inbound message on the claim."""
        replies = self.store.list_messages(claim.id, direction="inbound")
        last_reply = replies[-1].sent_at if replies else None
        return sum(
            1 for entry in self.audit.entries(claim.id, AuditAction.CARRIER_FOLLOW_UP)
            if (entry.detail.get("autoSent") or entry.detail.get("queuedForReview"))
            and (last_reply is None or entry.executed_at > last_reply)
        )

    def has_unreviewed_follow_up(self, claim: Claim) -> bool:
        """True while a follow-up queued by this scheduler is still pending review."""
        pending_ids = {action.id for action in self.store.list_pending_actions(claim.id)}
        if not pending_ids:
            return False
        return any(
            entry.detail.get("pending_action_id") in pending_ids
            for entry in self.audit.entries(claim.id, AuditAction.CARRIER_FOLLOW_UP)
        )

    def chain_follow_up_task(self, claim: Claim, interval_days: int) -> Optional[Task]:
        """Create a follow-up task for the carrier's reply unless one is already open."""
        open_follow_ups = [
            task for task in self.store.list_tasks(claim.id, open_only=True)
            if FOLLOW_UP_TITLE_PATTERN.search(task.title or "")
        ]
        if open_follow_ups:
            return None

        now = self.now()
        task = Task(
            id=str(uuid.uuid4()),
            claim_id=claim.id,
            title=f"Follow-up: carrier response to follow-up sent {now.date().isoformat()}",
            created_at=now,
            description="Created automatically after a carrier follow-up. Closes when the carrier replies.",
            due_date=(now + timedelta(days=interval_days)).date(),
        )
        self.store.create_task(task)
        logger.info(f"Created follow-up task {task.id} on claim {claim.claim_number}")
        return task
