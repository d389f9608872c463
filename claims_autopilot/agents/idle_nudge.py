"""Policyholder check-ins for claims with no recent activity."""

import logging
from datetime import timedelta

from ..models.actions import ActionType, DraftContent
from ..models.audit import AuditAction
from ..models.claim import Claim
from ..models.policy import AUTOMATED_LEVELS, AutomationPolicy
from ..models.summary import RunSummary
from ..plugins.claim_state import ClaimState, classify_claim_status
from ..plugins.content_safety import SafetyOutcome
from ..utils.text_generator import DraftPrompt
from .base import EMAIL_DELIVERY, DraftingWorker

logger = logging.getLogger(__name__)


class IdleNudgeScheduler(DraftingWorker):
    """
    Sends the policyholder a check-in when a claim has been idle for idle_claim_days.

    Closed claims are never nudged. Email is preferred; SMS is used when
    there is no email on file or email delivery is switched off for the run.
    """

    name = "idle_nudge"
    audit_action = AuditAction.IDLE_NUDGE

    def run(self, claim: Claim, policy: AutomationPolicy, summary: RunSummary) -> None:
        if classify_claim_status(claim.status) == ClaimState.CLOSED:
            return

        now = self.now()
        idle_since = now - timedelta(days=self.config.idle_claim_days)

        if claim.created_at and claim.created_at > idle_since:
            return
        if any(not update.is_automation for update in self.store.list_claim_updates(claim.id, since=idle_since)):
            return
        if self.store.list_messages(claim.id, since=idle_since):
            return

        window_start = now - timedelta(days=self.config.idle_nudge_window_days)
        if self.audit.exists(claim.id, AuditAction.IDLE_NUDGE, since=window_start):
            return

        email_available = EMAIL_DELIVERY not in self.context.disabled_capabilities
        if claim.policyholder_email and (email_available or not claim.policyholder_phone):
            action_type, address = ActionType.EMAIL_RESPONSE, claim.policyholder_email
        elif claim.policyholder_phone:
            action_type, address = ActionType.SMS, claim.policyholder_phone
        else:
            logger.info(f"Claim {claim.claim_number}: no policyholder contact on file, skipping idle nudge")
            return

        if policy.autonomy_level in AUTOMATED_LEVELS and not self.budget_allows(policy, "idle nudge"):
            return

        channel = "sms" if action_type == ActionType.SMS else "email"
        body = self.generate_draft(DraftPrompt(
            purpose=self.name,
            claim_facts=claim.facts(),
            reason="There has been no activity on the claim for a while. Reassure the policyholder that "
                   "the claim is being worked on and invite them to share any updates or questions.",
            tone="warm, reassuring, plain language",
            channel=channel,
            recipient_name=claim.policyholder_name,
            extra={"idle_days": self.config.idle_claim_days},
        ))
        if body is None:
            return

        draft = DraftContent(
            recipient_address=address,
            recipient_name=claim.policyholder_name or "Policyholder",
            recipient_class="policyholder",
            body=body,
            subject=f"Update on your claim {claim.claim_number}" if channel == "email" else None,
        )
        outcome = self.route_draft(
            claim,
            policy,
            summary,
            action_type,
            draft,
            since=window_start,
            detail={"channel": channel, "idle_days": self.config.idle_claim_days},
            reasoning=f"No claim activity for {self.config.idle_claim_days} days",
            client_facing=True,
        )

        if outcome == SafetyOutcome.AUTO_SEND:
            self.add_activity_note(claim, f"Automated check-in sent to {draft.recipient_name} by {channel}")
