"""Dispatches queued email and SMS drafts."""

import logging

from ..models.actions import ActionType, PendingAction
from ..models.audit import AuditAction
from ..models.claim import Claim
from ..models.policy import AutomationPolicy
from ..models.summary import RunSummary
from ..plugins.content_safety import SafetyOutcome, SafetyVerdict
from .base import BaseClaimWorker

logger = logging.getLogger(__name__)

DISPATCHABLE_TYPES = (ActionType.EMAIL_RESPONSE, ActionType.SMS)


class OutboundDispatcher(BaseClaimWorker):
    """
    Sends, queues or escalates each pending draft on a claim.

    Drafts that fail delivery stay pending and are retried next cycle.
    Drafts held for review stay pending too; their pending_review and
    escalation entries are written once per draft, not once per cycle.
    """

    name = "dispatcher"

    def run(self, claim: Claim, policy: AutomationPolicy, summary: RunSummary) -> None:
        actions = [
            action for action in self.store.list_pending_actions(claim.id)
            if action.action_type in DISPATCHABLE_TYPES
        ]
        if not actions:
            return

        logger.info(f"Dispatching {len(actions)} pending actions for claim {claim.claim_number}")

        for action in actions:
            verdict = self.context.safety.evaluate(action.draft_content, policy)

            if verdict.outcome == SafetyOutcome.AUTO_SEND:
                self._send(claim, policy, action, summary)
            elif verdict.outcome == SafetyOutcome.REVIEW:
                self._queue(claim, action, verdict, summary)
            else:
                self.escalate_blocked_draft(
                    claim,
                    verdict,
                    action.draft_content,
                    summary,
                    dedup_on={"pending_action_id": action.id},
                )

    def _send(self, claim: Claim, policy: AutomationPolicy, action: PendingAction, summary: RunSummary) -> None:
        draft = action.draft_content
        if not self.budget_allows(policy, f"send of pending action {action.id}"):
            return
        if not self.deliver(claim, action.action_type, draft):
            return

        now = self.now()
        self.store.mark_pending_action_sent(action.id, now)

        audit_type = AuditAction.SMS_SENT if action.action_type == ActionType.SMS else AuditAction.EMAIL_SENT
        channel = "SMS" if action.action_type == ActionType.SMS else "email"
        self.audit.record(
            claim.id,
            audit_type,
            auto_executed=True,
            summary=f"Auto-sent {channel} to {draft.recipient_address}: {draft.subject or draft.body[:60]}",
            detail={
                "pending_action_id": action.id,
                "to": draft.recipient_address,
                "subject": draft.subject,
            },
            executed_at=now,
        )
        summary.emails_sent += 1

    def _queue(self, claim: Claim, action: PendingAction, verdict: SafetyVerdict, summary: RunSummary) -> None:
        draft = action.draft_content
        entry = self.audit.record_once(
            claim.id,
            AuditAction.PENDING_REVIEW,
            auto_executed=False,
            summary=f"Draft to {draft.recipient_name or draft.recipient_address} held for review: {verdict.reason}",
            detail={
                "pending_action_id": action.id,
                "recipient_class": verdict.recipient_class.value,
                "reason": verdict.reason,
                "blocked_keyword": verdict.blocked_keyword,
            },
            dedup_on={"pending_action_id": action.id},
            executed_at=self.now(),
        )
        if entry is not None:
            summary.queued_for_review += 1
