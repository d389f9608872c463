"""Escalates stalled claims and approaching carrier deadlines."""

import logging
from datetime import timedelta

from ..models.audit import AuditAction, EscalationReason
from ..models.claim import Claim
from ..models.policy import AutomationPolicy
from ..models.summary import RunSummary
from ..plugins.claim_state import ClaimState, classify_claim_status
from .base import BaseClaimWorker

logger = logging.getLogger(__name__)


class EscalationDetector(BaseClaimWorker):
    """
    Raises escalations that need human attention.

    Both checks run only when the policy has auto_escalate_urgency set and
    the claim is not closed.

    - stalled claim: no staff activity for stalled_claim_days, at most once
      per stalled_escalation_window_days
    - approaching deadline: once per pending carrier deadline due within
      deadline_horizon_days
    """

    name = "escalation"

    def run(self, claim: Claim, policy: AutomationPolicy, summary: RunSummary) -> None:
        if not policy.auto_escalate_urgency:
            return
        if classify_claim_status(claim.status) == ClaimState.CLOSED:
            return
        self._check_stalled(claim, policy, summary)
        self._check_deadlines(claim, policy, summary)

    def _check_stalled(self, claim: Claim, policy: AutomationPolicy, summary: RunSummary) -> None:
        now = self.now()
        stalled_days = self.config.stalled_claim_days
        activity = [
            update for update in self.store.list_claim_updates(claim.id, since=now - timedelta(days=stalled_days))
            if not update.is_automation
        ]
        if activity:
            return

        window_start = now - timedelta(days=self.config.stalled_escalation_window_days)
        if self.audit.exists(
            claim.id,
            AuditAction.ESCALATION,
            since=window_start,
            detail_match={"reason": EscalationReason.STALLED_CLAIM},
        ):
            return

        if not self.budget_allows(policy, "stalled-claim escalation"):
            return

        entry = self.audit.record_once(
            claim.id,
            AuditAction.ESCALATION,
            auto_executed=True,
            summary=f"Claim has had no activity for {stalled_days} days - needs attention",
            detail={"reason": EscalationReason.STALLED_CLAIM, "days_inactive": stalled_days},
            dedup_on={"reason": EscalationReason.STALLED_CLAIM},
            since=window_start,
            executed_at=now,
        )
        if entry is not None:
            summary.escalations += 1
            logger.info(f"Escalated stalled claim {claim.claim_number}")

    def _check_deadlines(self, claim: Claim, policy: AutomationPolicy, summary: RunSummary) -> None:
        now = self.now()
        deadlines = self.store.list_deadlines(
            claim.id,
            status="pending",
            due_from=now,
            due_until=now + timedelta(days=self.config.deadline_horizon_days),
        )

        for deadline in deadlines:
            if self.audit.exists(claim.id, AuditAction.ESCALATION, detail_match={"deadline_id": deadline.id}):
                continue
            if not self.budget_allows(policy, f"deadline escalation for {deadline.id}"):
                return

            due = deadline.deadline_date.isoformat()
            entry = self.audit.record_once(
                claim.id,
                AuditAction.ESCALATION,
                auto_executed=True,
                summary=f"Deadline approaching: {deadline.deadline_type} due {due}",
                detail={
                    "reason": EscalationReason.APPROACHING_DEADLINE,
                    "deadline_id": deadline.id,
                    "deadline_type": deadline.deadline_type,
                    "deadline_date": due,
                },
                dedup_on={"deadline_id": deadline.id},
                executed_at=now,
            )
            if entry is not None:
                summary.escalations += 1
                logger.info(f"Escalated deadline {deadline.deadline_type} on claim {claim.claim_number}")
