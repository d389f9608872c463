"""Closes follow-up tasks once the counterparty has replied."""

import logging
import re

from ..models.audit import AuditAction
from ..models.claim import Claim
from ..models.policy import AutomationPolicy
from ..models.summary import RunSummary
from .base import BaseClaimWorker

logger = logging.getLogger(__name__)

FOLLOW_UP_TITLE_PATTERN = re.compile(r"follow[ -]?up|reminder", re.IGNORECASE)


class TaskCompletionWorker(BaseClaimWorker):
    """
    Auto-completes open follow-up and reminder tasks.

    A follow-up task is satisfied as soon as an inbound message arrives on
    the claim at or after the task was created.
    """

    name = "task_completion"

    def run(self, claim: Claim, policy: AutomationPolicy, summary: RunSummary) -> None:
        if not policy.auto_complete_tasks:
            return

        tasks = [
            task for task in self.store.list_tasks(claim.id, open_only=True)
            if FOLLOW_UP_TITLE_PATTERN.search(task.title or "")
        ]
        if not tasks:
            return

        inbound = self.store.list_messages(claim.id, direction="inbound")

        for task in tasks:
            if not any(message.sent_at >= task.created_at for message in inbound):
                continue

            if not self.budget_allows(policy, f"completion of task '{task.title}'"):
                return

            now = self.now()
            self.store.complete_task(task.id, completed_at=now, completed_by=None)
            self.audit.record(
                claim.id,
                AuditAction.TASK_COMPLETED,
                auto_executed=True,
                summary=f"Auto-completed task \"{task.title}\" - response received",
                detail={"task_id": task.id, "task_title": task.title, "reason": "response_received"},
                executed_at=now,
            )
            summary.tasks_completed += 1
            logger.info(f"Completed task {task.id} ({task.title}) on claim {claim.claim_number}")
