"""Daily action budget for autonomous side effects."""

import logging
from datetime import datetime, timezone
from typing import Callable

from ..models.policy import AutomationPolicy
from ..storage.audit_log import AuditLog

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def start_of_utc_day(moment: datetime) -> datetime:
    """Midnight UTC of the day containing moment."""
    return moment.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)


class ActionBudgetGate:
    """
    Caps the number of auto-executed actions per claim per UTC day.

    The count is derived from today's auto-executed audit entries on every
    check and never cached, so it is correct across runs and within a run.
    Callers must hold the claim lock between allowed() and the audit write
    that consumes the budget.
    """

    def __init__(self, audit: AuditLog, clock: Callable[[], datetime] = utc_now):
        self.audit = audit
        self.clock = clock

    def used(self, claim_id: str) -> int:
        """Auto-executed actions recorded for the claim since UTC midnight."""
        return self.audit.count_auto_executed_since(claim_id, start_of_utc_day(self.clock()))

    def remaining(self, policy: AutomationPolicy) -> int:
        return max(0, policy.daily_action_limit - self.used(policy.claim_id))

    def allowed(self, policy: AutomationPolicy) -> bool:
        """
        Check whether one more autonomous action may run for the claim.

        Args:
            policy: Automation policy of the claim (carries claim_id and the limit)

        Returns:
            False once today's auto-executed count reaches daily_action_limit
        """
        used = self.used(policy.claim_id)
        if used >= policy.daily_action_limit:
            logger.info(
                f"Daily action budget exhausted for claim {policy.claim_id}: "
                f"{used}/{policy.daily_action_limit}"
            )
            return False
        return True
