"""Per-claim automation policy models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List


class AutonomyLevel(str, Enum):
    """How much the agent may act on a claim without human approval."""
    SUPERVISED = "supervised"
    SEMI_AUTONOMOUS = "semi_autonomous"
    FULLY_AUTONOMOUS = "fully_autonomous"


# Autonomy levels the run orchestrator will pick up
AUTOMATED_LEVELS = (AutonomyLevel.SEMI_AUTONOMOUS, AutonomyLevel.FULLY_AUTONOMOUS)


@dataclass
class AutomationPolicy:
    """
    Automation settings for a single claim.

    Configured by staff outside the agent; the agent only reads it.

    Attributes:
        claim_id: Claim the policy belongs to
        enabled: Whether the claim is opted into automation at all
        autonomy_level: Supervised, semi-autonomous or fully autonomous
        daily_action_limit: Maximum auto-executed actions per UTC day
        keyword_blockers: Terms that block automatic sending (empty = default lexicon)
        follow_up_interval_days: Days of carrier silence before a follow-up is due
        follow_up_max_count: Follow-ups sent or queued since the last inbound reply
            before the scheduler stops
        auto_escalate_urgency: Whether stalled claims and approaching deadlines are escalated
        auto_complete_tasks: Whether satisfied follow-up tasks are closed
    """
    claim_id: str
    enabled: bool = False
    autonomy_level: AutonomyLevel = AutonomyLevel.SUPERVISED
    daily_action_limit: int = 10
    keyword_blockers: List[str] = field(default_factory=list)
    follow_up_interval_days: int = 7
    follow_up_max_count: int = 5
    auto_escalate_urgency: bool = False
    auto_complete_tasks: bool = False

    @property
    def is_automated(self) -> bool:
        return self.enabled and self.autonomy_level in AUTOMATED_LEVELS
