"""Run summary model."""

from dataclasses import dataclass, field
from typing import Dict, Any, List


@dataclass
class RunSummary:
    """Aggregate counters for one orchestrator run."""
    processed: int = 0
    tasks_completed: int = 0
    emails_sent: int = 0
    escalations: int = 0
    queued_for_review: int = 0
    documents_processed: int = 0
    documents_failed: int = 0
    budget_exhausted: int = 0
    skipped_capabilities: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def merge(self, other: "RunSummary") -> None:
        """Fold a per-claim summary into this one."""
        self.processed += other.processed
        self.tasks_completed += other.tasks_completed
        self.emails_sent += other.emails_sent
        self.escalations += other.escalations
        self.queued_for_review += other.queued_for_review
        self.documents_processed += other.documents_processed
        self.documents_failed += other.documents_failed
        self.budget_exhausted += other.budget_exhausted
        self.errors.extend(other.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "tasksCompleted": self.tasks_completed,
            "emailsSent": self.emails_sent,
            "escalations": self.escalations,
            "queuedForReview": self.queued_for_review,
            "documentsProcessed": self.documents_processed,
            "documentsFailed": self.documents_failed,
            "budgetExhausted": self.budget_exhausted,
            "skippedCapabilities": sorted(self.skipped_capabilities),
            "errors": list(self.errors),
        }
