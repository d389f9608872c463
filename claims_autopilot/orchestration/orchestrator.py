"""Run orchestrator for one autonomous agent cycle."""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Callable, List, Optional

from ..agents.base import BaseClaimWorker, RunContext
from ..agents.carrier_follow_up import CarrierFollowUpScheduler
from ..agents.dispatcher import OutboundDispatcher
from ..agents.document_triage import DocumentTriageWorker
from ..agents.escalation import EscalationDetector
from ..agents.idle_nudge import IdleNudgeScheduler
from ..agents.task_completion import TaskCompletionWorker
from ..models.policy import AutomationPolicy
from ..models.summary import RunSummary
from ..plugins.content_safety import ContentSafetyPlugin
from ..plugins.document_classifier import DocumentClassifier
from ..storage.audit_log import AuditLog
from ..storage.store import AutomationStore
from ..utils.config import AgentConfig
from ..utils.delivery_client import DeliveryClient
from ..utils.logging import claim_context
from ..utils.text_generator import TextGenerator
from .budget import ActionBudgetGate, utc_now

logger = logging.getLogger(__name__)


class RunOrchestrator:
    """
    Runs one agent cycle over every claim opted into automation.

    Document triage runs once for all eligible claims. Each claim is then
    processed on a bounded worker pool with the store's claim lock held, in
    the order: budget check, task completion, outbound dispatch, escalation,
    carrier follow-up, idle nudge. An exception while processing a claim is
    recorded in the summary and does not affect other claims.

    Attributes:
        store: Automation data store
        config: Agent windows and thresholds
        clock: Returns the current UTC time
    """

    def __init__(
        self,
        store: AutomationStore,
        text_generator: Optional[TextGenerator] = None,
        delivery: Optional[DeliveryClient] = None,
        classifier: Optional[DocumentClassifier] = None,
        config: Optional[AgentConfig] = None,
        clock: Callable[[], datetime] = utc_now,
        safety: Optional[ContentSafetyPlugin] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            store: Automation data store
            text_generator: Drafting collaborator; drafting is skipped when None
            delivery: Email/SMS transport; sending is skipped when None
            classifier: Document classifier; non-photo documents are skipped when None
            config: Agent configuration (defaults apply when None)
            clock: Time source, injectable for tests
            safety: Content safety gate
        """
        self.store = store
        self.text_generator = text_generator
        self.delivery = delivery
        self.classifier = classifier
        self.config = config or AgentConfig()
        self.clock = clock
        self.safety = safety or ContentSafetyPlugin()

        logger.info(f"Initialized RunOrchestrator with max_workers={self.config.max_workers}")

    def run(self) -> RunSummary:
        """
        Execute one cycle.

        Returns:
            RunSummary with aggregate counters and per-claim errors
        """
        context = self._new_context()
        summary = RunSummary()

        policies = [policy for policy in self.store.list_policies() if policy.is_automated]
        logger.info(f"Found {len(policies)} claims with autonomy enabled")

        try:
            DocumentTriageWorker(context).run([policy.claim_id for policy in policies], summary)
        except Exception as e:
            logger.exception(f"Document triage failed: {str(e)}")
            summary.errors.append(f"Error processing documents: {e}")

        workers = self._build_workers(context)

        if policies:
            max_workers = max(1, min(self.config.max_workers, len(policies)))
            with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="autopilot") as pool:
                results = list(pool.map(lambda policy: self._process_claim(policy, workers, context), policies))
            for claim_summary in results:
                summary.merge(claim_summary)

        summary.skipped_capabilities = sorted(context.disabled_capabilities)

        logger.info(f"Autonomous agent run completed: {summary.to_dict()}")
        return summary

    def _new_context(self) -> RunContext:
        audit = AuditLog(self.store)
        return RunContext(
            store=self.store,
            audit=audit,
            budget=ActionBudgetGate(audit, clock=self.clock),
            safety=self.safety,
            config=self.config,
            clock=self.clock,
            text_generator=self.text_generator,
            delivery=self.delivery,
            classifier=self.classifier,
        )

    def _build_workers(self, context: RunContext) -> List[BaseClaimWorker]:
        return [
            TaskCompletionWorker(context),
            OutboundDispatcher(context),
            EscalationDetector(context),
            CarrierFollowUpScheduler(context),
            IdleNudgeScheduler(context),
        ]

    def _process_claim(
        self,
        policy: AutomationPolicy,
        workers: List[BaseClaimWorker],
        context: RunContext
    ) -> RunSummary:
        summary = RunSummary()
        claim_label = policy.claim_id

        with claim_context(claim_id=policy.claim_id):
            try:
                with self.store.claim_lock(policy.claim_id):
                    claim = self.store.get_claim(policy.claim_id)
                    if claim is None:
                        raise LookupError(f"claim {policy.claim_id} not found")
                    claim_label = claim.claim_number

                    logger.info(f"Processing claim {claim.claim_number}...")

                    if not context.budget.allowed(policy):
                        summary.budget_exhausted += 1
                        return summary

                    for worker in workers:
                        worker.run(claim, policy, summary)

                    summary.processed += 1

            except Exception as e:
                error_msg = f"Error processing claim {claim_label}: {e}"
                logger.error(error_msg, exc_info=True)
                summary.errors.append(error_msg)

        return summary
