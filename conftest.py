"""Shared fixtures: fake collaborators, a controllable clock and claim factories."""

import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest

from claims_autopilot.agents.base import RunContext
from claims_autopilot.models.actions import ActionType, ClassificationResult, DraftContent, PendingAction
from claims_autopilot.models.claim import Claim, ClaimDocument, Message, Task
from claims_autopilot.models.policy import AutomationPolicy, AutonomyLevel
from claims_autopilot.orchestration.budget import ActionBudgetGate
from claims_autopilot.orchestration.orchestrator import RunOrchestrator
from claims_autopilot.plugins.content_safety import ContentSafetyPlugin
from claims_autopilot.plugins.document_classifier import DocumentClassifier
from claims_autopilot.storage.audit_log import AuditLog
from claims_autopilot.storage.memory_store import InMemoryStore
from claims_autopilot.utils.config import AgentConfig
from claims_autopilot.utils.delivery_client import DeliveryClient
from claims_autopilot.utils.text_generator import DraftPrompt, TextGenerator

NOW = datetime(2025, 6, 16, 15, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime = NOW):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, days: int = 0, hours: int = 0) -> None:
        self.current = self.current + timedelta(days=days, hours=hours)


class FakeTextGenerator(TextGenerator):
    def __init__(self, body: str = "Hello, checking in on the status of this claim. Thanks, Claims Team"):
        self.body = body
        self.error: Optional[Exception] = None
        self.prompts: List[DraftPrompt] = []

    def generate(self, prompt: DraftPrompt) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.body


class FakeDelivery(DeliveryClient):
    def __init__(self):
        self.emails: List[dict] = []
        self.sms: List[dict] = []
        self.error: Optional[Exception] = None
        self.email_error: Optional[Exception] = None

    def send_email(self, *, to_address, to_name, subject, body, claim_id):
        if self.email_error is not None or self.error is not None:
            raise self.email_error or self.error
        self.emails.append({"to": to_address, "name": to_name, "subject": subject, "body": body, "claim_id": claim_id})
        return f"email-{len(self.emails)}"

    def send_sms(self, *, to_number, body, claim_id):
        if self.error is not None:
            raise self.error
        self.sms.append({"to": to_number, "body": body, "claim_id": claim_id})
        return f"sms-{len(self.sms)}"

    @property
    def sent(self) -> int:
        return len(self.emails) + len(self.sms)


class FakeClassifier(DocumentClassifier):
    def __init__(self, label: str = "estimate", confidence: float = 0.9):
        self.label = label
        self.confidence = confidence
        self.error: Optional[Exception] = None
        self.calls: List[str] = []

    def classify(self, document):
        self.calls.append(document.file_name)
        if self.error is not None:
            raise self.error
        return ClassificationResult(self.label, self.confidence, {"method": "ai"})


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def text_generator():
    return FakeTextGenerator()


@pytest.fixture
def delivery():
    return FakeDelivery()


@pytest.fixture
def classifier():
    return FakeClassifier()


@pytest.fixture
def agent_config():
    return AgentConfig(max_workers=2)


@pytest.fixture
def context(store, clock, text_generator, delivery, classifier, agent_config):
    """RunContext wired to the fakes, for testing one worker at a time."""
    audit = AuditLog(store)
    return RunContext(
        store=store,
        audit=audit,
        budget=ActionBudgetGate(audit, clock=clock),
        safety=ContentSafetyPlugin(),
        config=agent_config,
        clock=clock,
        text_generator=text_generator,
        delivery=delivery,
        classifier=classifier,
    )


@pytest.fixture
def make_orchestrator(store, clock, text_generator, delivery, classifier, agent_config):
    def factory(**overrides):
        kwargs = dict(
            store=store,
            text_generator=text_generator,
            delivery=delivery,
            classifier=classifier,
            config=agent_config,
            clock=clock,
        )
        kwargs.update(overrides)
        return RunOrchestrator(**kwargs)
    return factory


@pytest.fixture
def make_claim(store, clock):
    """
    Add a claim and its automation policy to the store.

    The claim is 5 days old by default, too young for the carrier follow-up
    and idle nudge schedulers; pass created_days_ago to age it.
    """
    def factory(
        claim_id: str = "claim-1",
        autonomy: AutonomyLevel = AutonomyLevel.FULLY_AUTONOMOUS,
        status: str = "Open",
        created_days_ago: int = 5,
        enabled: bool = True,
        claim_fields: Optional[dict] = None,
        **policy_fields
    ):
        fields = dict(
            claim_number=f"CLM-{claim_id.upper()}",
            status=status,
            policyholder_name="Pat Doe",
            policyholder_email="pat@example.com",
            adjuster_name="Alex Adjuster",
            adjuster_email="alex@carrier.com",
            insurance_company="Acme Mutual",
            created_at=clock() - timedelta(days=created_days_ago),
        )
        fields.update(claim_fields or {})
        claim = Claim(id=claim_id, **fields)
        policy = AutomationPolicy(claim_id=claim_id, enabled=enabled, autonomy_level=autonomy, **policy_fields)
        store.add_claim(claim, policy)
        return claim, policy
    return factory


@pytest.fixture
def add_pending_action(store, clock):
    def factory(
        claim_id: str,
        body: str = "Please send the updated estimate when you can.",
        subject: Optional[str] = "Claim update",
        recipient_address: str = "adjuster@carrier.com",
        recipient_class: str = "adjuster",
        action_type: ActionType = ActionType.EMAIL_RESPONSE,
        created_hours_ago: int = 1,
    ) -> PendingAction:
        action = PendingAction(
            id=str(uuid.uuid4()),
            claim_id=claim_id,
            action_type=action_type,
            draft_content=DraftContent(
                recipient_address=recipient_address,
                recipient_name="Recipient",
                recipient_class=recipient_class,
                body=body,
                subject=subject,
            ),
            created_at=clock() - timedelta(hours=created_hours_ago),
        )
        return store.create_pending_action(action)
    return factory


@pytest.fixture
def add_message(store, clock):
    def factory(
        claim_id: str,
        direction: str = "inbound",
        days_ago: float = 0,
        recipient_class: str = "adjuster",
        channel: str = "email",
    ) -> Message:
        return store.record_message(Message(
            id=str(uuid.uuid4()),
            claim_id=claim_id,
            direction=direction,
            channel=channel,
            sent_at=clock() - timedelta(days=days_ago),
            recipient_address="someone@example.com",
            recipient_class=recipient_class,
        ))
    return factory


@pytest.fixture
def add_task(store, clock):
    def factory(claim_id: str, title: str = "Follow-up with adjuster", days_ago: float = 3) -> Task:
        return store.add_task(Task(
            id=str(uuid.uuid4()),
            claim_id=claim_id,
            title=title,
            created_at=clock() - timedelta(days=days_ago),
        ))
    return factory


@pytest.fixture
def add_document(store):
    def factory(claim_id: str, file_name: str, file_type: str = "application/pdf", text: str = "") -> ClaimDocument:
        return store.add_document(ClaimDocument(
            id=str(uuid.uuid4()),
            claim_id=claim_id,
            file_name=file_name,
            file_type=file_type,
            extracted_text=text,
        ))
    return factory
