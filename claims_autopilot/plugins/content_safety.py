"""Content safety gate for drafted outbound messages."""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from semantic_kernel.functions import kernel_function

from ..models.actions import DraftContent, RecipientClass
from ..models.policy import AutomationPolicy, AutonomyLevel

logger = logging.getLogger(__name__)

# Legal-escalation lexicon used when a policy has no keyword blockers of its own
DEFAULT_KEYWORD_BLOCKERS = (
    "lawsuit",
    "attorney",
    "lawyer",
    "legal action",
    "litigation",
    "bad faith",
    "sue",
    "suing",
    "court",
    "complaint",
    "demand letter",
)

# Short terms that must start a word: "issue" and "pursue" pass, "sued" and "courts" do not
WORD_START_TERMS = frozenset({"sue", "court"})

INSURANCE_PARTY_KEYWORDS = ("adjuster", "insurance", "carrier", "primary adjuster")


class SafetyOutcome(str, Enum):
    AUTO_SEND = "auto_send"
    REVIEW = "review"
    ESCALATE = "escalate"


@dataclass
class SafetyVerdict:
    """
    Decision of the content safety gate for one draft.

    Attributes:
        outcome: auto_send, review or escalate
        recipient_class: insurance_party or other
        blocked_keyword: First blocker found in the draft, if any
        reason: Short explanation for the audit trail
    """
    outcome: SafetyOutcome
    recipient_class: RecipientClass
    blocked_keyword: Optional[str] = None
    reason: str = ""


def classify_recipient(recipient_class: Optional[str]) -> RecipientClass:
    """Map a free-text recipient role onto insurance_party or other."""
    role = (recipient_class or "").lower()
    if any(keyword in role for keyword in INSURANCE_PARTY_KEYWORDS):
        return RecipientClass.INSURANCE_PARTY
    return RecipientClass.OTHER


def find_blocked_keyword(text: str, blockers: Sequence[str]) -> Optional[str]:
    """
    Return the first blocker, in the given order, that occurs in text.

    Matching is case-insensitive substring matching, except for the terms in
    WORD_START_TERMS which must begin a word. Inflections such as "sued" or
    "courthouse" still match.
    """
    haystack = (text or "").lower()
    for blocker in blockers:
        term = blocker.strip().lower()
        if not term:
            continue
        if term in WORD_START_TERMS:
            if re.search(rf"\b{re.escape(term)}", haystack):
                return blocker
        elif term in haystack:
            return blocker
    return None


class ContentSafetyPlugin:
    """
    Semantic Kernel plugin deciding whether a draft may be sent automatically.

    Applies the recipient-class policy and the keyword blocklist against the
    claim's autonomy level:

    - fully autonomous: send unless a blocker matches, then escalate
    - semi autonomous: carriers always go to review; others send unless blocked
    - supervised: always review
    """

    def __init__(self, default_blockers: Sequence[str] = DEFAULT_KEYWORD_BLOCKERS):
        self.default_blockers = tuple(default_blockers)
        logger.info("Initialized ContentSafetyPlugin")

    def blockers_for(self, policy: AutomationPolicy) -> List[str]:
        return list(policy.keyword_blockers) if policy.keyword_blockers else list(self.default_blockers)

    @kernel_function(
        name="find_blocked_keyword",
        description=(
            "Scan message text for legal-escalation language. Returns the first "
            "matching blocker in list order, or an empty string."
        )
    )
    def scan(self, text: str, keyword_blockers: List[str]) -> str:
        return find_blocked_keyword(text, keyword_blockers or self.default_blockers) or ""

    def evaluate(
        self,
        draft: DraftContent,
        policy: AutomationPolicy,
        client_facing: bool = False
    ) -> SafetyVerdict:
        """
        Evaluate a draft against the claim's automation policy.

        Args:
            draft: Drafted message
            policy: Automation policy of the claim
            client_facing: True for policyholder nudges; the recipient is then
                always treated as "other"

        Returns:
            SafetyVerdict with the outcome and the blocker that fired, if any
        """
        recipient = RecipientClass.OTHER if client_facing else classify_recipient(draft.recipient_class)
        keyword = self.scan(draft.scan_text, self.blockers_for(policy)) or None
        level = policy.autonomy_level

        if level == AutonomyLevel.SUPERVISED:
            verdict = SafetyVerdict(SafetyOutcome.REVIEW, recipient, keyword, "supervised claim")
        elif level == AutonomyLevel.SEMI_AUTONOMOUS and recipient == RecipientClass.INSURANCE_PARTY:
            verdict = SafetyVerdict(SafetyOutcome.REVIEW, recipient, keyword, "carrier-bound draft on semi-autonomous claim")
        elif keyword:
            verdict = SafetyVerdict(SafetyOutcome.ESCALATE, recipient, keyword, f"blocked keyword '{keyword}'")
        else:
            verdict = SafetyVerdict(SafetyOutcome.AUTO_SEND, recipient, None, "no blockers matched")

        logger.debug(
            f"Safety verdict for claim {policy.claim_id}: {verdict.outcome.value} "
            f"(autonomy={level.value}, recipient={recipient.value}, keyword={keyword})"
        )
        return verdict
