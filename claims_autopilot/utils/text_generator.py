"""Drafting of outbound message bodies."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .bedrock_client import BedrockClient

logger = logging.getLogger(__name__)


@dataclass
class DraftPrompt:
    """
    Structured request for a drafted message.

    Attributes:
        purpose: "carrier_follow_up" or "idle_nudge"
        claim_facts: Claim fields the draft may reference
        reason: Why the message is being sent
        tone: Tone guidance for the writer
        channel: "email" or "sms"
        recipient_name: Name to greet
        days_since_contact: Days since the last relevant contact, if known
    """
    purpose: str
    claim_facts: Dict[str, Any]
    reason: str
    tone: str
    channel: str = "email"
    recipient_name: str = ""
    days_since_contact: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)


class TextGenerator(ABC):
    """Produces a plain-text message body from a DraftPrompt."""

    @abstractmethod
    def generate(self, prompt: DraftPrompt) -> str:
        """
        Draft a message body.

        Raises:
            TextGenerationError: On timeout, service failure or empty output
            ConfigurationError: When the generator cannot be used at all
        """


class BedrockTextGenerator(TextGenerator):
    """TextGenerator backed by the Bedrock Converse API."""

    def __init__(
        self,
        bedrock: BedrockClient,
        company_name: str = "Claims Team",
        temperature: float = 0.3,
        max_tokens: int = 1024
    ):
        self.bedrock = bedrock
        self.company_name = company_name
        self.temperature = temperature
        self.max_tokens = max_tokens

    def generate(self, prompt: DraftPrompt) -> str:
        body = self.bedrock.generate_text(
            prompt=self._user_prompt(prompt),
            system_prompt=self._system_prompt(prompt),
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            operation=f"draft_{prompt.purpose}",
        )
        logger.debug(f"Drafted {prompt.purpose} ({len(body)} chars)")
        return body

    def _system_prompt(self, prompt: DraftPrompt) -> str:
        facts = "\n".join(
            f"- {key.replace('_', ' ').title()}: {value}" for key, value in prompt.claim_facts.items()
        )
        length_rule = "Keep it under 300 characters" if prompt.channel == "sms" else "Keep it under 150 words"
        return (
            f"You are a professional claims assistant for {self.company_name}. "
            f"Write a brief {prompt.channel} message.\n\n"
            f"CLAIM CONTEXT:\n{facts}\n\n"
            "GUIDELINES:\n"
            f"1. Tone: {prompt.tone}\n"
            "2. Reference the claim number\n"
            f"3. {length_rule}\n"
            "4. Do not make commitments about coverage or payment\n"
            f"5. Sign off as \"{self.company_name}\"\n"
            "Return only the message body."
        )

    def _user_prompt(self, prompt: DraftPrompt) -> str:
        lines = [f"Reason for writing: {prompt.reason}"]
        if prompt.recipient_name:
            lines.append(f"Recipient: {prompt.recipient_name}")
        if prompt.days_since_contact is not None:
            lines.append(f"Days since last contact: {prompt.days_since_contact}")
        for key, value in prompt.extra.items():
            lines.append(f"{key.replace('_', ' ').capitalize()}: {value}")
        return "\n".join(lines)
