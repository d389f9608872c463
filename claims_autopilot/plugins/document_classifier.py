"""Document classification plugin for uploaded claim files."""

import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict

from semantic_kernel.functions import kernel_function

from ..models.actions import ClassificationResult
from ..models.claim import ClaimDocument
from ..utils.bedrock_client import BedrockClient
from ..utils.errors import ClassificationError, TextGenerationError
from ..utils.response_formatter import ResponseFormatter

logger = logging.getLogger(__name__)

DOCUMENT_LABELS = (
    "estimate",
    "denial",
    "approval",
    "rfi",
    "engineering_report",
    "policy",
    "correspondence",
    "invoice",
    "photo",
    "other",
)

IMAGE_EXTENSION_PATTERN = re.compile(r"\.(jpg|jpeg|png|gif|heic|webp)$", re.IGNORECASE)

# Checked in order; first match wins, otherwise "correspondence"
FILENAME_PATTERNS = (
    ("estimate", re.compile(r"estimate|xactimate|symbility|rcv|acv|scope", re.IGNORECASE)),
    ("denial", re.compile(r"denial|denied|decline", re.IGNORECASE)),
    ("approval", re.compile(r"approval|approved|payment|settlement", re.IGNORECASE)),
    ("rfi", re.compile(r"rfi|request.*info|additional.*info", re.IGNORECASE)),
    ("engineering_report", re.compile(r"engineer|structural|report", re.IGNORECASE)),
    ("policy", re.compile(r"policy|coverage|dec.*page|declaration", re.IGNORECASE)),
    ("invoice", re.compile(r"invoice|bill|receipt", re.IGNORECASE)),
    ("photo", IMAGE_EXTENSION_PATTERN),
)

MIN_TEXT_LENGTH = 50
FILENAME_CONFIDENCE = 0.4
MAX_TEXT_CHARS = 15000

CLASSIFIER_INSTRUCTIONS = """You are a document classifier for insurance claims. Analyze the document and classify it.

Return ONLY valid JSON with this structure:
{
  "classification": "estimate|denial|approval|rfi|engineering_report|policy|correspondence|invoice|photo|other",
  "confidence": 0.0-1.0,
  "metadata": {
    "date_mentioned": "YYYY-MM-DD or null",
    "deadline_mentioned": "YYYY-MM-DD or null",
    "sender": "carrier|adjuster|contractor|policyholder|unknown",
    "requires_action": true/false,
    "urgency": "high|medium|low",
    "summary": "One sentence summary of the document"
  }
}"""


def is_image_document(document: ClaimDocument) -> bool:
    """True for uploads that are photos by MIME type or extension."""
    return "image" in (document.file_type or "").lower() or bool(
        IMAGE_EXTENSION_PATTERN.search(document.file_name or "")
    )


def classify_by_filename(file_name: str) -> str:
    for label, pattern in FILENAME_PATTERNS:
        if pattern.search(file_name or ""):
            return label
    return "correspondence"


class DocumentClassifier(ABC):
    """Returns a label and confidence for a claim document."""

    @abstractmethod
    def classify(self, document: ClaimDocument) -> ClassificationResult:
        """
        Classify a document.

        Raises:
            ClassificationError: If the document could not be classified this cycle
            ConfigurationError: If the classifier cannot be used at all
        """


class DocumentClassifierPlugin(DocumentClassifier):
    """
    Semantic Kernel plugin classifying claim documents with Bedrock.

    Documents with too little extracted text are classified from their file
    name at low confidence instead of calling the model.
    """

    def __init__(self, bedrock: BedrockClient, temperature: float = 0.1, max_tokens: int = 1024):
        self.bedrock = bedrock
        self.temperature = temperature
        self.max_tokens = max_tokens
        logger.info("Initialized DocumentClassifierPlugin")

    def classify(self, document: ClaimDocument) -> ClassificationResult:
        """
        Classify a document from its extracted text.

        Args:
            document: Document with file name and optional extracted text

        Returns:
            ClassificationResult with label, confidence and metadata

        Raises:
            ClassificationError: If the model call fails or returns no usable JSON
        """
        result = self.classify_text(document.file_name, document.extracted_text or "")
        return ClassificationResult(
            label=result["classification"],
            confidence=result["confidence"],
            metadata=result["metadata"],
        )

    @kernel_function(
        name="classify_document",
        description=(
            "Classify an insurance claim document as estimate, denial, approval, rfi, "
            "engineering_report, policy, correspondence, invoice, photo or other. "
            "Returns classification, confidence and metadata."
        )
    )
    def classify_text(self, file_name: str, text: str) -> Dict[str, Any]:
        text = (text or "").strip()

        if len(text) < MIN_TEXT_LENGTH:
            label = classify_by_filename(file_name)
            logger.info(f"Classified {file_name} as {label} from filename")
            return {
                "classification": label,
                "confidence": FILENAME_CONFIDENCE,
                "metadata": {
                    "method": "filename_pattern",
                    "summary": f"Classified as {label} based on filename",
                },
            }

        try:
            response = self.bedrock.generate_text(
                prompt=f"Filename: {file_name}\n\nDocument content:\n{text[:MAX_TEXT_CHARS]}",
                system_prompt=CLASSIFIER_INSTRUCTIONS,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                operation="classify_document",
            )
        except TextGenerationError as e:
            raise ClassificationError.classification_failed(file_name, e) from e

        data = ResponseFormatter.extract_json_from_response(response)
        if not data or "classification" not in data:
            raise ClassificationError.classification_failed(
                file_name, ValueError("No classification JSON in model response")
            )

        label = str(data["classification"]).strip().lower()
        if label not in DOCUMENT_LABELS:
            logger.warning(f"Unknown label '{label}' for {file_name}, using 'other'")
            label = "other"

        try:
            confidence = min(1.0, max(0.0, float(data.get("confidence", 0.0))))
        except (TypeError, ValueError):
            confidence = 0.0

        metadata = data.get("metadata") if isinstance(data.get("metadata"), dict) else {}

        logger.info(f"Classified {file_name} as {label} ({confidence:.2f})")
        return {
            "classification": label,
            "confidence": confidence,
            "metadata": {**metadata, "method": "ai"},
        }
