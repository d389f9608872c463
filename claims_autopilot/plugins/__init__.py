"""Semantic Kernel plugins for draft safety, claim state and document classification."""

from .content_safety import ContentSafetyPlugin, SafetyOutcome, SafetyVerdict
from .claim_state import ClaimState, classify_claim_status
from .document_classifier import DocumentClassifier, DocumentClassifierPlugin

__all__ = [
    'ContentSafetyPlugin',
    'SafetyOutcome',
    'SafetyVerdict',
    'ClaimState',
    'classify_claim_status',
    'DocumentClassifier',
    'DocumentClassifierPlugin'
]
