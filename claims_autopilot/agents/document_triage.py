"""Classifies a bounded batch of unclassified claim documents."""

import logging
from typing import Iterable

from ..models.actions import ClassificationResult
from ..models.summary import RunSummary
from ..plugins.document_classifier import is_image_document
from ..utils.errors import ClassificationError, ConfigurationError
from .base import DOCUMENT_CLASSIFICATION, RunContext

logger = logging.getLogger(__name__)


class DocumentTriageWorker:
    """
    Runs once per cycle across all eligible claims.

    Photos are labelled from their file type without calling the
    classifier. A document that fails classification stays unclassified
    and is picked up again next cycle.
    """

    name = "document_triage"

    def __init__(self, context: RunContext):
        self.context = context
        self.store = context.store

    def run(self, claim_ids: Iterable[str], summary: RunSummary) -> None:
        claim_ids = list(claim_ids)
        if not claim_ids:
            return

        documents = self.store.list_unclassified_documents(claim_ids, limit=self.context.config.document_batch_size)
        logger.info(f"Found {len(documents)} unclassified documents across {len(claim_ids)} claims")

        for document in documents:
            if is_image_document(document):
                result = ClassificationResult(label="photo", confidence=1.0, metadata={"method": "file_type"})
            else:
                classifier = self.context.collaborator(DOCUMENT_CLASSIFICATION)
                if classifier is None:
                    summary.documents_failed += 1
                    continue
                try:
                    result = classifier.classify(document)
                except ConfigurationError as e:
                    self.context.disable(DOCUMENT_CLASSIFICATION, e)
                    summary.documents_failed += 1
                    continue
                except ClassificationError as e:
                    logger.warning(f"Failed to classify {document.file_name}: {e}")
                    summary.documents_failed += 1
                    continue
                except Exception as e:
                    logger.exception(f"Unexpected error classifying {document.file_name}: {str(e)}")
                    summary.documents_failed += 1
                    continue

            self.store.update_document_classification(document.id, result, self.context.now())
            summary.documents_processed += 1
            logger.info(
                f"Classified document {document.file_name} as {result.label} "
                f"({result.confidence:.2f}, {result.metadata.get('method', 'unknown')})"
            )
