"""Tests for document triage and the Bedrock document classifier."""

from unittest.mock import MagicMock

import pytest

from claims_autopilot.agents.base import DOCUMENT_CLASSIFICATION
from claims_autopilot.agents.document_triage import DocumentTriageWorker
from claims_autopilot.models.claim import ClaimDocument
from claims_autopilot.models.summary import RunSummary
from claims_autopilot.plugins.document_classifier import (
    DocumentClassifierPlugin,
    classify_by_filename,
    is_image_document,
)
from claims_autopilot.utils.errors import ClassificationError, ConfigurationError, TextGenerationError

LONG_TEXT = "Dear policyholder, after review of the submitted estimate we have approved payment. " * 3


def test_photos_skip_the_classifier(context, store, classifier, make_claim, add_document):
    claim, _ = make_claim()
    photo = add_document(claim.id, "IMG_0042.HEIC", file_type="")
    scan = add_document(claim.id, "roof.bin", file_type="image/png")

    summary = RunSummary()
    DocumentTriageWorker(context).run([claim.id], summary)

    assert classifier.calls == []
    for document in (photo, scan):
        stored = store.get_document(document.id)
        assert stored.classification == "photo"
        assert stored.classification_confidence == 1.0
        assert stored.processed_at == context.now()
    assert summary.documents_processed == 2


def test_other_documents_go_to_the_classifier(context, store, classifier, make_claim, add_document):
    claim, _ = make_claim()
    document = add_document(claim.id, "estimate.pdf", text=LONG_TEXT)

    summary = RunSummary()
    DocumentTriageWorker(context).run([claim.id], summary)

    assert classifier.calls == ["estimate.pdf"]
    assert store.get_document(document.id).classification == "estimate"
    assert summary.documents_processed == 1


def test_batch_is_bounded(context, store, agent_config, make_claim, add_document):
    agent_config.document_batch_size = 3
    claim, _ = make_claim()
    for i in range(5):
        add_document(claim.id, f"letter-{i}.pdf")

    summary = RunSummary()
    DocumentTriageWorker(context).run([claim.id], summary)

    assert summary.documents_processed == 3
    assert len(store.list_unclassified_documents([claim.id], limit=10)) == 2


def test_only_eligible_claims_are_triaged(context, store, classifier, make_claim, add_document):
    claim, _ = make_claim("claim-1")
    other, _ = make_claim("claim-2")
    add_document(other.id, "letter.pdf")

    DocumentTriageWorker(context).run([claim.id], RunSummary())

    assert classifier.calls == []


def test_classification_failure_leaves_document_unclassified(context, store, classifier, make_claim, add_document):
    claim, _ = make_claim()
    failing = add_document(claim.id, "letter.pdf")
    photo = add_document(claim.id, "front.jpg", file_type="image/jpeg")
    classifier.error = ClassificationError.classification_failed("letter.pdf", ValueError("bad json"))

    summary = RunSummary()
    DocumentTriageWorker(context).run([claim.id], summary)

    assert store.get_document(failing.id).classification is None
    assert store.get_document(photo.id).classification == "photo"
    assert summary.documents_failed == 1
    assert summary.documents_processed == 1


def test_unexpected_classifier_errors_are_counted(context, store, classifier, make_claim, add_document):
    claim, _ = make_claim()
    add_document(claim.id, "letter.pdf")
    classifier.error = KeyError("classification")

    summary = RunSummary()
    DocumentTriageWorker(context).run([claim.id], summary)

    assert summary.documents_failed == 1


def test_classifier_configuration_error_disables_classification(context, classifier, make_claim, add_document):
    claim, _ = make_claim()
    add_document(claim.id, "a.pdf")
    add_document(claim.id, "b.pdf")
    classifier.error = ConfigurationError.missing("bedrock", "AWS credentials")

    summary = RunSummary()
    DocumentTriageWorker(context).run([claim.id], summary)

    assert classifier.calls == ["a.pdf"]
    assert DOCUMENT_CLASSIFICATION in context.disabled_capabilities
    assert summary.documents_failed == 2


@pytest.mark.parametrize("file_name, label", [
    ("Xactimate_estimate_v2.pdf", "estimate"),
    ("denial-letter.pdf", "denial"),
    ("settlement_payment.pdf", "approval"),
    ("RFI request.pdf", "rfi"),
    ("structural engineer.pdf", "engineering_report"),
    ("dec page.pdf", "policy"),
    ("plumber invoice.pdf", "invoice"),
    ("notes.docx", "correspondence"),
])
def test_classify_by_filename(file_name, label):
    assert classify_by_filename(file_name) == label


def test_is_image_document():
    assert is_image_document(ClaimDocument(id="1", claim_id="c", file_name="x.webp"))
    assert is_image_document(ClaimDocument(id="1", claim_id="c", file_name="x", file_type="image/gif"))
    assert not is_image_document(ClaimDocument(id="1", claim_id="c", file_name="x.pdf", file_type="application/pdf"))


def _plugin(response=None, error=None):
    bedrock = MagicMock()
    if error is not None:
        bedrock.generate_text.side_effect = error
    else:
        bedrock.generate_text.return_value = response
    return DocumentClassifierPlugin(bedrock), bedrock


def test_plugin_uses_filename_when_text_is_short():
    plugin, bedrock = _plugin()

    result = plugin.classify(ClaimDocument(id="1", claim_id="c", file_name="denial.pdf", extracted_text="short"))

    bedrock.generate_text.assert_not_called()
    assert result.label == "denial"
    assert result.confidence == 0.4
    assert result.metadata["method"] == "filename_pattern"


def test_plugin_parses_model_json():
    response = 'Here you go:\n```json\n{"classification": "Approval", "confidence": 1.7, ' \
               '"metadata": {"urgency": "low"}}\n```'
    plugin, bedrock = _plugin(response=response)

    result = plugin.classify(ClaimDocument(id="1", claim_id="c", file_name="letter.pdf", extracted_text=LONG_TEXT))

    assert result.label == "approval"
    assert result.confidence == 1.0
    assert result.metadata == {"urgency": "low", "method": "ai"}
    assert bedrock.generate_text.call_args.kwargs["operation"] == "classify_document"


def test_plugin_maps_unknown_labels_to_other():
    plugin, _ = _plugin(response='{"classification": "memo", "confidence": 0.8}')

    result = plugin.classify(ClaimDocument(id="1", claim_id="c", file_name="memo.pdf", extracted_text=LONG_TEXT))

    assert result.label == "other"
    assert result.metadata == {"method": "ai"}


def test_plugin_raises_classification_error_on_bad_output():
    plugin, _ = _plugin(response="I could not read this document.")

    with pytest.raises(ClassificationError):
        plugin.classify(ClaimDocument(id="1", claim_id="c", file_name="x.pdf", extracted_text=LONG_TEXT))


def test_plugin_wraps_generation_errors():
    plugin, _ = _plugin(error=TextGenerationError.empty_response("classify_document"))

    with pytest.raises(ClassificationError):
        plugin.classify(ClaimDocument(id="1", claim_id="c", file_name="x.pdf", extracted_text=LONG_TEXT))
