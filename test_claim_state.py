"""Tests for free-text claim status classification."""

import pytest

from claims_autopilot.plugins.claim_state import ClaimState, classify_claim_status, normalize_status


@pytest.mark.parametrize("status", [
    "Submitted to Insurance",
    "submitted-to-insurance",
    "Awaiting Adjuster Assignment",
    "Supplement Submitted - 2nd",
    "under_review",
    "Inspection Scheduled",
    "Awaiting carrier response",
    "Reinspection requested by owner",
])
def test_awaiting_carrier_statuses(status):
    assert classify_claim_status(status) == ClaimState.AWAITING_CARRIER


def test_shortened_status_matches_longer_phrase():
    assert classify_claim_status("Carrier Response") == ClaimState.AWAITING_CARRIER
    assert classify_claim_status("carrier-review") == ClaimState.AWAITING_CARRIER


@pytest.mark.parametrize("status", ["Pending", "In", "Awaiting", "review", "Pending docs"])
def test_generic_statuses_are_not_awaiting_carrier(status):
    assert classify_claim_status(status) == ClaimState.ACTIVE


@pytest.mark.parametrize("status", ["Closed", "Settled", "paid in full", "Withdrawn by insured"])
def test_closed_statuses(status):
    assert classify_claim_status(status) == ClaimState.CLOSED


def test_other_statuses_are_active():
    assert classify_claim_status("Estimate in progress") == ClaimState.ACTIVE


@pytest.mark.parametrize("status", [None, "", "   ", "--"])
def test_empty_status_is_unknown(status):
    assert classify_claim_status(status) == ClaimState.UNKNOWN


def test_normalize_status():
    assert normalize_status("  Under__Review - 2nd ") == "under review 2nd"
