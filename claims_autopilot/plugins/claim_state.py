"""Classification of free-text claim statuses into scheduling states."""

import re
from enum import Enum
from typing import Optional, Tuple


class ClaimState(str, Enum):
    """Coarse claim state used by the schedulers."""
    AWAITING_CARRIER = "awaiting_carrier"
    CLOSED = "closed"
    ACTIVE = "active"
    UNKNOWN = "unknown"


# Checked in order; the first state with a matching phrase wins.
CLAIM_STATE_TABLE: Tuple[Tuple[ClaimState, Tuple[str, ...]], ...] = (
    (ClaimState.AWAITING_CARRIER, (
        "submitted to insurance",
        "awaiting adjuster assignment",
        "awaiting adjuster",
        "supplement submitted",
        "under review",
        "inspection scheduled",
        "awaiting carrier response",
        "awaiting carrier",
        "awaiting insurance response",
        "pending carrier review",
        "reinspection requested",
    )),
    (ClaimState.CLOSED, (
        "closed",
        "settled",
        "paid in full",
        "withdrawn",
    )),
)

# A status contained in a longer phrase must be at least this many whole words
MIN_REVERSE_MATCH_WORDS = 2


def normalize_status(status: Optional[str]) -> str:
    """Lowercase, turn '-' and '_' into spaces and collapse whitespace."""
    text = re.sub(r"[-_]+", " ", (status or "").lower())
    return " ".join(text.split())


def classify_claim_status(status: Optional[str]) -> ClaimState:
    """
    Classify a free-text claim status.

    A phrase matches when the normalized status contains it, which tolerates
    decorated statuses such as "Supplement Submitted - 2nd". A status also
    matches a phrase that contains it as whole words, provided it has at
    least MIN_REVERSE_MATCH_WORDS words: "Carrier Response" matches, a
    generic "Pending" does not. An empty status never matches any phrase.

    Args:
        status: Claim status as stored on the claim

    Returns:
        ClaimState for the status
    """
    normalized = normalize_status(status)
    if not normalized:
        return ClaimState.UNKNOWN

    reverse = len(normalized.split()) >= MIN_REVERSE_MATCH_WORDS
    for state, phrases in CLAIM_STATE_TABLE:
        for phrase in phrases:
            if phrase in normalized:
                return state
            if reverse and f" {normalized} " in f" {phrase} ":
                return state
    return ClaimState.ACTIVE

