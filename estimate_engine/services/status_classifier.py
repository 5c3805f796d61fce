"""
Status Classifier Service

Decides whether an estimate was won, lost or is still pending from the two
free-text status fields the estimating platform exports.

Rules, applied in order after trimming and lowercasing both inputs:
1. pipeline_status_text equals or contains "sold" -> WON
2. status_text is exactly one of WON_STATUS_PHRASES -> WON
3. status_text is exactly one of LOST_STATUS_PHRASES -> LOST
4. Anything else (missing, empty, unrecognised) -> PENDING

The pipeline field is the platform's canonical sales stage and therefore wins
over the free-text status. Phrase matching on status_text is exact membership
only: "Contract Signed - Pending Approval" and "Lost Contact" are both pending.
"""

from typing import FrozenSet, Optional

from estimate_engine.models.enums import Outcome
from estimate_engine.models.schemas import EstimateRecord


# =============================================================================
# Phrase Tables
# =============================================================================

WON_STATUS_PHRASES: FrozenSet[str] = frozenset({
    "contract signed",
    "work complete",
    "billing complete",
    "email contract award",
    "verbal contract award",
    "contract in progress",
    "contract + billing complete",
    "sold",
    "won",
})

LOST_STATUS_PHRASES: FrozenSet[str] = frozenset({
    "lost",
    "estimate lost",
    "estimate lost - no reply",
    "estimate lost - price too high",
    "estimate in progress - lost",
    "review + approve - lost",
    "client proposal phase - lost",
    "estimate on hold",
})

PIPELINE_SOLD_MARKER = "sold"


def _normalize(text: Optional[str]) -> str:
    if text is None:
        return ""
    return str(text).strip().lower()


def classify_status(
    pipeline_status_text: Optional[str],
    status_text: Optional[str]
) -> Outcome:
    """
    Classify a pair of status strings into a sales outcome.

    Args:
        pipeline_status_text: Canonical pipeline stage (e.g. "Sold", "Lost")
        status_text: Free-text estimate status (e.g. "Contract Signed")

    Returns:
        Outcome.WON, Outcome.LOST or Outcome.PENDING. Never raises.
    """
    pipeline = _normalize(pipeline_status_text)
    if pipeline and PIPELINE_SOLD_MARKER in pipeline:
        return Outcome.WON

    status = _normalize(status_text)
    if status in WON_STATUS_PHRASES:
        return Outcome.WON
    if status in LOST_STATUS_PHRASES:
        return Outcome.LOST

    return Outcome.PENDING


def classify_estimate(estimate: EstimateRecord) -> Outcome:
    """Classify an estimate record by its pipeline and status fields."""
    return classify_status(estimate.pipeline_status_text, estimate.status_text)


def is_won(estimate: EstimateRecord) -> bool:
    return classify_estimate(estimate) == Outcome.WON


def is_lost(estimate: EstimateRecord) -> bool:
    return classify_estimate(estimate) == Outcome.LOST
