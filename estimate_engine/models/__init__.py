"""
Package initialization file for estimate engine models.

This module exports all Pydantic schemas and enumerations from schemas.py and
enums.py, making them importable from estimate_engine.models directly.

Usage:
    from estimate_engine.models import (
        EstimateRecord,
        AccountRecord,
        Outcome,
        Segment,
    )
"""

# =============================================================================
# Enums
# =============================================================================

from estimate_engine.models.enums import (
    DateField,
    EstimateType,
    ExclusionReason,
    Outcome,
    Segment,
    UnattributedReason,
)

# =============================================================================
# Schemas
# =============================================================================

from estimate_engine.models.schemas import (
    # Input records
    AccountRecord,
    EstimateRecord,
    # Attribution and classification
    AllocationResult,
    DataQualityReport,
    EstimateClassification,
    YearAttribution,
    # Segmentation
    AccountSegment,
    SegmentDowngrade,
    SegmentPersistResult,
    SegmentRefreshSummary,
    SegmentRun,
    # Renewal risk
    AtRiskAccount,
    AtRiskEstimate,
    AtRiskReport,
    DuplicateRenewalWarning,
    RenewalRiskResult,
    # Win/loss reporting
    AccountWinLossStats,
    DivisionWinLossStats,
    WinLossStats,
    # Coercion helpers
    coerce_date,
    coerce_money,
)


__all__ = [
    # Enums
    "DateField",
    "EstimateType",
    "ExclusionReason",
    "Outcome",
    "Segment",
    "UnattributedReason",
    # Input records
    "AccountRecord",
    "EstimateRecord",
    # Attribution and classification
    "AllocationResult",
    "DataQualityReport",
    "EstimateClassification",
    "YearAttribution",
    # Segmentation
    "AccountSegment",
    "SegmentDowngrade",
    "SegmentPersistResult",
    "SegmentRefreshSummary",
    "SegmentRun",
    # Renewal risk
    "AtRiskAccount",
    "AtRiskEstimate",
    "AtRiskReport",
    "DuplicateRenewalWarning",
    "RenewalRiskResult",
    # Win/loss reporting
    "AccountWinLossStats",
    "DivisionWinLossStats",
    "WinLossStats",
    # Coercion helpers
    "coerce_date",
    "coerce_money",
]
