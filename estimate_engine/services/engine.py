"""
Engine Facade

Single entry point that wires the engine stages together over an in-memory
snapshot:

    raw estimates -> dedupe -> classify + attribute -> allocate
                  -> {segment accounts, detect renewal risk}

All functions are pure and synchronous; fetching the snapshot and persisting
results belong to the jobs (estimate_engine/jobs/).
"""

import logging
from collections import defaultdict
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence, Tuple, Union

from estimate_engine.models.schemas import (
    AccountRecord,
    AccountSegment,
    AtRiskReport,
    DataQualityReport,
    EstimateClassification,
    EstimateRecord,
    SegmentRun,
)
from estimate_engine.services.deduplication import dedupe
from estimate_engine.services.renewal_risk import (
    DEFAULT_BUSINESS_TIMEZONE,
    DEFAULT_THRESHOLD_DAYS,
    find_at_risk_accounts,
)
from estimate_engine.services.revenue_allocation import (
    allocate_all,
    resolve_authoritative_price,
)
from estimate_engine.services.segmentation import (
    SEGMENT_A_THRESHOLD_PCT,
    SEGMENT_B_THRESHOLD_PCT,
    calculate_total_revenue,
    compute_segments_for_years,
    segment_years,
)
from estimate_engine.services.status_classifier import classify_estimate
from estimate_engine.services.year_attribution import MAX_VALID_YEAR, MIN_VALID_YEAR


logger = logging.getLogger(__name__)


def group_by_account(estimates: Sequence[EstimateRecord]) -> Dict[str, List[EstimateRecord]]:
    """Group estimates by account_id; estimates without an account are dropped."""
    grouped: Dict[str, List[EstimateRecord]] = defaultdict(list)
    for estimate in estimates:
        if estimate.account_id:
            grouped[estimate.account_id].append(estimate)
    return dict(grouped)


def classify_estimates(
    estimates: Sequence[EstimateRecord],
    min_year: int = MIN_VALID_YEAR,
    max_year: int = MAX_VALID_YEAR
) -> List[EstimateClassification]:
    """Outcome and year attributions for each estimate, in input order."""
    classifications: List[EstimateClassification] = []

    for estimate in estimates:
        allocation = allocate_all(estimate, min_year, max_year)
        classifications.append(EstimateClassification(
            external_id=estimate.external_id,
            account_id=estimate.account_id,
            outcome=classify_estimate(estimate),
            year_attributions=allocation.attributions,
            undated=allocation.undated,
            exclusion_reason=allocation.exclusion_reason,
        ))

    return classifications


def build_data_quality_report(
    raw_estimates: Sequence[EstimateRecord],
    deduped_estimates: Sequence[EstimateRecord],
    min_year: int = MIN_VALID_YEAR,
    max_year: int = MAX_VALID_YEAR
) -> DataQualityReport:
    """
    Count the records the engine could not fully use.

    Args:
        raw_estimates: The snapshot as fetched
        deduped_estimates: The same snapshot after dedupe()
    """
    excluded: Dict[str, int] = defaultdict(int)
    unparseable: Dict[str, int] = defaultdict(int)
    undated = 0
    unpriced = 0

    for estimate in deduped_estimates:
        for field_name in estimate.unparseable_dates:
            unparseable[field_name] += 1

        allocation = allocate_all(estimate, min_year, max_year)
        if allocation.exclusion_reason is not None:
            excluded[allocation.exclusion_reason.value] += 1
        elif allocation.undated:
            undated += 1

        if resolve_authoritative_price(estimate) == 0:
            unpriced += 1

    report = DataQualityReport(
        total_estimates=len(raw_estimates),
        duplicates_removed=len(raw_estimates) - len(deduped_estimates),
        undated_count=undated,
        unpriced_count=unpriced,
        excluded_by_reason=dict(excluded),
        unparseable_date_fields=dict(unparseable),
    )

    logger.info(
        f"Data quality: {report.total_estimates} estimates, "
        f"{report.duplicates_removed} duplicates, {report.excluded_count} excluded "
        f"{report.excluded_by_reason}, {report.undated_count} undated, "
        f"{report.unpriced_count} unpriced, unparseable dates {report.unparseable_date_fields}"
    )
    return report


def segment_accounts(
    accounts: Sequence[AccountRecord],
    estimates: Sequence[EstimateRecord],
    year: int,
    a_threshold_pct: float = SEGMENT_A_THRESHOLD_PCT,
    b_threshold_pct: float = SEGMENT_B_THRESHOLD_PCT
) -> Tuple[SegmentRun, DataQualityReport]:
    """
    Dedupe a raw snapshot and rebuild every non-archived account's segment map.

    The map is recomputed from scratch over segment_years(): each year the
    account's won estimates cover, plus `year` and `year - 1`. Entries for any
    other year are dropped.

    Returns:
        Tuple of (SegmentRun, DataQualityReport). run.segments holds the
        segment for `year` only.
    """
    unique = dedupe(estimates)
    quality = build_data_quality_report(estimates, unique)

    active = [account for account in accounts if not account.archived]
    grouped = group_by_account(unique)
    total_revenue = calculate_total_revenue(active)

    years = segment_years(
        [estimate for account in active for estimate in grouped.get(account.id, [])],
        year,
    )
    rebuilt = compute_segments_for_years(
        active,
        grouped,
        years,
        total_revenue,
        a_threshold_pct,
        b_threshold_pct,
    )

    segments = [
        AccountSegment(account_id=account.id, year=year, segment=account.segment_by_year[year])
        for account in rebuilt
    ]
    logger.info(f"Rebuilt segment maps for {len(rebuilt)} accounts over years {years}")

    run = SegmentRun(
        year=year,
        total_revenue=total_revenue,
        accounts=rebuilt,
        segments=segments,
    )
    return run, quality


def assess_renewal_risk(
    accounts: Sequence[AccountRecord],
    estimates: Sequence[EstimateRecord],
    today: Optional[Union[date, datetime]] = None,
    threshold_days: int = DEFAULT_THRESHOLD_DAYS,
    timezone: str = DEFAULT_BUSINESS_TIMEZONE
) -> AtRiskReport:
    """Dedupe a raw snapshot and build the account-level at-risk report."""
    return find_at_risk_accounts(
        accounts,
        dedupe(estimates),
        today=today,
        threshold_days=threshold_days,
        timezone=timezone,
    )
