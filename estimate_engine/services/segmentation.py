"""
Segment Calculator Service

Assigns every account a revenue-importance tier per calendar year.

Segment Rules (evaluated per account, per year):
1. Take the account's estimates that are WON, counted (not excluded from stats,
   not archived) and attributed to the year (multi-year contracts included,
   undated estimates assumed current).
2. Segment D: at least one won `standard` estimate and no won `service`
   estimate that year. D takes precedence over the revenue tiers.
3. Otherwise revenue share = annual_revenue / total_revenue * 100:
   - share >= 15 -> A
   - share >= 5  -> B
   - else        -> C (also when either revenue figure is zero or missing)

The calculator never mutates its inputs. Each run returns updated account
copies whose segment_by_year carries the new year and whose revenue_segment
mirrors the most recent year present in the map. Batch refreshes rebuild the
whole map with compute_segments_for_years over segment_years(); stale years
that no estimate covers are dropped.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from estimate_engine.models.enums import EstimateType, Segment
from estimate_engine.models.schemas import (
    AccountRecord,
    AccountSegment,
    EstimateRecord,
    SegmentDowngrade,
    SegmentRun,
)
from estimate_engine.services.revenue_allocation import allocate_all, is_counted
from estimate_engine.services.status_classifier import is_won


logger = logging.getLogger(__name__)

SEGMENT_A_THRESHOLD_PCT = 15.0
SEGMENT_B_THRESHOLD_PCT = 5.0
SEGMENT_YEAR_ROLLOVER_MONTH = 3

# Lower rank is more important; D sits after C as its own tier
SEGMENT_RANK: Dict[Segment, int] = {
    Segment.A: 0,
    Segment.B: 1,
    Segment.C: 2,
    Segment.D: 3,
}


# =============================================================================
# Segment Year and Totals
# =============================================================================

def get_segment_year(
    today: date,
    rollover_month: int = SEGMENT_YEAR_ROLLOVER_MONTH
) -> int:
    """
    Year whose segments are current on `today`.

    Before the rollover month (January and February by default) the previous
    year's books are still being closed, so it remains the segment year.
    """
    if today.month < rollover_month:
        return today.year - 1
    return today.year


def calculate_total_revenue(accounts: Iterable[AccountRecord]) -> Decimal:
    """Sum annual_revenue across non-archived accounts."""
    return sum(
        (account.annual_revenue for account in accounts if not account.archived),
        Decimal("0"),
    )


# =============================================================================
# Segment Determination
# =============================================================================

def won_estimates_for_year(
    estimates: Iterable[EstimateRecord],
    year: int
) -> List[EstimateRecord]:
    """Won, counted estimates whose value is attributed to `year`."""
    return [
        estimate for estimate in estimates
        if is_counted(estimate) and is_won(estimate) and allocate_all(estimate).applies_to(year)
    ]


def is_project_only(won_estimates: Sequence[EstimateRecord]) -> bool:
    """True when the won work is standard (project) only, with no service work."""
    types = {estimate.estimate_type for estimate in won_estimates}
    return EstimateType.STANDARD in types and EstimateType.SERVICE not in types


def determine_revenue_segment(
    annual_revenue: Optional[Decimal],
    total_revenue: Optional[Decimal],
    a_threshold_pct: float = SEGMENT_A_THRESHOLD_PCT,
    b_threshold_pct: float = SEGMENT_B_THRESHOLD_PCT
) -> Segment:
    """
    Map a revenue share onto A/B/C.

    Args:
        annual_revenue: The account's annual revenue
        total_revenue: Total annual revenue across all accounts
        a_threshold_pct: Minimum share (percent) for A
        b_threshold_pct: Minimum share (percent) for B

    Returns:
        Segment.A, Segment.B or Segment.C. Zero or missing figures give C.
    """
    if not annual_revenue or not total_revenue or total_revenue <= 0:
        return Segment.C

    share = annual_revenue / total_revenue * Decimal(100)

    if share >= Decimal(str(a_threshold_pct)):
        return Segment.A
    if share >= Decimal(str(b_threshold_pct)):
        return Segment.B
    return Segment.C


def determine_segment(
    account: AccountRecord,
    estimates: Sequence[EstimateRecord],
    total_revenue: Decimal,
    year: int,
    a_threshold_pct: float = SEGMENT_A_THRESHOLD_PCT,
    b_threshold_pct: float = SEGMENT_B_THRESHOLD_PCT
) -> Segment:
    """Segment for a single account and year."""
    if is_project_only(won_estimates_for_year(estimates, year)):
        return Segment.D

    return determine_revenue_segment(
        account.annual_revenue, total_revenue, a_threshold_pct, b_threshold_pct
    )


def _with_segment(
    account: AccountRecord,
    segment_by_year: Dict[int, Segment]
) -> AccountRecord:
    mirror = segment_by_year[max(segment_by_year)] if segment_by_year else None
    return account.model_copy(
        update={"segment_by_year": segment_by_year, "revenue_segment": mirror}
    )


# =============================================================================
# Batch Computation
# =============================================================================

def compute_segments(
    accounts: Sequence[AccountRecord],
    estimates_by_account: Mapping[str, Sequence[EstimateRecord]],
    total_revenue: Decimal,
    year: int,
    a_threshold_pct: float = SEGMENT_A_THRESHOLD_PCT,
    b_threshold_pct: float = SEGMENT_B_THRESHOLD_PCT
) -> SegmentRun:
    """
    Compute segments for every account for one year.

    Args:
        accounts: Accounts to segment
        estimates_by_account: Deduplicated estimates keyed by account id
        total_revenue: Denominator for revenue share (see calculate_total_revenue)
        year: Calendar year being computed
        a_threshold_pct: Minimum share (percent) for A
        b_threshold_pct: Minimum share (percent) for B

    Returns:
        SegmentRun with updated account copies and one AccountSegment each.
    """
    updated: List[AccountRecord] = []
    segments: List[AccountSegment] = []

    for account in accounts:
        segment = determine_segment(
            account,
            estimates_by_account.get(account.id, []),
            total_revenue,
            year,
            a_threshold_pct,
            b_threshold_pct,
        )
        segment_by_year = dict(account.segment_by_year)
        segment_by_year[year] = segment

        updated.append(_with_segment(account, segment_by_year))
        segments.append(AccountSegment(account_id=account.id, year=year, segment=segment))

    counts: Dict[str, int] = {}
    for item in segments:
        counts[item.segment.value] = counts.get(item.segment.value, 0) + 1
    logger.info(f"Computed {len(segments)} segments for {year}: {counts}")

    return SegmentRun(
        year=year,
        total_revenue=total_revenue,
        accounts=updated,
        segments=segments,
    )


def segment_years(estimates: Iterable[EstimateRecord], year: int) -> List[int]:
    """
    Years a full segment-map rebuild must cover.

    Every year a won, counted estimate is attributed to, plus `year` and
    `year - 1` so downgrade detection always has a previous year.
    """
    years = {year - 1, year}
    for estimate in estimates:
        if is_counted(estimate) and is_won(estimate):
            years.update(a.applies_to_year for a in allocate_all(estimate).attributions)
    return sorted(years)


def compute_segments_for_years(
    accounts: Sequence[AccountRecord],
    estimates_by_account: Mapping[str, Sequence[EstimateRecord]],
    years: Iterable[int],
    total_revenue: Optional[Decimal] = None,
    a_threshold_pct: float = SEGMENT_A_THRESHOLD_PCT,
    b_threshold_pct: float = SEGMENT_B_THRESHOLD_PCT
) -> List[AccountRecord]:
    """
    Rebuild each account's segment map from scratch for the given years.

    Existing segment_by_year entries are discarded; the returned copies hold
    exactly one entry per requested year.
    """
    if total_revenue is None:
        total_revenue = calculate_total_revenue(accounts)

    maps: Dict[str, Dict[int, Segment]] = {account.id: {} for account in accounts}

    for year in sorted(set(years)):
        for account in accounts:
            maps[account.id][year] = determine_segment(
                account,
                estimates_by_account.get(account.id, []),
                total_revenue,
                year,
                a_threshold_pct,
                b_threshold_pct,
            )

    return [_with_segment(account, maps[account.id]) for account in accounts]


def find_segment_downgrades(
    accounts: Iterable[AccountRecord],
    year: int
) -> List[SegmentDowngrade]:
    """
    Accounts whose segment for `year` ranks below their segment for year - 1.

    Ranking is A > B > C > D. Accounts without both years are skipped.
    """
    downgrades: List[SegmentDowngrade] = []

    for account in accounts:
        if account.archived:
            continue
        current = account.segment_by_year.get(year)
        previous = account.segment_by_year.get(year - 1)
        if current is None or previous is None:
            continue
        if SEGMENT_RANK[current] > SEGMENT_RANK[previous]:
            downgrades.append(SegmentDowngrade(
                account_id=account.id,
                account_name=account.name,
                year=year,
                previous_segment=previous,
                current_segment=current,
            ))

    return downgrades
