"""
Revenue Allocator

Attributes an estimate's monetary value to one or more calendar years.

Authoritative price:
    price_inc_tax when present and non-zero, else price_ex_tax, else 0.
    The two fields are never summed.

Multi-year contracts (both contract_start and contract_end parsed):
    months = (y2 - y1) * 12 + (m2 - m1), plus one if the end day-of-month is
    after the start day-of-month. The month count maps to a year count
    (<=12 -> 1, <=24 -> 2, <=36 -> 3, else ceil(months / 12)) and the total is
    split evenly across [start_year .. start_year + years - 1].

    Example: $120,000 over 2024-07-01..2026-06-30 is 24 months, 2 years:
    {2024: 60,000, 2025: 60,000}.

Single-year estimates:
    The full price goes to the year chosen by year_attribution.resolve_year.
    Undated estimates match whatever year is being computed.

Bad data never raises; the estimate is excluded with a reason:
    - NO_PRICE: authoritative price is 0, checked before any date
    - INVALID_CONTRACT_DURATION: end not after start
    - UNRESOLVABLE_START_YEAR: contract_end present, contract_start unparseable
"""

import logging
import math
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable

from estimate_engine.models.enums import ExclusionReason
from estimate_engine.models.schemas import (
    AllocationResult,
    EstimateRecord,
    YearAttribution,
)
from estimate_engine.services.status_classifier import is_won
from estimate_engine.services.year_attribution import (
    MAX_VALID_YEAR,
    MIN_VALID_YEAR,
    Attributed,
    is_valid_year,
    resolve_year,
)


logger = logging.getLogger(__name__)

ZERO = Decimal("0")


# =============================================================================
# Price and Duration Helpers
# =============================================================================

def resolve_authoritative_price(estimate: EstimateRecord) -> Decimal:
    """
    Pick the single price used for every revenue computation.

    Returns:
        price_inc_tax if present and non-zero, else price_ex_tax, else 0.
    """
    if estimate.price_inc_tax is not None and estimate.price_inc_tax != ZERO:
        return estimate.price_inc_tax
    if estimate.price_ex_tax is not None:
        return estimate.price_ex_tax
    return ZERO


def months_between(start: date, end: date) -> int:
    """
    Whole contract months between two dates.

    A partial trailing month counts when the end day-of-month is after the
    start day-of-month.
    """
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day > start.day:
        months += 1
    return months


def months_to_year_count(months: int) -> int:
    """Number of calendar years a contract of `months` months spans."""
    if months <= 12:
        return 1
    if months <= 24:
        return 2
    if months <= 36:
        return 3
    if months % 12 == 0:
        return months // 12
    return math.ceil(months / 12)


def is_counted(estimate: EstimateRecord) -> bool:
    """Whether an estimate may contribute to revenue and risk at all."""
    return not estimate.exclude_from_stats and not estimate.archived


# =============================================================================
# Allocation
# =============================================================================

def allocate_all(
    estimate: EstimateRecord,
    min_year: int = MIN_VALID_YEAR,
    max_year: int = MAX_VALID_YEAR
) -> AllocationResult:
    """
    Compute every year attribution for an estimate.

    Args:
        estimate: The estimate record
        min_year: Earliest accepted year for any date
        max_year: Latest accepted year for any date

    Returns:
        AllocationResult with attributions, the undated flag, or an
        exclusion reason. The attributions always sum to the authoritative
        price (within 0.01).
    """
    total = resolve_authoritative_price(estimate)

    if total == ZERO:
        logger.debug(f"Estimate {estimate.external_id} excluded: no price")
        return AllocationResult(
            total_amount=total,
            exclusion_reason=ExclusionReason.NO_PRICE,
        )

    if estimate.contract_end is not None and "contract_start" in estimate.unparseable_dates:
        logger.debug(
            f"Estimate {estimate.external_id} excluded: contract start unparseable"
        )
        return AllocationResult(
            total_amount=total,
            exclusion_reason=ExclusionReason.UNRESOLVABLE_START_YEAR,
        )

    start = estimate.contract_start
    end = estimate.contract_end

    if start is not None and end is not None:
        if not is_valid_year(start, min_year, max_year):
            logger.debug(
                f"Estimate {estimate.external_id} excluded: contract start year "
                f"{start.year} out of range"
            )
            return AllocationResult(
                total_amount=total,
                exclusion_reason=ExclusionReason.UNRESOLVABLE_START_YEAR,
            )

        months = months_between(start, end)
        if months <= 0 or not is_valid_year(end, min_year, max_year):
            logger.debug(
                f"Estimate {estimate.external_id} excluded: invalid contract "
                f"duration {start} -> {end}"
            )
            return AllocationResult(
                total_amount=total,
                exclusion_reason=ExclusionReason.INVALID_CONTRACT_DURATION,
            )

        years = months_to_year_count(months)
        annual = total / Decimal(years)
        return AllocationResult(
            total_amount=total,
            attributions=[
                YearAttribution(applies_to_year=start.year + offset, allocated_amount=annual)
                for offset in range(years)
            ],
        )

    resolution = resolve_year(estimate, min_year, max_year)
    if isinstance(resolution, Attributed):
        return AllocationResult(
            total_amount=total,
            attributions=[
                YearAttribution(applies_to_year=resolution.year, allocated_amount=total)
            ],
        )

    return AllocationResult(total_amount=total, undated=True)


def allocate(
    estimate: EstimateRecord,
    year: int,
    min_year: int = MIN_VALID_YEAR,
    max_year: int = MAX_VALID_YEAR
) -> Decimal:
    """Amount of an estimate's value attributed to `year`."""
    return allocate_all(estimate, min_year, max_year).amount_for_year(year)


# =============================================================================
# Revenue Aggregates
# =============================================================================

def calculate_revenue_by_year(estimates: Iterable[EstimateRecord]) -> Dict[int, Decimal]:
    """
    Sum won, counted revenue per calendar year.

    Undated and excluded estimates are skipped since they have no year of
    their own.

    Returns:
        Dict mapping year to total allocated revenue, sorted by year.
    """
    totals: Dict[int, Decimal] = defaultdict(lambda: ZERO)

    for estimate in estimates:
        if not is_counted(estimate) or not is_won(estimate):
            continue
        result = allocate_all(estimate)
        for attribution in result.attributions:
            totals[attribution.applies_to_year] += attribution.allocated_amount

    return dict(sorted(totals.items()))


def calculate_account_revenue(estimates: Iterable[EstimateRecord], year: int) -> Decimal:
    """Won, counted revenue attributed to `year`, undated estimates included."""
    return sum(
        (allocate(estimate, year) for estimate in estimates
         if is_counted(estimate) and is_won(estimate)),
        ZERO,
    )
