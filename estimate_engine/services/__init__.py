"""
Estimate Engine Services Module

This module contains the business logic of the estimate engine. Every service
except the record store is pure and synchronous over an in-memory snapshot.

Services:
- status_classifier: Won/lost/pending from the platform's status fields
- year_attribution: Calendar year from the date priority chain
- revenue_allocation: Authoritative price and multi-year proration
- deduplication: First-seen-wins dedupe on external_id
- segmentation: A/B/C/D account segments per year
- renewal_risk: Expiring won contracts with renewal suppression
- engine: Facade wiring the stages together
- reporting: Win/loss statistics (pandas)
- record_store: Paginated asyncpg reads and segment write-back
"""

# =============================================================================
# Status Classifier Exports
# =============================================================================

from estimate_engine.services.status_classifier import (
    LOST_STATUS_PHRASES,
    WON_STATUS_PHRASES,
    classify_estimate,
    classify_status,
    is_lost,
    is_won,
)

# =============================================================================
# Year Attribution and Revenue Allocation Exports
# =============================================================================

from estimate_engine.services.year_attribution import (
    Attributed,
    Unattributed,
    YearResolution,
    applies_to_year,
    resolve_year,
)

from estimate_engine.services.revenue_allocation import (
    allocate,
    allocate_all,
    calculate_account_revenue,
    calculate_revenue_by_year,
    months_between,
    months_to_year_count,
    resolve_authoritative_price,
)

# =============================================================================
# Deduplication, Segmentation and Renewal Risk Exports
# =============================================================================

from estimate_engine.services.deduplication import dedupe

from estimate_engine.services.segmentation import (
    calculate_total_revenue,
    compute_segments,
    compute_segments_for_years,
    find_segment_downgrades,
    get_segment_year,
    segment_years,
)

from estimate_engine.services.renewal_risk import (
    calculate_renewal_date,
    days_until_renewal,
    find_at_risk,
    find_at_risk_accounts,
    is_renewal_within_days,
)

# =============================================================================
# Engine Facade and Reporting Exports
# =============================================================================

from estimate_engine.services.engine import (
    assess_renewal_risk,
    build_data_quality_report,
    classify_estimates,
    group_by_account,
    segment_accounts,
)

from estimate_engine.services.reporting import (
    calculate_account_stats,
    calculate_division_stats,
    calculate_overall_stats,
    filter_estimates_by_year,
)

# =============================================================================
# Record Store Exports
# =============================================================================

from estimate_engine.services.record_store import (
    fetch_all_accounts,
    fetch_all_estimates,
    persist_segments,
)


__all__ = [
    # status_classifier
    "LOST_STATUS_PHRASES",
    "WON_STATUS_PHRASES",
    "classify_estimate",
    "classify_status",
    "is_lost",
    "is_won",
    # year_attribution
    "Attributed",
    "Unattributed",
    "YearResolution",
    "applies_to_year",
    "resolve_year",
    # revenue_allocation
    "allocate",
    "allocate_all",
    "calculate_account_revenue",
    "calculate_revenue_by_year",
    "months_between",
    "months_to_year_count",
    "resolve_authoritative_price",
    # deduplication
    "dedupe",
    # segmentation
    "calculate_total_revenue",
    "compute_segments",
    "compute_segments_for_years",
    "find_segment_downgrades",
    "get_segment_year",
    "segment_years",
    # renewal_risk
    "calculate_renewal_date",
    "days_until_renewal",
    "find_at_risk",
    "find_at_risk_accounts",
    "is_renewal_within_days",
    # engine
    "assess_renewal_risk",
    "build_data_quality_report",
    "classify_estimates",
    "group_by_account",
    "segment_accounts",
    # reporting
    "calculate_account_stats",
    "calculate_division_stats",
    "calculate_overall_stats",
    "filter_estimates_by_year",
    # record_store
    "fetch_all_accounts",
    "fetch_all_estimates",
    "persist_segments",
]
