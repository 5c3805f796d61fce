"""
Segment Refresh Job

Rebuilds every active account's segment map and writes it back to the
record store.

Flow:
1. Fetch the full account and estimate snapshots (paginated)
2. Dedupe estimates and build the data-quality report
3. Rebuild each segment map over every year the won estimates cover plus the
   target year and the one before it. The target defaults to the current
   segment year, which is the previous calendar year during January and
   February
4. Persist per account; individual failures are collected, not raised
5. Return a SegmentRefreshSummary tally

Usage:
    from estimate_engine.jobs.segment_refresh import refresh_segments

    summary = await refresh_segments()
    summary = await refresh_segments(year=2025)
"""

import logging
from datetime import date, datetime
from typing import Dict, Optional, Union

from estimate_engine.core.config import get_settings
from estimate_engine.models.schemas import SegmentRefreshSummary
from estimate_engine.services.engine import segment_accounts
from estimate_engine.services.record_store import (
    fetch_all_accounts,
    fetch_all_estimates,
    persist_segments,
)
from estimate_engine.services.renewal_risk import business_today
from estimate_engine.services.segmentation import (
    find_segment_downgrades,
    get_segment_year,
)


logger = logging.getLogger(__name__)


async def refresh_segments(
    year: Optional[int] = None,
    today: Optional[Union[date, datetime]] = None
) -> SegmentRefreshSummary:
    """
    Rebuild and persist every active account's segment map.

    Args:
        year: Target year; the map also covers year - 1 and every year a
            won estimate is attributed to (default: segment year for `today`)
        today: Reference date for the default year (default: now in the
            business timezone)

    Returns:
        SegmentRefreshSummary with per-account results and target-year counts.

    Raises:
        asyncpg.PostgresError: If the snapshot cannot be fetched.
    """
    settings = get_settings()

    if year is None:
        year = get_segment_year(
            business_today(today, settings.business_timezone),
            settings.segment_year_rollover_month,
        )

    logger.info(f"Starting segment refresh for {year}")

    accounts = await fetch_all_accounts(settings.record_page_size)
    estimates = await fetch_all_estimates(settings.record_page_size)

    run, quality = segment_accounts(
        accounts,
        estimates,
        year,
        settings.segment_a_threshold_pct,
        settings.segment_b_threshold_pct,
    )

    results = await persist_segments(run.accounts)
    succeeded = sum(1 for result in results if result.ok)

    segment_counts: Dict[str, int] = {}
    for item in run.segments:
        segment_counts[item.segment.value] = segment_counts.get(item.segment.value, 0) + 1

    downgrades = find_segment_downgrades(run.accounts, year)
    for downgrade in downgrades:
        logger.info(
            f"Account {downgrade.account_id} downgraded "
            f"{downgrade.previous_segment.value} -> {downgrade.current_segment.value} in {year}"
        )

    summary = SegmentRefreshSummary(
        year=year,
        accounts_processed=len(run.accounts),
        succeeded=succeeded,
        failed=len(results) - succeeded,
        segment_counts=segment_counts,
        results=results,
        downgrades=downgrades,
        data_quality=quality,
    )

    logger.info(
        f"Segment refresh for {year} complete: {summary.succeeded} succeeded, "
        f"{summary.failed} failed, segments {segment_counts}"
    )
    return summary


__all__ = ['refresh_segments']
