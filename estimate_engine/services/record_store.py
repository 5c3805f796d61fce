"""
Record Store Adapter

Reads complete account and estimate snapshots from PostgreSQL and writes
computed segments back.

Reads:
    The store returns at most `record_page_size` rows per request. Pages are
    requested with LIMIT/OFFSET until a page comes back short, and everything
    is accumulated before the engine runs. Retrieval failures propagate to the
    caller.

Row Mapping:
    Rows are validated into frozen EstimateRecord / AccountRecord models. A row
    that fails validation is logged and skipped; the rest of the snapshot is
    still returned.

Writes:
    Segments are written per account. A failure on one account is caught,
    logged and reported in its SegmentPersistResult; the batch carries on.
"""

import json
import logging
from typing import Any, List, Mapping, Optional, Sequence

from pydantic import ValidationError

from estimate_engine.core.config import get_settings
from estimate_engine.core.database import get_db_pool
from estimate_engine.models.schemas import (
    AccountRecord,
    EstimateRecord,
    SegmentPersistResult,
)
from estimate_engine.sql.record_queries import (
    get_accounts_page_query,
    get_estimates_page_query,
    get_update_account_segments_query,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Pagination
# =============================================================================

async def fetch_all_rows(query: str, page_size: Optional[int] = None) -> List[Mapping[str, Any]]:
    """
    Fetch every row of a paginated query.

    Args:
        query: SQL taking $1 = LIMIT and $2 = OFFSET
        page_size: Rows per request (default: settings.record_page_size)

    Returns:
        All rows across all pages, in query order.
    """
    if page_size is None:
        page_size = get_settings().record_page_size

    pool = await get_db_pool()
    rows: List[Mapping[str, Any]] = []
    offset = 0

    async with pool.acquire() as conn:
        while True:
            page = await conn.fetch(query, page_size, offset)
            rows.extend(page)
            if len(page) < page_size:
                break
            offset += page_size

    return rows


# =============================================================================
# Row Mapping
# =============================================================================

def row_to_estimate(row: Mapping[str, Any]) -> EstimateRecord:
    return EstimateRecord.model_validate(dict(row))


def row_to_account(row: Mapping[str, Any]) -> AccountRecord:
    """Map an account row; segment_by_year may arrive as JSON text."""
    data = dict(row)
    segments = data.get("segment_by_year")
    if isinstance(segments, str):
        data["segment_by_year"] = json.loads(segments) if segments.strip() else {}
    return AccountRecord.model_validate(data)


async def fetch_all_estimates(page_size: Optional[int] = None) -> List[EstimateRecord]:
    """Fetch and validate every estimate in the store."""
    rows = await fetch_all_rows(get_estimates_page_query(), page_size)

    estimates: List[EstimateRecord] = []
    for row in rows:
        try:
            estimates.append(row_to_estimate(row))
        except ValidationError as e:
            logger.error(f"Skipping invalid estimate row {dict(row).get('external_id')}: {e}")
            continue

    logger.info(f"Fetched {len(estimates)} estimates ({len(rows)} rows)")
    return estimates


async def fetch_all_accounts(page_size: Optional[int] = None) -> List[AccountRecord]:
    """Fetch and validate every account in the store."""
    rows = await fetch_all_rows(get_accounts_page_query(), page_size)

    accounts: List[AccountRecord] = []
    for row in rows:
        try:
            accounts.append(row_to_account(row))
        except (ValidationError, ValueError) as e:
            logger.error(f"Skipping invalid account row {dict(row).get('id')}: {e}")
            continue

    logger.info(f"Fetched {len(accounts)} accounts ({len(rows)} rows)")
    return accounts


# =============================================================================
# Segment Write-back
# =============================================================================

def serialize_segment_map(account: AccountRecord) -> str:
    return json.dumps({
        str(year): segment.value
        for year, segment in sorted(account.segment_by_year.items())
    })


async def persist_segments(accounts: Sequence[AccountRecord]) -> List[SegmentPersistResult]:
    """
    Write each account's segment map and revenue_segment mirror.

    Args:
        accounts: Account copies returned by the segment calculator

    Returns:
        One SegmentPersistResult per account, in input order. Never raises
        for a single account's failure.
    """
    if not accounts:
        return []

    pool = await get_db_pool()
    query = get_update_account_segments_query()
    results: List[SegmentPersistResult] = []

    async with pool.acquire() as conn:
        for account in accounts:
            segment = account.revenue_segment
            try:
                await conn.execute(
                    query,
                    account.id,
                    serialize_segment_map(account),
                    segment.value if segment is not None else None,
                )
                results.append(SegmentPersistResult(
                    account_id=account.id, ok=True, segment=segment
                ))
            except Exception as e:
                logger.error(f"Failed to persist segments for account {account.id}: {e}")
                results.append(SegmentPersistResult(
                    account_id=account.id, ok=False, segment=segment, error=str(e)
                ))

    failed = sum(1 for result in results if not result.ok)
    logger.info(f"Persisted segments for {len(results) - failed}/{len(results)} accounts")
    return results
