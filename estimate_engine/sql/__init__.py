"""
SQL Query Module for the estimate engine.

Provides parameterized asyncpg queries for the record store:
- Paginated account and estimate snapshots
- Per-account segment write-back

Example usage:
    from estimate_engine.sql import get_estimates_page_query

    rows = await conn.fetch(get_estimates_page_query(), 1000, 0)
"""

from estimate_engine.sql.record_queries import (
    ACCOUNT_COLUMNS,
    ESTIMATE_COLUMNS,
    get_accounts_page_query,
    get_estimates_page_query,
    get_update_account_segments_query,
)

__all__ = [
    'ACCOUNT_COLUMNS',
    'ESTIMATE_COLUMNS',
    'get_accounts_page_query',
    'get_estimates_page_query',
    'get_update_account_segments_query',
]
