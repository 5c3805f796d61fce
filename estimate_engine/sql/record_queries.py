"""
Parameterized SQL queries for the record store.

The engine reads accounts and estimates in fixed-size pages (asyncpg
placeholders $1 = LIMIT, $2 = OFFSET) ordered by a stable key so that paging
never skips or repeats a row, and writes computed segments back one account at
a time.

Tables:
    accounts:  id, name, annual_revenue, archived, segment_by_year (jsonb),
               revenue_segment, snoozed_until
    estimates: id, external_id, account_id, status, pipeline_status,
               total_price, total_price_with_tax, estimate_date, close_date,
               contract_start, contract_end, created_date, division, address,
               estimate_type, exclude_stats, archived
"""

ACCOUNT_COLUMNS = """
    id,
    name,
    annual_revenue,
    archived,
    segment_by_year,
    revenue_segment,
    snoozed_until
"""

# Raw date columns are cast to text so unparseable values reach model validation
ESTIMATE_COLUMNS = """
    external_id,
    account_id,
    status AS status_text,
    pipeline_status AS pipeline_status_text,
    total_price AS price_ex_tax,
    total_price_with_tax AS price_inc_tax,
    estimate_date::text AS estimate_date,
    close_date::text AS close_date,
    contract_start::text AS contract_start,
    contract_end::text AS contract_end,
    created_date::text AS created_date,
    division,
    address,
    estimate_type,
    exclude_stats AS exclude_from_stats,
    archived
"""


def get_accounts_page_query() -> str:
    """
    Generate the paginated account select.

    Parameters:
        $1: page size (LIMIT)
        $2: row offset (OFFSET)
    """
    return f"""
    SELECT {ACCOUNT_COLUMNS}
    FROM accounts
    ORDER BY id
    LIMIT $1 OFFSET $2
    """


def get_estimates_page_query() -> str:
    """
    Generate the paginated estimate select.

    Ordered by the surrogate row id so that the first-seen record per
    external_id is stable across runs.

    Parameters:
        $1: page size (LIMIT)
        $2: row offset (OFFSET)
    """
    return f"""
    SELECT {ESTIMATE_COLUMNS}
    FROM estimates
    ORDER BY id
    LIMIT $1 OFFSET $2
    """


def get_update_account_segments_query() -> str:
    """
    Generate the per-account segment write-back.

    Parameters:
        $1: account id
        $2: segment_by_year as a JSON string ({"2024": "A", ...})
        $3: revenue_segment mirror (most recent year's letter)
    """
    return """
    UPDATE accounts
    SET segment_by_year = $2::jsonb,
        revenue_segment = $3,
        updated_at = NOW()
    WHERE id = $1
    """
