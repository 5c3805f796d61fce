"""
Win/Loss Reporting Service

Aggregates classified estimates into win/loss statistics for the reporting
layer: overall, per account and per division.

Statistics per group:
- total, won, lost, pending counts
- decided_count = won + lost
- win_rate = won / decided_count * 100, rounded half-up to one decimal
  (0.0 when nothing is decided)
- total/won/lost/pending value using the authoritative price

Per-group results are sorted by total value, largest first. Estimates flagged
exclude_from_stats or archived are left out.

Uses pandas for the grouping, the same way feed ingestion aggregates rows.
"""

import logging
import math
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from estimate_engine.models.enums import Outcome
from estimate_engine.models.schemas import (
    AccountRecord,
    AccountWinLossStats,
    DivisionWinLossStats,
    EstimateRecord,
    WinLossStats,
)
from estimate_engine.services.deduplication import dedupe
from estimate_engine.services.revenue_allocation import (
    is_counted,
    resolve_authoritative_price,
)
from estimate_engine.services.status_classifier import classify_estimate
from estimate_engine.services.year_attribution import (
    MAX_VALID_YEAR,
    MIN_VALID_YEAR,
    Attributed,
    resolve_year,
)


logger = logging.getLogger(__name__)

FRAME_COLUMNS = ["external_id", "account_id", "division", "outcome", "value"]
UNKNOWN_ACCOUNT = "Unknown Account"
UNKNOWN_DIVISION = "Unknown"


# =============================================================================
# Frame Construction
# =============================================================================

def filter_estimates_by_year(
    estimates: Sequence[EstimateRecord],
    year: int,
    min_year: int = MIN_VALID_YEAR,
    max_year: int = MAX_VALID_YEAR
) -> List[EstimateRecord]:
    """
    Estimates that belong to `year` for reporting.

    Dedupes first, drops archived estimates, and keeps those whose resolved
    year (contract_end -> contract_start -> estimate_date -> created_date)
    equals `year`. Undated estimates are not reported under any year.
    """
    filtered: List[EstimateRecord] = []

    for estimate in dedupe(estimates):
        if estimate.archived:
            continue
        resolution = resolve_year(estimate, min_year, max_year)
        if isinstance(resolution, Attributed) and resolution.year == year:
            filtered.append(estimate)

    return filtered


def estimates_to_frame(estimates: Iterable[EstimateRecord]) -> pd.DataFrame:
    """Build a DataFrame of counted estimates with outcome and value columns."""
    rows = [
        {
            "external_id": estimate.external_id,
            "account_id": estimate.account_id,
            "division": (estimate.division or "").strip() or UNKNOWN_DIVISION,
            "outcome": classify_estimate(estimate).value,
            "value": float(resolve_authoritative_price(estimate)),
        }
        for estimate in estimates
        if is_counted(estimate)
    ]
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)


# =============================================================================
# Aggregation
# =============================================================================

def round_rate(value: float) -> float:
    """Round half-up to one decimal place."""
    return math.floor(value * 10 + 0.5) / 10


def _stats_fields(df: pd.DataFrame) -> Dict[str, float]:
    won_mask = df["outcome"] == Outcome.WON.value
    lost_mask = df["outcome"] == Outcome.LOST.value
    pending_mask = df["outcome"] == Outcome.PENDING.value

    won = int(won_mask.sum())
    lost = int(lost_mask.sum())
    decided = won + lost

    return {
        "total": int(len(df)),
        "won": won,
        "lost": lost,
        "pending": int(pending_mask.sum()),
        "decided_count": decided,
        "win_rate": round_rate(won / decided * 100) if decided else 0.0,
        "total_value": float(df["value"].sum()),
        "won_value": float(df.loc[won_mask, "value"].sum()),
        "lost_value": float(df.loc[lost_mask, "value"].sum()),
        "pending_value": float(df.loc[pending_mask, "value"].sum()),
    }


def calculate_overall_stats(estimates: Iterable[EstimateRecord]) -> WinLossStats:
    """Win/loss statistics across all counted estimates."""
    return WinLossStats(**_stats_fields(estimates_to_frame(estimates)))


def calculate_account_stats(
    estimates: Iterable[EstimateRecord],
    accounts: Optional[Iterable[AccountRecord]] = None
) -> List[AccountWinLossStats]:
    """
    Win/loss statistics per account, largest total value first.

    Estimates with no account_id are left out.
    """
    names = {account.id: account.name for account in accounts or []}
    df = estimates_to_frame(estimates)
    df = df[df["account_id"].notna()]

    results = [
        AccountWinLossStats(
            account_id=str(account_id),
            account_name=names.get(account_id) or UNKNOWN_ACCOUNT,
            **_stats_fields(group),
        )
        for account_id, group in df.groupby("account_id", sort=False)
    ]
    results.sort(key=lambda stats: stats.total_value, reverse=True)
    return results


def calculate_division_stats(estimates: Iterable[EstimateRecord]) -> List[DivisionWinLossStats]:
    """Win/loss statistics per division, largest total value first."""
    df = estimates_to_frame(estimates)

    results = [
        DivisionWinLossStats(division=str(division), **_stats_fields(group))
        for division, group in df.groupby("division", sort=False)
    ]
    results.sort(key=lambda stats: stats.total_value, reverse=True)

    logger.debug(f"Computed win/loss stats for {len(results)} divisions")
    return results
