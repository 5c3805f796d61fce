"""
Renewal Risk Detector Service

Flags won contracts that are about to expire without a renewal on the books.

Detection Rules (per account):
1. Candidates are WON, counted (not excluded, not archived) estimates with a
   contract_end.
2. days_until = contract_end - today, where today is the calendar date in the
   business timezone. Candidates with 0 <= days_until <= threshold are at risk.
   Contracts that already lapsed (days_until < 0) are never reported.
3. Renewal suppression: an at-risk candidate is dropped when another candidate
   on the same account has the same normalised division and address, a
   strictly later contract_end, and is itself beyond the threshold. That later
   contract is the renewal. Missing division or address on either side never
   matches, so the candidate stays at risk.
4. Duplicate diagnostic: more than one surviving at-risk estimate for the same
   normalised division and address produces a DuplicateRenewalWarning.

Normalisation is lowercase, trimmed, with internal whitespace collapsed.
"""

import logging
import re
from collections import defaultdict
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd

from estimate_engine.models.schemas import (
    AccountRecord,
    AtRiskAccount,
    AtRiskEstimate,
    AtRiskReport,
    DuplicateRenewalWarning,
    EstimateRecord,
    RenewalRiskResult,
)
from estimate_engine.services.revenue_allocation import is_counted
from estimate_engine.services.status_classifier import is_won


logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD_DAYS = 180
DEFAULT_BUSINESS_TIMEZONE = "America/Edmonton"

_WHITESPACE = re.compile(r"\s+")

MatchKey = Tuple[str, str]


# =============================================================================
# Date and Key Helpers
# =============================================================================

def business_today(
    today: Optional[Union[date, datetime]] = None,
    timezone: str = DEFAULT_BUSINESS_TIMEZONE
) -> date:
    """
    Calendar date in the business timezone.

    Args:
        today: A date (returned as-is), a datetime (converted to the business
            timezone when aware), or None for the current time.
        timezone: IANA timezone name.
    """
    if today is None:
        return pd.Timestamp.now(tz=timezone).date()
    if isinstance(today, datetime):
        stamp = pd.Timestamp(today)
        if stamp.tzinfo is not None:
            stamp = stamp.tz_convert(timezone)
        return stamp.date()
    return today


def normalize_match_text(value: Optional[str]) -> str:
    if not value:
        return ""
    return _WHITESPACE.sub(" ", value.strip().lower())


def match_key(estimate: EstimateRecord) -> Optional[MatchKey]:
    """Normalised (division, address), or None when either is missing."""
    division = normalize_match_text(estimate.division)
    address = normalize_match_text(estimate.address)
    if not division or not address:
        return None
    return division, address


def renewal_candidates(estimates: Iterable[EstimateRecord]) -> List[EstimateRecord]:
    """Won, counted estimates with a contract end."""
    return [
        estimate for estimate in estimates
        if estimate.contract_end is not None and is_counted(estimate) and is_won(estimate)
    ]


# =============================================================================
# Renewal Date
# =============================================================================

def calculate_renewal_date(estimates: Iterable[EstimateRecord]) -> Optional[date]:
    """Latest contract_end among won, counted estimates."""
    ends = [estimate.contract_end for estimate in renewal_candidates(estimates)]
    return max(ends) if ends else None


def days_until_renewal(renewal_date: Optional[date], today: date) -> Optional[int]:
    if renewal_date is None:
        return None
    return (renewal_date - today).days


def is_renewal_within_days(
    renewal_date: Optional[date],
    today: date,
    days: int = DEFAULT_THRESHOLD_DAYS
) -> bool:
    """True when the renewal falls between today and `days` from now, inclusive."""
    remaining = days_until_renewal(renewal_date, today)
    return remaining is not None and 0 <= remaining <= days


# =============================================================================
# Detection
# =============================================================================

def _is_suppressed(
    candidate: EstimateRecord,
    others: Sequence[EstimateRecord],
    today: date,
    threshold_days: int
) -> bool:
    key = match_key(candidate)
    if key is None:
        return False

    for other in others:
        if other is candidate or match_key(other) != key:
            continue
        if other.contract_end <= candidate.contract_end:
            continue
        if (other.contract_end - today).days > threshold_days:
            return True

    return False


def find_at_risk(
    account_estimates: Sequence[EstimateRecord],
    threshold_days: int = DEFAULT_THRESHOLD_DAYS,
    today: Optional[Union[date, datetime]] = None,
    timezone: str = DEFAULT_BUSINESS_TIMEZONE
) -> RenewalRiskResult:
    """
    Find an account's won contracts expiring inside the threshold window.

    Args:
        account_estimates: Deduplicated estimates belonging to one account
        threshold_days: Window size in days (inclusive)
        today: Reference date; None means now in the business timezone
        timezone: Business timezone used to normalise `today`

    Returns:
        RenewalRiskResult with at-risk estimates sorted soonest first, the ids
        suppressed by a later renewal, and duplicate warnings.
    """
    today = business_today(today, timezone)
    candidates = renewal_candidates(account_estimates)

    at_risk: List[AtRiskEstimate] = []
    suppressed: List[Optional[str]] = []
    groups: Dict[MatchKey, List[AtRiskEstimate]] = defaultdict(list)

    for candidate in candidates:
        days_until = (candidate.contract_end - today).days
        if days_until < 0 or days_until > threshold_days:
            continue

        if _is_suppressed(candidate, candidates, today, threshold_days):
            suppressed.append(candidate.external_id)
            continue

        item = AtRiskEstimate(
            account_id=candidate.account_id,
            estimate_external_id=candidate.external_id,
            days_until_renewal=days_until,
            contract_end=candidate.contract_end,
            department=candidate.division,
            address=candidate.address,
        )
        at_risk.append(item)

        key = match_key(candidate)
        if key is not None:
            groups[key].append(item)

    warnings: List[DuplicateRenewalWarning] = []
    for items in groups.values():
        if len(items) < 2:
            continue
        warning = DuplicateRenewalWarning(
            account_id=items[0].account_id,
            department=items[0].department,
            address=items[0].address,
            estimate_external_ids=[item.estimate_external_id for item in items],
        )
        logger.warning(
            f"Account {warning.account_id} has {len(items)} at-risk estimates for "
            f"{warning.department} at {warning.address}: {warning.estimate_external_ids}"
        )
        warnings.append(warning)

    at_risk.sort(key=lambda item: item.days_until_renewal)

    return RenewalRiskResult(
        at_risk=at_risk,
        suppressed_external_ids=suppressed,
        duplicate_warnings=warnings,
    )


def find_at_risk_accounts(
    accounts: Sequence[AccountRecord],
    estimates: Iterable[EstimateRecord],
    today: Optional[Union[date, datetime]] = None,
    threshold_days: int = DEFAULT_THRESHOLD_DAYS,
    timezone: str = DEFAULT_BUSINESS_TIMEZONE
) -> AtRiskReport:
    """
    Account-level at-risk summary.

    Archived accounts and accounts snoozed past today are skipped. Each
    remaining account with at least one at-risk estimate is reported with its
    soonest-expiring estimate as the renewal date.

    Returns:
        AtRiskReport with accounts sorted by days until renewal.
    """
    today = business_today(today, timezone)

    by_account: Dict[str, List[EstimateRecord]] = defaultdict(list)
    for estimate in estimates:
        if estimate.account_id:
            by_account[estimate.account_id].append(estimate)

    summaries: List[AtRiskAccount] = []
    all_at_risk: List[AtRiskEstimate] = []
    all_warnings: List[DuplicateRenewalWarning] = []

    for account in accounts:
        if account.archived:
            continue
        if account.snoozed_until is not None and account.snoozed_until > today:
            logger.debug(f"Account {account.id} snoozed until {account.snoozed_until}")
            continue

        result = find_at_risk(by_account.get(account.id, []), threshold_days, today, timezone)
        if not result.at_risk:
            continue

        soonest = result.at_risk[0]
        summaries.append(AtRiskAccount(
            account_id=account.id,
            account_name=account.name,
            renewal_date=soonest.contract_end,
            days_until_renewal=soonest.days_until_renewal,
            expiring_estimate_external_id=soonest.estimate_external_id,
            department=soonest.department,
            address=soonest.address,
            has_duplicates=bool(result.duplicate_warnings),
            at_risk_estimates=result.at_risk,
        ))
        all_at_risk.extend(result.at_risk)
        all_warnings.extend(result.duplicate_warnings)

    summaries.sort(key=lambda summary: summary.days_until_renewal)
    logger.info(
        f"Found {len(summaries)} at-risk accounts ({len(all_at_risk)} estimates, "
        f"{len(all_warnings)} duplicate warnings) as of {today}"
    )

    return AtRiskReport(
        as_of=today,
        threshold_days=threshold_days,
        accounts=summaries,
        at_risk_estimates=all_at_risk,
        duplicate_warnings=all_warnings,
    )
