"""
At-Risk Accounts Job

Builds the renewal-risk report from a fresh record store snapshot: every
account holding won work that expires within the threshold window and has no
later renewal at the same division and address.

The report is returned to the caller; delivering it (email, dashboards) is the
notification layer's concern.

Usage:
    from estimate_engine.jobs.at_risk_refresh import refresh_at_risk_accounts

    report = await refresh_at_risk_accounts()
    for account in report.accounts:
        ...
"""

import logging
from datetime import date, datetime
from typing import Optional, Union

from estimate_engine.core.config import get_settings
from estimate_engine.models.schemas import AtRiskReport
from estimate_engine.services.engine import assess_renewal_risk
from estimate_engine.services.record_store import fetch_all_accounts, fetch_all_estimates


logger = logging.getLogger(__name__)


async def refresh_at_risk_accounts(
    today: Optional[Union[date, datetime]] = None
) -> AtRiskReport:
    """
    Fetch the snapshot and compute at-risk accounts.

    Args:
        today: Reference date (default: now in the business timezone)

    Returns:
        AtRiskReport with account summaries and duplicate warnings.

    Raises:
        asyncpg.PostgresError: If the snapshot cannot be fetched.
    """
    settings = get_settings()

    accounts = await fetch_all_accounts(settings.record_page_size)
    estimates = await fetch_all_estimates(settings.record_page_size)

    report = assess_renewal_risk(
        accounts,
        estimates,
        today=today,
        threshold_days=settings.renewal_threshold_days,
        timezone=settings.business_timezone,
    )

    if report.duplicate_warnings:
        logger.warning(
            f"{len(report.duplicate_warnings)} duplicate at-risk renewals need review"
        )

    return report


__all__ = ['refresh_at_risk_accounts']
