"""
Batch jobs for the estimate engine.

Jobs:
- segment_refresh: Recompute and persist account segments for a year
- at_risk_refresh: Build the renewal-risk report

Each job fetches a complete snapshot from the record store, runs the pure
engine over it and returns a structured result. Scheduling is left to the
caller (cron, a task runner, or estimate_engine.main for a one-off run).
"""

from estimate_engine.jobs.segment_refresh import refresh_segments
from estimate_engine.jobs.at_risk_refresh import refresh_at_risk_accounts

__all__ = [
    'refresh_segments',
    'refresh_at_risk_accounts',
]
