"""
Batch entry point for the estimate engine.

Runs the segment refresh and the at-risk report once against the configured
record store, then exits. Scheduling (cron, a task runner) is left to the
deployment.

Usage:
    python -m estimate_engine.main
    python -m estimate_engine.main --year 2025
"""

import argparse
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, List, Optional

from estimate_engine.core.database import init_db, close_db
from estimate_engine.jobs.at_risk_refresh import refresh_at_risk_accounts
from estimate_engine.jobs.segment_refresh import refresh_segments

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def database_lifespan() -> AsyncGenerator[None, None]:
    """
    Open the connection pool for the duration of a batch run.

    On entry:
        - Initialize database connection pool
    On exit:
        - Close database connection pool
    """
    logger.info("Estimate engine batch starting")
    await init_db()
    logger.info("Database connection pool initialized")

    try:
        yield
    finally:
        try:
            await close_db()
            logger.info("Database connection pool closed")
        except Exception as e:
            logger.error(f"Error closing database pool: {e}")


async def run_once(year: Optional[int] = None) -> int:
    """
    Run both jobs once.

    Returns:
        Process exit code: 0 when every account persisted, 1 otherwise.
    """
    async with database_lifespan():
        summary = await refresh_segments(year=year)
        report = await refresh_at_risk_accounts()

    logger.info(
        f"Segments {summary.year}: {summary.succeeded}/{summary.accounts_processed} persisted; "
        f"{len(report.accounts)} accounts at risk as of {report.as_of}"
    )
    return 0 if summary.failed == 0 else 1


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the estimate engine batch once.")
    parser.add_argument(
        "--year",
        type=int,
        default=None,
        help="Segment year to compute (default: current segment year)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    return asyncio.run(run_once(year=args.year))


if __name__ == "__main__":
    raise SystemExit(main())
