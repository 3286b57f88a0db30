"""Worker process for scheduled leave jobs.

Runs an asyncio loop that, once per interval (daily by default), resets
balances on the first day of a fiscal cycle and then recomputes every
employee's leave balances.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from leave_accrual.config import get_settings
from leave_accrual.db import get_session_factory
from leave_accrual.services.cycle import is_cycle_start, local_now

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from leave_accrual.services.recalculation import RecalculationResult, ResetResult

logger = logging.getLogger(__name__)


@dataclass
class ScheduledRunResult:
    """Outcome of one worker tick. A job that failed leaves its field as None."""

    reset: ResetResult | None = None
    recalculation: RecalculationResult | None = None


async def run_scheduled_jobs(
    session_factory: async_sessionmaker[AsyncSession],
    now: datetime,
) -> ScheduledRunResult:
    """Run the jobs due at ``now``. Each job gets its own session; a failure is logged, not raised."""
    from leave_accrual.services.recalculation import accrue_monthly_leave, reset_leave_cycle

    outcome = ScheduledRunResult()

    # Fiscal year reset (only fires on July 1)
    if is_cycle_start(now.date()):
        logger.info("Starting leave cycle reset for %s", now.date())
        try:
            async with session_factory() as session:
                outcome.reset = await reset_leave_cycle(session, now)
            logger.info(
                "Leave cycle reset complete: processed=%d updated=%d",
                outcome.reset.processed,
                outcome.reset.updated,
            )
        except Exception:
            logger.exception("Leave cycle reset failed for %s", now.date())

    try:
        async with session_factory() as session:
            outcome.recalculation = await accrue_monthly_leave(session, now)
        logger.info(
            "Leave accrual run complete for %s: processed=%d updated=%d",
            now.date(),
            outcome.recalculation.processed,
            outcome.recalculation.updated,
        )
    except Exception:
        logger.exception("Leave accrual run failed for %s", now.date())

    return outcome


async def run_accrual_loop() -> None:
    """Main worker loop that runs the scheduled leave jobs every interval."""
    settings = get_settings()
    logger.info("Leave accrual worker started (interval=%ds)", settings.worker_interval_seconds)
    session_factory = get_session_factory()

    while True:
        await run_scheduled_jobs(session_factory, local_now())
        await asyncio.sleep(settings.worker_interval_seconds)


def main() -> None:
    """Entry point for the worker process."""
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    asyncio.run(run_accrual_loop())


if __name__ == "__main__":
    main()
