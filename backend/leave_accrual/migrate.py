"""One-off migration: recompute every employee's leave balances from source data.

Usage:
    python -m leave_accrual.migrate                      # as of now
    python -m leave_accrual.migrate --as-of 2025-06-30   # as of a given day

Exits 0 on success and 1 if the recomputation or the write-back fails.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import date, datetime
from typing import TYPE_CHECKING

from leave_accrual.config import get_settings
from leave_accrual.db import dispose_engine, get_session_factory
from leave_accrual.services.recalculation import recalculate_leave_balances_for_cycle

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from leave_accrual.services.recalculation import RecalculationResult

logger = logging.getLogger(__name__)


async def migrate_leave_system(
    now: date | datetime | None = None,
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> RecalculationResult:
    """Recompute and persist all balances, reading every row fresh from the database."""
    factory = session_factory or get_session_factory()
    async with factory() as session:
        result = await recalculate_leave_balances_for_cycle(session, now, refresh=True)

    logger.info(
        "Processed %d employees; updated %d; cycle %s - %s.",
        result.processed,
        result.updated,
        result.cycle_start.isoformat(),
        result.cycle_end.isoformat(),
    )
    return result


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Recompute leave balances for the current fiscal cycle")
    parser.add_argument(
        "--as-of",
        dest="as_of",
        type=date.fromisoformat,
        default=None,
        help="Reference day (YYYY-MM-DD); defaults to now in the configured timezone",
    )
    return parser.parse_args(argv)


async def _run(as_of: date | None) -> None:
    try:
        await migrate_leave_system(as_of)
    finally:
        await dispose_engine()


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the migration script. Returns the process exit code."""
    args = _parse_args(argv)
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    try:
        asyncio.run(_run(args.as_of))
    except Exception:
        logger.exception("Leave system migration failed")
        return 1
    logger.info("Leave system migration complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
