"""Reputation reconciliation worker.

Walks users in id order, batch by batch, and recomputes each user's
reputation from the vote ledger and acceptance bonuses. Any user whose
stored counter disagrees is corrected with an atomic increment and logged.

Each batch is its own transaction, so a failing batch is rolled back and
reported without blocking the rest of the sweep.
"""

import asyncio
import uuid
from typing import Optional

import structlog
from sqlalchemy import select

from askdesk.config import settings
from askdesk.database import async_session_factory
from askdesk.logging_config import configure_logging
from askdesk.metrics import reputation_drift_corrections
from askdesk.models.user import User
from askdesk.services.reputation import reconcile_reputation

log = structlog.get_logger(__name__)


async def _next_batch(session, after: Optional[uuid.UUID], batch_size: int) -> list[uuid.UUID]:
    stmt = select(User.id).order_by(User.id).limit(batch_size)
    if after is not None:
        stmt = stmt.where(User.id > after)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def run_reconciliation_cycle(
    session_factory=async_session_factory,
    batch_size: Optional[int] = None,
) -> dict:
    """Execute one full reconciliation sweep over all users.

    Returns stats dict for the audit log.
    """
    batch_size = batch_size or settings.reconciliation_batch_size
    stats = {"users_checked": 0, "users_corrected": 0, "points_corrected": 0, "failed_batches": 0}

    after: Optional[uuid.UUID] = None
    while True:
        async with session_factory() as session:
            user_ids = await _next_batch(session, after, batch_size)
            if not user_ids:
                break
            after = user_ids[-1]

            try:
                drifts = await reconcile_reputation(session, user_ids)
                await session.commit()
            except Exception:
                await session.rollback()
                log.error("reconciliation_batch_failed", first_user_id=str(user_ids[0]), exc_info=True)
                stats["failed_batches"] += 1
                continue

        stats["users_checked"] += len(user_ids)
        stats["users_corrected"] += len(drifts)
        stats["points_corrected"] += sum(abs(drift.correction) for drift in drifts)
        reputation_drift_corrections.inc(len(drifts))

    if stats["failed_batches"]:
        log.warning("reconciliation_partial", stats=stats)
    else:
        log.info("reconciliation_completed", stats=stats)
    return stats


async def reconciliation_worker_loop():
    """Background loop that runs reconciliation on a configurable interval."""
    interval = settings.reconciliation_interval_hours * 3600
    log.info("reconciliation_worker_started", interval_hours=settings.reconciliation_interval_hours)

    while True:
        try:
            await run_reconciliation_cycle()
        except Exception:
            log.error("reconciliation_worker_error", exc_info=True)
        await asyncio.sleep(interval)


async def run_worker() -> None:
    configure_logging()
    await reconciliation_worker_loop()


if __name__ == "__main__":
    asyncio.run(run_worker())
