# listing_sync/jobs/scheduler.py
from __future__ import annotations

import asyncio
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from ..config import settings
from ..errors import SyncError
from ..service_layer.sync_engine import IncrementalSyncEngine

log = logging.getLogger(__name__)


async def run_sync_once(engine: IncrementalSyncEngine) -> None:
    """
    One scheduled tick. Failures are already recorded on the checkpoint;
    the next tick retries the same window.
    """
    try:
        report = await engine.run()
    except SyncError as e:
        log.warning("scheduled sync failed (%s): %s", type(e).__name__, e)
        return
    if report.skipped:
        log.info("scheduled sync skipped: %s", report.reason)


def build_scheduler(engine: IncrementalSyncEngine, *, minutes: int | None = None) -> AsyncIOScheduler:
    sched = AsyncIOScheduler()

    sched.add_job(
        lambda: asyncio.create_task(run_sync_once(engine)),
        "interval",
        minutes=int(minutes or settings.SYNC_INTERVAL_MINUTES),
        id="listing_sync",
        max_instances=1,
        coalesce=True,
    )

    return sched
