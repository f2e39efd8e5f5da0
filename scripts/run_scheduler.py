from __future__ import annotations

import asyncio
import logging

from listing_sync.adapters.clients.mlsgrid import create_mlsgrid_client
from listing_sync.db import engine as db_engine
from listing_sync.jobs.scheduler import build_scheduler
from listing_sync.models import Base
from listing_sync.service_layer.sync_engine import IncrementalSyncEngine


def _quiet_logging() -> None:
    # Root defaults
    logging.basicConfig(
        level=logging.INFO,
        format="%(levelname)s:%(name)s:%(message)s",
    )

    # Quiet the usual offenders
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.WARNING)


async def main() -> None:
    _quiet_logging()
    log = logging.getLogger(__name__)

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    client = create_mlsgrid_client()
    if client is None:
        log.error("MLS Grid is not configured; nothing to schedule")
        return

    sync_engine = IncrementalSyncEngine(client)
    scheduler = build_scheduler(sync_engine)
    scheduler.start()
    log.info("Scheduler started")

    try:
        # first pass right away instead of waiting a full interval
        await sync_engine.run()
        while True:
            await asyncio.sleep(3600)
    finally:
        scheduler.shutdown()
        await client.aclose()
        log.info("Scheduler stopped")


if __name__ == "__main__":
    asyncio.run(main())
