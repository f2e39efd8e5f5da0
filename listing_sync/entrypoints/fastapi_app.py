# listing_sync/entrypoints/fastapi_app.py
from __future__ import annotations

from fastapi import FastAPI

from ..adapters.clients.mlsgrid import create_mlsgrid_client
from ..db import engine
from ..models import Base
from ..service_layer.sync_engine import IncrementalSyncEngine
from .api.routers import health, jobs, listings


def create_app(sync_engine: IncrementalSyncEngine | None = None) -> FastAPI:
    app = FastAPI(title="Listing Sync - Canonical Listing Store")

    # caller-owned engine; built from settings when none is handed in
    app.state.sync_engine = sync_engine or IncrementalSyncEngine(create_mlsgrid_client())

    @app.on_event("startup")
    async def _startup() -> None:
        # Single place where DB tables are created in dev.
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        feed = app.state.sync_engine.feed
        if feed is not None and hasattr(feed, "aclose"):
            await feed.aclose()

    app.include_router(health.router)
    app.include_router(jobs.router)
    app.include_router(listings.router)

    return app
