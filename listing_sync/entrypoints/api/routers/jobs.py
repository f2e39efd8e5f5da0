# listing_sync/entrypoints/api/routers/jobs.py
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_sync_engine, require_api_key
from ....adapters.repos.checkpoints import SyncCheckpointStore
from ....db import get_session
from ....errors import AuthenticationError, RateLimitExceeded, SyncError
from ....schemas import CheckpointOut, SyncStatusOut
from ....service_layer.sync_engine import IncrementalSyncEngine

router = APIRouter(tags=["jobs"])


@router.post("/jobs/sync", dependencies=[Depends(require_api_key)])
async def jobs_sync(engine: IncrementalSyncEngine = Depends(get_sync_engine)) -> dict[str, Any]:
    try:
        report = await engine.run()
    except RateLimitExceeded as e:
        raise HTTPException(status_code=429, detail=str(e)) from e
    except AuthenticationError as e:
        raise HTTPException(status_code=502, detail=f"feed rejected credentials: {e}") from e
    except SyncError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
    return report.as_dict()


@router.get("/sync/status", response_model=SyncStatusOut, dependencies=[Depends(require_api_key)])
async def sync_status(
    engine: IncrementalSyncEngine = Depends(get_sync_engine),
    session: AsyncSession = Depends(get_session),
) -> SyncStatusOut:
    rows = await SyncCheckpointStore(session).all()
    return SyncStatusOut(
        state=engine.state.value,
        feed_configured=engine.feed is not None,
        checkpoints=[
            CheckpointOut(
                sync_type=cp.sync_type,
                last_sync_timestamp=cp.last_sync_timestamp,
                last_sync_status=cp.last_sync_status.value if cp.last_sync_status else None,
                last_sync_message=cp.last_sync_message,
                properties_synced=cp.properties_synced or 0,
                media_synced=cp.media_synced or 0,
                updated_at=cp.updated_at,
            )
            for cp in rows
        ],
        last_run=engine.last_report.as_dict() if engine.last_report else None,
    )
