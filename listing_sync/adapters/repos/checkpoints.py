# listing_sync/adapters/repos/checkpoints.py
from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.types import SyncStatus, SyncType
from ...models import SyncCheckpoint, utcnow

log = logging.getLogger(__name__)


def _aware(dt: datetime | None) -> datetime | None:
    if dt is None:
        return None
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


class SyncCheckpointStore:
    """
    Watermark bookkeeping, one row per sync type.
    Rows are created on first touch and never deleted. Callers commit.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, sync_type: SyncType) -> SyncCheckpoint | None:
        q = select(SyncCheckpoint).where(SyncCheckpoint.sync_type == SyncType(sync_type).value)
        return (await self.session.execute(q)).scalars().first()

    async def get_or_create(self, sync_type: SyncType) -> SyncCheckpoint:
        cp = await self.get(sync_type)
        if cp is None:
            cp = SyncCheckpoint(sync_type=SyncType(sync_type).value, properties_synced=0, media_synced=0)
            self.session.add(cp)
            await self.session.flush()
        return cp

    async def watermark(self, sync_type: SyncType) -> datetime | None:
        cp = await self.get(sync_type)
        return _aware(cp.last_sync_timestamp) if cp else None

    async def all(self) -> list[SyncCheckpoint]:
        q = select(SyncCheckpoint).order_by(SyncCheckpoint.sync_type)
        return list((await self.session.execute(q)).scalars().all())

    async def mark_in_progress(self, sync_type: SyncType) -> SyncCheckpoint:
        cp = await self.get_or_create(sync_type)
        cp.last_sync_status = SyncStatus.in_progress
        cp.last_sync_message = f"fetching {cp.sync_type}"
        cp.updated_at = utcnow()
        await self.session.flush()
        return cp

    async def mark_success(self, sync_type: SyncType, watermark: datetime, synced: int) -> SyncCheckpoint:
        cp = await self.get_or_create(sync_type)
        cp.last_sync_timestamp = watermark
        cp.last_sync_status = SyncStatus.success
        cp.last_sync_message = f"synced {int(synced)} {cp.sync_type}"
        if SyncType(sync_type) is SyncType.media:
            cp.media_synced = int(synced)
        else:
            cp.properties_synced = int(synced)
        cp.updated_at = utcnow()
        await self.session.flush()
        log.info("checkpoint %s: success, watermark=%s synced=%s", cp.sync_type, watermark.isoformat(), synced)
        return cp

    async def mark_error(self, sync_type: SyncType, err: BaseException | str) -> SyncCheckpoint:
        """Watermark is left where it was."""
        cp = await self.get_or_create(sync_type)
        cp.last_sync_status = SyncStatus.error
        cp.last_sync_message = str(err)[:2000]
        cp.updated_at = utcnow()
        await self.session.flush()
        return cp
