from datetime import datetime, timezone

import pytest

from listing_sync.adapters.repos.checkpoints import SyncCheckpointStore
from listing_sync.domain.types import SyncStatus, SyncType


@pytest.mark.asyncio
async def test_checkpoint_lifecycle(async_session_maker):
    wm = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    async with async_session_maker() as session:
        store = SyncCheckpointStore(session)
        assert await store.watermark(SyncType.properties) is None

        cp = await store.mark_in_progress(SyncType.properties)
        assert cp.last_sync_status == SyncStatus.in_progress
        assert cp.last_sync_message == "fetching properties"

        cp = await store.mark_success(SyncType.properties, wm, 12)
        assert cp.last_sync_message == "synced 12 properties"
        await session.commit()

    async with async_session_maker() as session:
        store = SyncCheckpointStore(session)
        assert await store.watermark(SyncType.properties) == wm

        await store.mark_error(SyncType.properties, RuntimeError("boom"))
        await session.commit()

    async with async_session_maker() as session:
        store = SyncCheckpointStore(session)
        cp = await store.get(SyncType.properties)
        assert cp.last_sync_status == SyncStatus.error
        assert cp.last_sync_message == "boom"
        assert cp.properties_synced == 12
        # an error never moves the watermark
        assert await store.watermark(SyncType.properties) == wm


@pytest.mark.asyncio
async def test_checkpoints_partitioned_by_type(async_session_maker):
    wm = datetime(2024, 6, 1, tzinfo=timezone.utc)
    async with async_session_maker() as session:
        store = SyncCheckpointStore(session)
        await store.mark_success(SyncType.media, wm, 4)
        await session.commit()

        assert await store.watermark(SyncType.properties) is None
        media = await store.get(SyncType.media)
        assert media.media_synced == 4
        assert media.properties_synced == 0
        assert [cp.sync_type for cp in await store.all()] == ["media"]
