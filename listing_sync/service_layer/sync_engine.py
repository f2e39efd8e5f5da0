# listing_sync/service_layer/sync_engine.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..adapters.clients.mlsgrid import FeedResource
from ..adapters.ingestion.base import FeedClient
from ..adapters.repos.checkpoints import SyncCheckpointStore
from ..config import settings
from ..db import AsyncSessionLocal
from ..domain.types import MlsRecord, SearchApiRecord, SyncType
from .reconcile import BatchReport, Reconciler, RecordOutcome

log = logging.getLogger(__name__)

RecordHandler = Callable[[Reconciler, Any], Awaitable[RecordOutcome]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SyncState(str, Enum):
    idle = "idle"
    running = "running"
    success = "success"
    error = "error"


@dataclass
class PageCursor:
    """Where the next fetch starts. A short page means the feed is drained."""

    offset: int = 0
    limit: int = 100
    exhausted: bool = False

    def advance(self, size: int) -> None:
        self.offset += size
        if size < self.limit:
            self.exhausted = True


@dataclass
class ResourceSyncResult:
    sync_type: SyncType
    since: datetime | None = None
    pages: int = 0
    report: BatchReport = field(default_factory=BatchReport)

    def as_dict(self) -> dict[str, Any]:
        return {
            "sync_type": self.sync_type.value,
            "since": self.since.isoformat() if self.since else None,
            "pages": self.pages,
            **self.report.as_dict(),
        }


@dataclass
class SyncRunReport:
    skipped: bool = False
    reason: str | None = None
    started_at: datetime | None = None
    properties: ResourceSyncResult | None = None
    media: ResourceSyncResult | None = None
    properties_error: str | None = None
    media_error: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "skipped": self.skipped,
            "reason": self.reason,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "properties": self.properties.as_dict() if self.properties else None,
            "media": self.media.as_dict() if self.media else None,
            "properties_error": self.properties_error,
            "media_error": self.media_error,
        }


async def _handle_property(reconciler: Reconciler, record: Any) -> RecordOutcome:
    return await reconciler.reconcile_record(MlsRecord(payload=record))


async def _handle_media(reconciler: Reconciler, record: Any) -> RecordOutcome:
    return await reconciler.reconcile_media(record)


class IncrementalSyncEngine:
    """
    Pulls everything modified since the last good watermark, page by page, and
    reconciles it into the canonical store.

    One instance per process, owned by whoever triggers it (scheduler, HTTP app,
    script). A run() while another is in flight returns a skipped report.
    """

    def __init__(
        self,
        feed: FeedClient | None,
        session_factory: async_sessionmaker[AsyncSession] = AsyncSessionLocal,
        *,
        page_size: int | None = None,
        threshold: float | None = None,
        retain_raw: bool | None = None,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.feed = feed
        self.session_factory = session_factory
        self.page_size = int(page_size or settings.SYNC_PAGE_SIZE)
        self.threshold = threshold
        self.retain_raw = retain_raw
        self._now = now

        self.state = SyncState.idle
        self.last_report: SyncRunReport | None = None

    @property
    def running(self) -> bool:
        return self.state is SyncState.running

    def _reconciler(self, session: AsyncSession) -> Reconciler:
        return Reconciler(session, threshold=self.threshold, retain_raw=self.retain_raw, now=self._now)

    async def run(self) -> SyncRunReport:
        # check-and-set with no await in between
        if self.state is SyncState.running:
            log.info("sync already running; skipping this trigger")
            return SyncRunReport(skipped=True, reason="already_running")
        if self.feed is None:
            log.warning("sync requested but no feed client is configured")
            return SyncRunReport(skipped=True, reason="feed_not_configured")
        self.state = SyncState.running

        started_at = self._now()
        report = SyncRunReport(started_at=started_at)
        fatal: Exception | None = None
        try:
            try:
                report.properties = await self.sync_properties(started_at)
            except Exception as e:
                fatal = e
                report.properties_error = str(e)

            # media is enrichment; it runs even when properties failed and never fails the run
            try:
                report.media = await self.sync_media(started_at)
            except Exception as e:
                log.warning("media sync failed: %s", e)
                report.media_error = str(e)
        finally:
            self.state = SyncState.error if fatal is not None else SyncState.success
            self.last_report = report

        if fatal is not None:
            raise fatal

        props = report.properties
        log.info(
            "sync finished: properties created=%s updated=%s unchanged=%s skipped=%s",
            props.report.created if props else 0,
            props.report.updated if props else 0,
            props.report.unchanged if props else 0,
            props.report.skipped if props else 0,
        )
        return report

    async def sync_properties(self, started_at: datetime | None = None) -> ResourceSyncResult:
        return await self._sync_resource(
            SyncType.properties, FeedResource.property, started_at or self._now(), _handle_property
        )

    async def sync_media(self, started_at: datetime | None = None) -> ResourceSyncResult:
        return await self._sync_resource(SyncType.media, FeedResource.media, started_at or self._now(), _handle_media)

    async def _sync_resource(
        self,
        sync_type: SyncType,
        resource: FeedResource,
        started_at: datetime,
        handle: RecordHandler,
    ) -> ResourceSyncResult:
        if self.feed is None:
            raise RuntimeError("feed client is not configured")

        async with self.session_factory() as session:
            store = SyncCheckpointStore(session)
            since = await store.watermark(sync_type)
            await store.mark_in_progress(sync_type)
            await session.commit()

            result = ResourceSyncResult(sync_type=sync_type, since=since)
            reconciler = self._reconciler(session)
            cursor = PageCursor(limit=self.page_size)
            log.info("%s sync: starting from %s", sync_type.value, since.isoformat() if since else "the beginning")

            try:
                while not cursor.exhausted:
                    page = await self.feed.fetch_page(resource, since, cursor.limit, cursor.offset)
                    batch = BatchReport()
                    for record in page.records:
                        batch.record(await handle(reconciler, record))
                    await session.commit()

                    result.pages += 1
                    result.report.absorb(batch)
                    cursor.advance(page.size)
                    log.info(
                        "%s sync: page %s offset=%s size=%s created=%s updated=%s skipped=%s",
                        sync_type.value,
                        result.pages,
                        page.offset,
                        page.size,
                        batch.created,
                        batch.updated,
                        batch.skipped,
                    )

                await store.mark_success(sync_type, started_at, result.report.synced)
                await session.commit()
            except Exception as e:
                await session.rollback()
                await store.mark_error(sync_type, e)
                await session.commit()
                log.error("%s sync failed after %s pages: %s", sync_type.value, result.pages, e)
                raise

        return result

    async def reconcile_search_results(self, records: list[SearchApiRecord | dict[str, Any]]) -> BatchReport:
        """Run search API results through the same per-record pipeline. No checkpoint involved."""
        raws = [r if isinstance(r, SearchApiRecord) else SearchApiRecord(payload=r) for r in records]
        async with self.session_factory() as session:
            report = await self._reconciler(session).reconcile_batch(raws)
            await session.commit()
        log.info(
            "search results reconciled: created=%s updated=%s unchanged=%s skipped=%s",
            report.created,
            report.updated,
            report.unchanged,
            report.skipped,
        )
        return report
