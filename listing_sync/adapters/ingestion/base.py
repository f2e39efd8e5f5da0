# listing_sync/adapters/ingestion/base.py
from __future__ import annotations

from datetime import datetime
from typing import Protocol

from ..clients.mlsgrid import FeedResource, RawPage


class FeedClient(Protocol):
    """What the sync engine needs from the replication feed (MlsGridClient, or a fake in tests)."""

    async def fetch_page(
        self,
        resource: FeedResource,
        since: datetime | None,
        limit: int,
        offset: int,
    ) -> RawPage:
        raise NotImplementedError
