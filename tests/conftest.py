# tests/conftest.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from listing_sync.adapters.clients.mlsgrid import FeedResource, RawPage
from listing_sync.db import enable_sqlite_savepoints
from listing_sync.models import Base

RUN_START = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def property_record(i: int, **overrides: Any) -> dict[str, Any]:
    rec: dict[str, Any] = {
        "ListingKey": f"K{i}",
        "ListingId": f"{1000 + i}",
        "StandardStatus": "Active",
        "ListPrice": 300000 + i,
        "StreetNumber": str(100 + i),
        "StreetName": "Main",
        "StreetSuffix": "Street",
        "City": "Austin",
        "StateOrProvince": "TX",
        "PostalCode": "78704",
        "BedroomsTotal": 3,
        "BathroomsTotalInteger": 2,
        "Latitude": 30.25,
        "Longitude": -97.75,
        "ModificationTimestamp": "2024-05-01T00:00:00Z",
    }
    rec.update(overrides)
    return rec


def media_record(i: int, listing_key: str, **overrides: Any) -> dict[str, Any]:
    rec: dict[str, Any] = {
        "MediaKey": f"M{i}",
        "ResourceRecordKey": listing_key,
        "MediaURL": f"https://photos.example.com/{listing_key}/{i}.jpg",
        "MediaCategory": "Photo",
        "Order": i,
        "ModificationTimestamp": "2024-05-01T00:00:00Z",
    }
    rec.update(overrides)
    return rec


class FakeFeed:
    """
    In-memory stand-in for MlsGridClient.fetch_page.
    `fail_on` maps a resource to (call number, exception) to blow up mid-sweep.
    """

    def __init__(
        self,
        properties: list[Any] | None = None,
        media: list[Any] | None = None,
        fail_on: dict[FeedResource, tuple[int, Exception]] | None = None,
    ) -> None:
        self.data = {
            FeedResource.property: list(properties or []),
            FeedResource.media: list(media or []),
        }
        self.fail_on = fail_on or {}
        self.calls: list[tuple[FeedResource, datetime | None, int, int]] = []
        self.closed = False

    def calls_for(self, resource: FeedResource) -> list[tuple[FeedResource, datetime | None, int, int]]:
        return [c for c in self.calls if c[0] is resource]

    async def fetch_page(self, resource: FeedResource, since: datetime | None, limit: int, offset: int) -> RawPage:
        self.calls.append((resource, since, limit, offset))
        if resource in self.fail_on:
            nth, exc = self.fail_on[resource]
            if len(self.calls_for(resource)) >= nth:
                raise exc
        rows = self.data[resource][offset: offset + limit]
        return RawPage(resource=resource, records=rows, offset=offset, limit=limit)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
async def engine():
    """
    Fresh in-memory DB per test. StaticPool makes all connections share the same
    in-memory database for the lifetime of this engine fixture.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def async_session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=True)


@pytest.fixture
def fixed_now():
    return lambda: RUN_START
