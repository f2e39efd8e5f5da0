import httpx
import pytest

from listing_sync.config import settings
from listing_sync.db import get_session
from listing_sync.entrypoints.fastapi_app import create_app
from listing_sync.errors import RateLimitExceeded
from listing_sync.adapters.clients.mlsgrid import FeedResource
from listing_sync.service_layer.sync_engine import IncrementalSyncEngine

from conftest import FakeFeed, property_record


@pytest.fixture
def make_client(async_session_maker, fixed_now):
    def _make(feed: FakeFeed) -> httpx.AsyncClient:
        app = create_app(IncrementalSyncEngine(feed, async_session_maker, now=fixed_now))

        async def _session():
            async with async_session_maker() as session:
                yield session

        app.dependency_overrides[get_session] = _session
        return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")

    return _make


@pytest.mark.asyncio
async def test_sync_then_lookup(make_client):
    feed = FakeFeed(properties=[property_record(1), property_record(2)])
    async with make_client(feed) as client:
        assert (await client.get("/health")).json() == {"status": "ok"}

        r = await client.post("/jobs/sync")
        assert r.status_code == 200
        assert r.json()["properties"]["created"] == 2

        r = await client.get("/listings/mls:1001")
        assert r.status_code == 200
        body = r.json()
        assert body["primary_source"] == "MLS"
        assert body["source_ids"] == {"MLS": "K1"}
        assert body["standard_status"] == "Active"
        assert body["raw"] is None

        r = await client.get("/listings/mls:1001", params={"raw": "true"})
        assert r.json()["raw"]["MLS"]["ListingKey"] == "K1"

        r = await client.get("/listings", params={"source": "MLS", "native_id": "K2"})
        assert [x["id"] for x in r.json()] == ["mls:1002"]

        r = await client.get("/listings", params={"address_key": "101|main st|austin|tx|78704"})
        assert [x["id"] for x in r.json()] == ["mls:1001"]

        assert (await client.get("/listings/mls:404")).status_code == 404
        assert (await client.get("/listings")).status_code == 400


@pytest.mark.asyncio
async def test_sync_status(make_client):
    async with make_client(FakeFeed(properties=[property_record(1)])) as client:
        await client.post("/jobs/sync")
        r = await client.get("/sync/status")

    body = r.json()
    assert body["state"] == "success"
    assert body["feed_configured"] is True
    by_type = {cp["sync_type"]: cp for cp in body["checkpoints"]}
    assert by_type["properties"]["last_sync_status"] == "success"
    assert by_type["properties"]["properties_synced"] == 1
    assert body["last_run"]["properties"]["created"] == 1


@pytest.mark.asyncio
async def test_rate_limit_maps_to_429(make_client):
    feed = FakeFeed(fail_on={FeedResource.property: (1, RateLimitExceeded("Hourly rate limit exceeded"))})
    async with make_client(feed) as client:
        r = await client.post("/jobs/sync")
    assert r.status_code == 429


@pytest.mark.asyncio
async def test_api_key_guard(make_client, monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", "secret")
    async with make_client(FakeFeed()) as client:
        assert (await client.get("/health")).status_code == 200
        assert (await client.get("/sync/status")).status_code == 401
        assert (await client.get("/sync/status", headers={"X-API-Key": "secret"})).status_code == 200


@pytest.mark.asyncio
async def test_shutdown_closes_feed(async_session_maker, fixed_now):
    feed = FakeFeed()
    app = create_app(IncrementalSyncEngine(feed, async_session_maker, now=fixed_now))

    await app.router.shutdown()

    assert feed.closed
