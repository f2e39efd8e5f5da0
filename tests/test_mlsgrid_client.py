from datetime import datetime, timezone

import httpx
import pytest

from listing_sync.adapters.clients.mlsgrid import (
    FeedResource,
    ListingSearchFilter,
    MlsGridClient,
    build_filter_query,
    create_mlsgrid_client,
)
from listing_sync.config import settings
from listing_sync.errors import AuthenticationError, SyncError, TransientNetworkError


def _client(handler) -> MlsGridClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return MlsGridClient(base_url="https://api.mlsgrid.test/v2/", token="tok", http=http)


@pytest.mark.asyncio
async def test_fetch_page_sends_odata_params():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"value": [{"ListingKey": "K1"}, "junk"], "@odata.nextLink": "next"})

    client = _client(handler)
    since = datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)
    page = await client.fetch_page(FeedResource.property, since, 100, 200)

    req = seen[0]
    assert req.url.path == "/v2/Property"
    assert req.url.params["$filter"] == "ModificationTimestamp gt 2024-01-02T03:04:05.678Z"
    assert req.url.params["$top"] == "100"
    assert req.url.params["$skip"] == "200"
    assert req.url.params["$orderby"] == "ModificationTimestamp desc"
    assert req.headers["authorization"] == "Bearer tok"

    # malformed rows stay in the page so a full page never looks short
    assert page.records == [{"ListingKey": "K1"}, "junk"]
    assert page.size == 2
    assert page.next_link == "next"


@pytest.mark.asyncio
async def test_full_resync_has_no_filter_or_skip():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"value": []})

    client = _client(handler)
    page = await client.fetch_page(FeedResource.media, None, 50, 0)

    assert seen[0].url.path == "/v2/Media"
    assert "$filter" not in seen[0].url.params
    assert "$skip" not in seen[0].url.params
    assert page.size == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status,exc",
    [
        (401, AuthenticationError),
        (403, AuthenticationError),
        (429, TransientNetworkError),
        (503, TransientNetworkError),
        (400, SyncError),
    ],
)
async def test_http_errors_are_classified(status, exc):
    client = _client(lambda request: httpx.Response(status, text="nope"))
    with pytest.raises(exc):
        await client.fetch_page(FeedResource.property, None, 10, 0)


@pytest.mark.asyncio
async def test_transport_errors_are_transient():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler)
    with pytest.raises(TransientNetworkError):
        await client.fetch_page(FeedResource.property, None, 10, 0)


@pytest.mark.asyncio
async def test_get_property_and_search():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if "Property('K9')" in request.url.path:
            return httpx.Response(200, json={"ListingKey": "K9"})
        return httpx.Response(200, json={"value": [{"ListingKey": "K1"}]})

    client = _client(handler)
    assert await client.get_property("K9") == {"ListingKey": "K9"}

    rows = await client.search_properties(ListingSearchFilter(postal_codes=["78704"]), limit=5)
    assert rows == [{"ListingKey": "K1"}]
    assert seen[-1].url.params["$top"] == "5"
    assert "PostalCode eq '78704'" in seen[-1].url.params["$filter"]
    assert client.limiter.requests_this_hour == 2


def test_filter_builder():
    q = build_filter_query(
        ListingSearchFilter(
            min_list_price=200000,
            max_list_price=450000.5,
            min_beds=3,
            postal_codes=["78704", "78745"],
            cities=["O'Fallon"],
        )
    )
    assert q["$orderby"] == "ModificationTimestamp desc"
    assert q["$filter"] == (
        "(StandardStatus eq 'Active')"
        " and ListPrice ge 200000 and ListPrice le 450000.5"
        " and BedroomsTotal ge 3"
        " and (PostalCode eq '78704' or PostalCode eq '78745')"
        " and (City eq 'O''Fallon')"
    )


def test_filter_builder_explicit_statuses():
    q = build_filter_query(ListingSearchFilter(standard_status=["Pending", "Closed"]))
    assert q["$filter"] == "(StandardStatus eq 'Pending' or StandardStatus eq 'Closed')"


@pytest.mark.asyncio
async def test_factory_prefers_bbo_token(monkeypatch):
    monkeypatch.setattr(settings, "MLSGRID_API_URL", "https://api.mlsgrid.test/v2")
    monkeypatch.setattr(settings, "MLSGRID_API_TOKEN", "legacy")
    monkeypatch.setattr(settings, "MLS_GRID_VOW", "vow")
    monkeypatch.setattr(settings, "MLS_GRID_BBO", "bbo")

    client = create_mlsgrid_client()
    assert client is not None
    assert client.token == "bbo"
    await client.aclose()


def test_factory_without_credentials_returns_none(monkeypatch):
    monkeypatch.setattr(settings, "MLSGRID_API_URL", None)
    assert create_mlsgrid_client() is None
