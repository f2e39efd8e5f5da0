import httpx
import pytest

from listing_sync.adapters.clients.search_api import SearchApiClient
from listing_sync.config import settings
from listing_sync.domain.types import SearchApiRecord
from listing_sync.errors import AuthenticationError


def _client(handler, **kw) -> SearchApiClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SearchApiClient(base_url="https://search.test/", api_key="k", http=http, **kw)


@pytest.mark.asyncio
async def test_search_listings_wraps_rows():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"listings": [{"mlsNumber": "S1"}, 7], "count": 1})

    results = await _client(handler).search_listings({"city": "Austin", "minPrice": None}, page_size=25, page_num=2)

    assert results == [SearchApiRecord(payload={"mlsNumber": "S1"})]
    req = seen[0]
    assert req.url.path == "/listings"
    assert req.url.params["city"] == "Austin"
    assert "minPrice" not in req.url.params
    assert req.url.params["resultsPerPage"] == "25"
    assert req.url.params["pageNum"] == "2"
    assert req.headers[settings.SEARCH_API_KEY_HEADER] == "k"


@pytest.mark.asyncio
async def test_bare_list_response():
    client = _client(lambda request: httpx.Response(200, json=[{"mlsNumber": "S2"}]))
    assert [r.payload["mlsNumber"] for r in await client.search_listings()] == ["S2"]


@pytest.mark.asyncio
async def test_unconfigured_client_returns_nothing():
    client = SearchApiClient(base_url="", api_key=None, http=httpx.AsyncClient())
    assert client.configured is False
    assert await client.search_listings({"city": "Austin"}) == []


@pytest.mark.asyncio
async def test_rejected_key():
    client = _client(lambda request: httpx.Response(401))
    with pytest.raises(AuthenticationError):
        await client.search_listings()
