# listing_sync/adapters/clients/search_api.py
from __future__ import annotations

import logging
from typing import Any

import httpx

from ...config import settings
from ...domain.types import SearchApiRecord
from .http_resilience import send_request

log = logging.getLogger(__name__)


def _rows(data: Any) -> list[dict[str, Any]]:
    if isinstance(data, dict) and isinstance(data.get("listings"), list):
        return [x for x in data["listings"] if isinstance(x, dict)]
    if isinstance(data, list):
        return [x for x in data if isinstance(x, dict)]
    return []


class SearchApiClient:
    """
    Real-time listing search API (secondary source).
    Its listing numbers are a different id scheme from the MLS feed, so results
    are reconciled through address keys and dedupe scoring, never by foreign key.
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        api_key: str | None = None,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = ((base_url if base_url is not None else settings.SEARCH_API_URL) or "").rstrip("/")
        self._api_key = api_key if api_key is not None else settings.SEARCH_API_KEY
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=httpx.Timeout(float(settings.SEARCH_API_TIMEOUT_S)))

    @property
    def configured(self) -> bool:
        return bool(self._base_url and self._api_key)

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    def _headers(self) -> dict[str, str]:
        return {"accept": "application/json", settings.SEARCH_API_KEY_HEADER: self._api_key or ""}

    async def search_listings(
        self,
        params: dict[str, Any] | None = None,
        *,
        page_size: int = 100,
        page_num: int = 1,
    ) -> list[SearchApiRecord]:
        if not self.configured:
            return []

        query: dict[str, Any] = {k: v for k, v in (params or {}).items() if v is not None}
        query["resultsPerPage"] = int(page_size)
        query["pageNum"] = int(page_num)

        resp = await send_request(self._http, "GET", f"{self._base_url}/listings", headers=self._headers(), params=query)
        rows = _rows(resp.json())
        log.info("search api: page %s returned %s listings", page_num, len(rows))
        return [SearchApiRecord(payload=r) for r in rows]
