# listing_sync/adapters/clients/mlsgrid.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import httpx

from ...config import settings
from ...domain.parsing import to_odata_timestamp
from .http_resilience import DualWindowRateLimiter, send_request

log = logging.getLogger(__name__)

ORDER_BY_MODIFIED_DESC = "ModificationTimestamp desc"


class FeedResource(str, Enum):
    property = "Property"
    media = "Media"


@dataclass(frozen=True)
class RawPage:
    resource: FeedResource
    records: list[Any]
    offset: int
    limit: int
    next_link: str | None = None

    @property
    def size(self) -> int:
        return len(self.records)


@dataclass
class ListingSearchFilter:
    """Typed search parameters; build_filter_query() turns them into OData."""

    standard_status: list[str] = field(default_factory=list)
    min_list_price: float | None = None
    max_list_price: float | None = None
    min_beds: int | None = None
    max_beds: int | None = None
    min_baths: int | None = None
    max_baths: int | None = None
    min_living_area: float | None = None
    max_living_area: float | None = None
    min_year_built: int | None = None
    max_year_built: int | None = None
    postal_codes: list[str] = field(default_factory=list)
    cities: list[str] = field(default_factory=list)
    subdivisions: list[str] = field(default_factory=list)
    property_sub_types: list[str] = field(default_factory=list)


def _quote(value: str) -> str:
    return "'" + str(value).replace("'", "''") + "'"


def _num(value: float | int) -> str:
    f = float(value)
    return str(int(f)) if f.is_integer() else repr(f)


def _any_of(field_name: str, values: list[str]) -> str | None:
    vals = [v for v in values if v is not None and str(v).strip()]
    if not vals:
        return None
    return "(" + " or ".join(f"{field_name} eq {_quote(v)}" for v in vals) + ")"


def _range(field_name: str, lo: float | int | None, hi: float | int | None) -> list[str]:
    out: list[str] = []
    if lo is not None:
        out.append(f"{field_name} ge {_num(lo)}")
    if hi is not None:
        out.append(f"{field_name} le {_num(hi)}")
    return out


def build_filter_query(f: ListingSearchFilter) -> dict[str, str]:
    """
    ListingSearchFilter -> {"$filter": ..., "$orderby": ...}

    Status defaults to Active. Ordering is always most-recently-modified first.
    """
    clauses: list[str] = [_any_of("StandardStatus", f.standard_status or ["Active"])]  # type: ignore[list-item]

    clauses += _range("ListPrice", f.min_list_price, f.max_list_price)
    clauses += _range("BedroomsTotal", f.min_beds, f.max_beds)
    clauses += _range("BathroomsTotalInteger", f.min_baths, f.max_baths)
    clauses += _range("LivingArea", f.min_living_area, f.max_living_area)
    clauses += _range("YearBuilt", f.min_year_built, f.max_year_built)

    for name, values in (
        ("PostalCode", f.postal_codes),
        ("City", f.cities),
        ("SubdivisionName", f.subdivisions),
        ("PropertySubType", f.property_sub_types),
    ):
        c = _any_of(name, values)
        if c:
            clauses.append(c)

    return {"$filter": " and ".join(clauses), "$orderby": ORDER_BY_MODIFIED_DESC}


def _raw_rows(data: Any) -> list[Any]:
    # every upstream row, malformed ones included, so page size matches $top
    items = data.get("value") if isinstance(data, dict) else data
    return list(items) if isinstance(items, list) else []


def _rows(data: Any) -> list[dict[str, Any]]:
    return [x for x in _raw_rows(data) if isinstance(x, dict)]


class MlsGridClient:
    """
    RESO Web API (OData) client for the MLS Grid replication feed.

    Every request goes through one DualWindowRateLimiter owned by this instance:
    2 req/s is throttled by sleeping, 7200 req/h raises RateLimitExceeded.
    """

    def __init__(
        self,
        *,
        base_url: str,
        token: str,
        limiter: DualWindowRateLimiter | None = None,
        http: httpx.AsyncClient | None = None,
        timeout_s: float | None = None,
    ) -> None:
        self.base_url = (base_url or "").rstrip("/")
        self.token = token
        self.limiter = limiter or DualWindowRateLimiter(
            max_per_second=settings.MLSGRID_MAX_RPS,
            max_per_hour=settings.MLSGRID_MAX_RPH,
        )
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            timeout=httpx.Timeout(float(timeout_s or settings.MLSGRID_HTTP_TIMEOUT_S))
        )

    async def __aenter__(self) -> "MlsGridClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    def _headers(self) -> dict[str, str]:
        return {
            "accept": "application/json",
            "content-type": "application/json",
            "authorization": f"Bearer {self.token}",
        }

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url}/{path.lstrip('/')}"
        resp = await send_request(
            self._http, "GET", url, limiter=self.limiter, headers=self._headers(), params=params
        )
        return resp.json()

    async def fetch_page(
        self,
        resource: FeedResource,
        since: datetime | None,
        limit: int,
        offset: int,
    ) -> RawPage:
        """
        One page of Property or Media records modified after `since`
        (no lower bound when `since` is None), newest changes first.
        """
        params: dict[str, Any] = {"$top": int(limit), "$orderby": ORDER_BY_MODIFIED_DESC}
        if since is not None:
            params["$filter"] = f"ModificationTimestamp gt {to_odata_timestamp(since)}"
        if offset:
            params["$skip"] = int(offset)

        data = await self._get(f"/{FeedResource(resource).value}", params)
        next_link = data.get("@odata.nextLink") if isinstance(data, dict) else None
        return RawPage(
            resource=FeedResource(resource),
            records=_raw_rows(data),
            offset=int(offset),
            limit=int(limit),
            next_link=next_link,
        )

    async def get_property(self, listing_key: str) -> dict[str, Any] | None:
        data = await self._get(f"/Property('{listing_key}')")
        if isinstance(data, dict) and "value" in data:
            rows = _rows(data)
            return rows[0] if rows else None
        return data if isinstance(data, dict) else None

    async def search_properties(
        self,
        search: ListingSearchFilter,
        *,
        limit: int = 50,
        skip: int = 0,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {**build_filter_query(search), "$top": int(limit)}
        if skip:
            params["$skip"] = int(skip)
        log.info("mlsgrid search: %s", params["$filter"])
        return _rows(await self._get("/Property", params))


def create_mlsgrid_client() -> MlsGridClient | None:
    """Build from settings; None (and a warning) when the feed is not configured."""
    api_url = settings.MLSGRID_API_URL
    token = settings.mlsgrid_token

    if not api_url or not token:
        log.warning(
            "MLS Grid credentials not found; feed sync disabled (MLSGRID_API_URL=%s, token=%s)",
            "set" if api_url else "missing",
            "set" if token else "missing",
        )
        return None

    log.info("MLS Grid client initialized with %s credentials", settings.mlsgrid_token_source)
    return MlsGridClient(base_url=api_url, token=token)
