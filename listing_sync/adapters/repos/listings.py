# listing_sync/adapters/repos/listings.py
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.merge import union_urls
from ...domain.types import CanonicalListing, ListingSource, StandardStatus
from ...models import CanonicalListingRow, ListingSourceId

# Columns copied 1:1 between the dataclass and the row.
_SCALAR_COLUMNS: tuple[str, ...] = (
    "list_price",
    "close_price",
    "original_price",
    "street_number",
    "street_name",
    "unit",
    "city",
    "state",
    "postal_code",
    "unparsed_address",
    "address_key",
    "beds",
    "baths",
    "baths_full",
    "baths_half",
    "living_area_sqft",
    "lot_size_sqft",
    "lot_size_acres",
    "year_built",
    "property_type",
    "property_sub_type",
    "subdivision",
    "neighborhood",
    "mls_number",
    "listing_id",
    "days_on_market",
    "latitude",
    "longitude",
    "garage_spaces",
    "pool_features",
    "elementary_school",
    "middle_school",
    "high_school",
    "school_district",
    "public_remarks",
    "list_agent_mls_id",
    "list_office_mls_id",
)

_DATETIME_COLUMNS: tuple[str, ...] = ("list_date", "close_date", "modification_timestamp", "last_updated")


def _aware(dt: datetime | None) -> datetime | None:
    # SQLite hands DateTime(timezone=True) back naive
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _dump_raw(raw: dict[ListingSource, dict[str, Any]]) -> str | None:
    if not raw:
        return None
    return json.dumps({ListingSource(k).value: v for k, v in raw.items()}, default=str, sort_keys=True)


def _load_raw(text: str | None) -> dict[ListingSource, dict[str, Any]]:
    if not text:
        return {}
    data = json.loads(text)
    return {ListingSource(k): v for k, v in data.items() if isinstance(v, dict)}


def row_to_listing(row: CanonicalListingRow, source_ids: dict[ListingSource, str]) -> CanonicalListing:
    listing = CanonicalListing(
        id=row.id,
        primary_source=ListingSource(row.primary_source),
        source_ids=dict(source_ids),
        sources={ListingSource(s) for s in json.loads(row.sources_json or "[]")},
        standard_status=StandardStatus(row.standard_status or StandardStatus.unknown),
        photos=list(json.loads(row.photos_json or "[]")),
        raw=_load_raw(row.raw_json),
    )
    for name in _SCALAR_COLUMNS:
        setattr(listing, name, getattr(row, name))
    for name in _DATETIME_COLUMNS:
        setattr(listing, name, _aware(getattr(row, name)))
    return listing


def _apply(row: CanonicalListingRow, listing: CanonicalListing) -> None:
    row.primary_source = listing.primary_source
    row.sources_json = json.dumps(sorted(s.value for s in listing.sources))
    row.standard_status = listing.standard_status
    row.photos_json = json.dumps(list(listing.photos))
    row.raw_json = _dump_raw(listing.raw)
    for name in _SCALAR_COLUMNS + _DATETIME_COLUMNS:
        setattr(row, name, getattr(listing, name))


class ListingRepository:
    """
    Canonical listing store.

    Lookups return domain CanonicalListing objects; upsert() writes one back,
    including its (source, native id) rows. Nothing here commits.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _source_ids_for(self, listing_id: str) -> dict[ListingSource, str]:
        q = select(ListingSourceId).where(ListingSourceId.listing_id == listing_id).order_by(ListingSourceId.id)
        out: dict[ListingSource, str] = {}
        for sid in (await self.session.execute(q)).scalars().all():
            # latest native id per source wins
            out[ListingSource(sid.source)] = sid.native_id
        return out

    async def _hydrate(self, row: CanonicalListingRow | None) -> CanonicalListing | None:
        if row is None:
            return None
        return row_to_listing(row, await self._source_ids_for(row.id))

    async def get(self, listing_id: str) -> CanonicalListing | None:
        return await self._hydrate(await self.session.get(CanonicalListingRow, listing_id))

    async def find_by_source_id(self, source: ListingSource, native_id: str) -> CanonicalListing | None:
        q = select(ListingSourceId).where(
            ListingSourceId.source == ListingSource(source),
            ListingSourceId.native_id == str(native_id),
        )
        sid = (await self.session.execute(q)).scalars().first()
        if sid is None:
            return None
        return await self.get(sid.listing_id)

    async def find_by_mls_number(self, mls_number: str) -> CanonicalListing | None:
        q = (
            select(CanonicalListingRow)
            .where(CanonicalListingRow.mls_number == str(mls_number))
            .order_by(CanonicalListingRow.created_at)
        )
        return await self._hydrate((await self.session.execute(q)).scalars().first())

    async def find_by_address_key(self, key: str) -> list[CanonicalListing]:
        q = (
            select(CanonicalListingRow)
            .where(CanonicalListingRow.address_key == key)
            .order_by(CanonicalListingRow.created_at)
        )
        rows = (await self.session.execute(q)).scalars().all()
        return [await self._hydrate(r) for r in rows]  # type: ignore[misc]

    async def upsert(self, listing: CanonicalListing) -> CanonicalListing:
        row = await self.session.get(CanonicalListingRow, listing.id)
        if row is None:
            row = CanonicalListingRow(id=listing.id)
            self.session.add(row)
        _apply(row, listing)

        for source, native_id in listing.source_ids.items():
            if not native_id:
                continue
            q = select(ListingSourceId).where(
                ListingSourceId.source == ListingSource(source),
                ListingSourceId.native_id == str(native_id),
            )
            sid = (await self.session.execute(q)).scalars().first()
            if sid is None:
                self.session.add(
                    ListingSourceId(listing_id=listing.id, source=ListingSource(source), native_id=str(native_id))
                )
            elif sid.listing_id != listing.id:
                sid.listing_id = listing.id

        await self.session.flush()
        return listing

    async def attach_photo(self, mls_key: str, url: str, *, now: datetime | None = None) -> bool:
        """Union one media URL into the listing owning `mls_key`. False when unknown or already present."""
        listing = await self.find_by_source_id(ListingSource.mls, mls_key)
        if listing is None or url in listing.photos:
            return False
        listing.photos = union_urls(listing.photos, [url])
        listing.last_updated = now or datetime.now(timezone.utc)
        await self.upsert(listing)
        return True
