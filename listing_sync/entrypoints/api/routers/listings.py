# listing_sync/entrypoints/api/routers/listings.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import require_api_key
from ....adapters.repos.listings import ListingRepository
from ....db import get_session
from ....domain.types import ListingSource
from ....schemas import ListingOut

router = APIRouter(tags=["listings"], dependencies=[Depends(require_api_key)])


@router.get("/listings", response_model=list[ListingOut])
async def find_listings(
    source: ListingSource | None = Query(None),
    native_id: str | None = Query(None),
    address_key: str | None = Query(None),
    raw: bool = Query(False, description="Include per-source raw payloads"),
    session: AsyncSession = Depends(get_session),
) -> list[ListingOut]:
    repo = ListingRepository(session)

    if source is not None and native_id:
        found = await repo.find_by_source_id(source, native_id)
        listings = [found] if found else []
    elif address_key:
        listings = await repo.find_by_address_key(address_key)
    else:
        raise HTTPException(status_code=400, detail="Pass source+native_id or address_key")

    return [ListingOut.from_listing(x, include_raw=raw) for x in listings]


@router.get("/listings/{listing_id:path}", response_model=ListingOut)
async def get_listing(
    listing_id: str,
    raw: bool = Query(False, description="Include per-source raw payloads"),
    session: AsyncSession = Depends(get_session),
) -> ListingOut:
    listing = await ListingRepository(session).get(listing_id)
    if listing is None:
        raise HTTPException(status_code=404, detail="Listing not found")
    return ListingOut.from_listing(listing, include_raw=raw)
