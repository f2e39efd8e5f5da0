from dataclasses import asdict
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .domain.types import CanonicalListing


class ListingOut(BaseModel):
    id: str
    primary_source: str
    sources: list[str]
    source_ids: dict[str, str]
    standard_status: str

    list_price: float | None = None
    close_price: float | None = None
    original_price: float | None = None

    street_number: str | None = None
    street_name: str | None = None
    unit: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    unparsed_address: str | None = None
    address_key: str | None = None

    beds: int | None = None
    baths: float | None = None
    baths_full: int | None = None
    baths_half: int | None = None
    living_area_sqft: float | None = None
    lot_size_sqft: float | None = None
    lot_size_acres: float | None = None
    year_built: int | None = None

    property_type: str | None = None
    property_sub_type: str | None = None
    subdivision: str | None = None
    neighborhood: str | None = None

    mls_number: str | None = None
    listing_id: str | None = None
    list_date: datetime | None = None
    close_date: datetime | None = None
    days_on_market: int | None = None
    modification_timestamp: datetime | None = None

    latitude: float | None = None
    longitude: float | None = None
    photos: list[str] = Field(default_factory=list)

    garage_spaces: float | None = None
    pool_features: str | None = None
    elementary_school: str | None = None
    middle_school: str | None = None
    high_school: str | None = None
    school_district: str | None = None
    public_remarks: str | None = None
    list_agent_mls_id: str | None = None
    list_office_mls_id: str | None = None

    last_updated: datetime | None = None

    # only populated for ?raw=true
    raw: dict[str, Any] | None = None

    @classmethod
    def from_listing(cls, listing: CanonicalListing, *, include_raw: bool = False) -> "ListingOut":
        data = asdict(listing)
        data["primary_source"] = listing.primary_source.value
        data["sources"] = sorted(s.value for s in listing.sources)
        data["source_ids"] = {k.value: v for k, v in listing.source_ids.items()}
        data["standard_status"] = listing.standard_status.value
        data["raw"] = {k.value: v for k, v in listing.raw.items()} if include_raw else None
        return cls(**data)


class CheckpointOut(BaseModel):
    sync_type: str
    last_sync_timestamp: datetime | None = None
    last_sync_status: str | None = None
    last_sync_message: str | None = None
    properties_synced: int = Field(0, ge=0)
    media_synced: int = Field(0, ge=0)
    updated_at: datetime | None = None


class SyncStatusOut(BaseModel):
    state: str
    feed_configured: bool
    checkpoints: list[CheckpointOut]
    last_run: dict[str, Any] | None = None
