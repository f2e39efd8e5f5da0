# listing_sync/domain/types.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Union


class ListingSource(str, Enum):
    mls = "MLS"
    search_api = "SEARCH_API"
    database = "DATABASE"


class StandardStatus(str, Enum):
    active = "Active"
    active_under_contract = "Active Under Contract"
    pending = "Pending"
    closed = "Closed"
    unknown = "Unknown"


class SyncType(str, Enum):
    properties = "properties"
    media = "media"


class SyncStatus(str, Enum):
    success = "success"
    error = "error"
    in_progress = "in_progress"


@dataclass
class CanonicalListing:
    id: str
    primary_source: ListingSource
    source_ids: dict[ListingSource, str] = field(default_factory=dict)
    sources: set[ListingSource] = field(default_factory=set)
    standard_status: StandardStatus = StandardStatus.unknown

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

    photos: list[str] = field(default_factory=list)

    garage_spaces: float | None = None
    pool_features: str | None = None
    elementary_school: str | None = None
    middle_school: str | None = None
    high_school: str | None = None
    school_district: str | None = None
    public_remarks: str | None = None
    list_agent_mls_id: str | None = None
    list_office_mls_id: str | None = None

    raw: dict[ListingSource, dict[str, Any]] = field(default_factory=dict)
    last_updated: datetime | None = None


# Fields the merger treats as plain "keep primary, fill from secondary" scalars.
MERGEABLE_FIELDS: tuple[str, ...] = (
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
    "list_date",
    "close_date",
    "days_on_market",
    "modification_timestamp",
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


@dataclass
class MediaItem:
    media_key: str
    resource_record_key: str
    media_url: str
    media_category: str | None = None
    media_type: str | None = None
    order: int | None = None
    caption: str | None = None
    modification_timestamp: datetime | None = None


# -----------------------------
# Raw payloads, tagged by source
# -----------------------------
@dataclass(frozen=True)
class MlsRecord:
    """RESO Property record from the bulk replication feed."""

    payload: dict[str, Any]
    source: ClassVar[ListingSource] = ListingSource.mls


@dataclass(frozen=True)
class SearchApiRecord:
    """Listing object from the real-time search API."""

    payload: dict[str, Any]
    source: ClassVar[ListingSource] = ListingSource.search_api


@dataclass(frozen=True)
class DatabaseRecord:
    """Row already living in our own properties table (legacy import)."""

    payload: dict[str, Any]
    source: ClassVar[ListingSource] = ListingSource.database


RawListing = Union[MlsRecord, SearchApiRecord, DatabaseRecord]
