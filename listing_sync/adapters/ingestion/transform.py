# listing_sync/adapters/ingestion/transform.py
from __future__ import annotations

from typing import Any

from ...domain.address import address_key, address_key_from_line, generate_canonical_id
from ...domain.parsing import get_first, get_nested, to_datetime, to_float, to_int, to_str
from ...domain.status import normalize_status
from ...domain.types import (
    CanonicalListing,
    DatabaseRecord,
    ListingSource,
    MediaItem,
    MlsRecord,
    RawListing,
    SearchApiRecord,
    StandardStatus,
)
from ...errors import RecordTransformError


def _payload(raw: RawListing | dict[str, Any]) -> dict[str, Any]:
    payload = raw if isinstance(raw, dict) else getattr(raw, "payload", raw)
    if not isinstance(payload, dict):
        raise RecordTransformError(f"payload is {type(payload).__name__}, expected object")
    return payload


def _join(*parts: Any) -> str | None:
    s = " ".join(str(p).strip() for p in parts if p is not None and str(p).strip())
    return s or None


def _key(
    street_number: str | None,
    street_name: str | None,
    unit: str | None,
    city: str | None,
    state: str | None,
    postal_code: str | None,
    unparsed: str | None,
) -> str | None:
    """Discrete parts first; the unparsed line only stands in for a missing street."""
    if not (street_number or street_name) and unparsed:
        k = address_key_from_line(unparsed, city, state, postal_code)
    else:
        k = address_key(street_number, street_name, unit, city, state, postal_code)
    return k or None


def _photo_urls(items: Any, url_key: str = "MediaURL") -> list[str]:
    if not isinstance(items, list):
        return []
    out: list[str] = []
    for it in items:
        if isinstance(it, str):
            url = it
        elif isinstance(it, dict):
            url = it.get(url_key)
        else:
            url = None
        if url and url not in out:
            out.append(str(url))
    return out


def _require_id(listing_id: str | None, source: ListingSource, payload: dict[str, Any]) -> str:
    if not listing_id:
        hint = sorted(list(payload.keys()))[:25]
        raise RecordTransformError(f"{source.value} record has no identifier or address; keys={hint}")
    return listing_id


# -----------------------------
# MLS replication feed (RESO Data Dictionary names)
# -----------------------------
def mls_to_listing(record: MlsRecord, *, retain_raw: bool = True) -> CanonicalListing:
    p = _payload(record)

    listing_key = to_str(p.get("ListingKey"))
    mls_number = to_str(p.get("ListingId"))

    street_number = to_str(p.get("StreetNumber"))
    street_name = _join(p.get("StreetDirPrefix"), p.get("StreetName"), p.get("StreetSuffix"))
    unit = to_str(p.get("UnitNumber"))
    city = to_str(p.get("City"))
    state = to_str(p.get("StateOrProvince"))
    postal_code = to_str(p.get("PostalCode"))
    unparsed = to_str(p.get("UnparsedAddress"))
    akey = _key(street_number, street_name, unit, city, state, postal_code, unparsed)

    native = listing_key or mls_number
    cid = _require_id(generate_canonical_id(mls_number, None, None, akey), ListingSource.mls, p)

    return CanonicalListing(
        id=cid,
        primary_source=ListingSource.mls,
        source_ids={ListingSource.mls: native} if native else {},
        sources={ListingSource.mls},
        standard_status=normalize_status(to_str(p.get("StandardStatus")), to_str(p.get("MlsStatus"))),
        list_price=to_float(p.get("ListPrice")),
        close_price=to_float(p.get("ClosePrice")),
        original_price=to_float(p.get("OriginalListPrice")),
        street_number=street_number,
        street_name=street_name,
        unit=unit,
        city=city,
        state=state,
        postal_code=postal_code,
        unparsed_address=unparsed,
        address_key=akey,
        beds=to_int(p.get("BedroomsTotal")),
        baths=to_float(get_first(p, "BathroomsTotalInteger", "BathroomsTotalDecimal")),
        baths_full=to_int(p.get("BathroomsFull")),
        baths_half=to_int(p.get("BathroomsHalf")),
        living_area_sqft=to_float(p.get("LivingArea")),
        lot_size_sqft=to_float(p.get("LotSizeSquareFeet")),
        lot_size_acres=to_float(p.get("LotSizeAcres")),
        year_built=to_int(p.get("YearBuilt")),
        property_type=to_str(p.get("PropertyType")),
        property_sub_type=to_str(p.get("PropertySubType")),
        subdivision=to_str(p.get("SubdivisionName")),
        neighborhood=to_str(p.get("Neighborhood")),
        mls_number=mls_number,
        list_date=to_datetime(p.get("ListingContractDate")),
        close_date=to_datetime(p.get("CloseDate")),
        days_on_market=to_int(p.get("DaysOnMarket")),
        modification_timestamp=to_datetime(p.get("ModificationTimestamp")),
        latitude=to_float(p.get("Latitude")),
        longitude=to_float(p.get("Longitude")),
        photos=_photo_urls(p.get("Media")),
        garage_spaces=to_float(p.get("GarageSpaces")),
        pool_features=_features(p.get("PoolFeatures")),
        elementary_school=to_str(p.get("ElementarySchool")),
        middle_school=to_str(p.get("MiddleOrJuniorSchool")),
        high_school=to_str(p.get("HighSchool")),
        school_district=to_str(p.get("SchoolDistrict")),
        public_remarks=to_str(p.get("PublicRemarks")),
        list_agent_mls_id=to_str(p.get("ListAgentMlsId")),
        list_office_mls_id=to_str(p.get("ListOfficeMlsId")),
        raw={ListingSource.mls: dict(p)} if retain_raw else {},
    )


def _features(x: Any) -> str | None:
    if isinstance(x, list):
        return ", ".join(str(i) for i in x if i is not None) or None
    return to_str(x)


def media_from_mls(payload: Any) -> MediaItem:
    p = _payload(payload)
    media_key = to_str(p.get("MediaKey"))
    record_key = to_str(p.get("ResourceRecordKey"))
    url = to_str(p.get("MediaURL"))
    if not (media_key and record_key and url):
        raise RecordTransformError(
            f"media record missing MediaKey/ResourceRecordKey/MediaURL: {media_key=} {record_key=}",
            source_ref=media_key,
        )
    return MediaItem(
        media_key=media_key,
        resource_record_key=record_key,
        media_url=url,
        media_category=to_str(p.get("MediaCategory")),
        media_type=to_str(p.get("MediaType")),
        order=to_int(p.get("Order")),
        caption=to_str(get_first(p, "ShortDescription", "LongDescription")),
        modification_timestamp=to_datetime(p.get("ModificationTimestamp")),
    )


# -----------------------------
# Real-time search API
# -----------------------------
def _search_status(p: dict[str, Any], raw: dict[str, Any]) -> StandardStatus:
    """standardStatus first, then status + lastStatus codes."""
    standard = to_str(p.get("standardStatus")) or to_str(raw.get("StandardStatus"))
    if standard:
        s = normalize_status(standard)
        if s is not StandardStatus.unknown:
            return s
    return normalize_status(to_str(p.get("status")), to_str(p.get("lastStatus")))


def search_api_to_listing(record: SearchApiRecord, *, retain_raw: bool = True) -> CanonicalListing:
    p = _payload(record)
    raw = p.get("raw") if isinstance(p.get("raw"), dict) else {}

    # the search API's own listing number; a different scheme from the feed's ListingKey
    listing_id = to_str(get_first(p, "mlsNumber", "listingId"))
    # MLS-native number only when the API echoes the underlying RESO record
    mls_number = to_str(raw.get("ListingId"))

    street_number = to_str(get_nested(p, "address.streetNumber") or raw.get("StreetNumber"))
    street_name = _join(
        get_nested(p, "address.streetDirectionPrefix"),
        get_nested(p, "address.streetName") or raw.get("StreetName"),
        get_nested(p, "address.streetSuffix") or raw.get("StreetSuffix"),
    )
    unit = to_str(get_nested(p, "address.unitNumber") or raw.get("UnitNumber"))
    city = to_str(get_nested(p, "address.city") or raw.get("City"))
    state = to_str(get_nested(p, "address.state") or raw.get("StateOrProvince"))
    postal_code = to_str(get_nested(p, "address.zip") or raw.get("PostalCode"))
    unparsed = to_str(raw.get("UnparsedAddress")) or _join(street_number, street_name)
    akey = _key(street_number, street_name, unit, city, state, postal_code, unparsed)

    cid = _require_id(generate_canonical_id(mls_number, listing_id, None, akey), ListingSource.search_api, p)

    details = p.get("details") if isinstance(p.get("details"), dict) else {}
    return CanonicalListing(
        id=cid,
        primary_source=ListingSource.search_api,
        source_ids={ListingSource.search_api: listing_id} if listing_id else {},
        sources={ListingSource.search_api},
        standard_status=_search_status(p, raw),
        list_price=to_float(p.get("listPrice")),
        close_price=to_float(get_first(p, "closePrice", "soldPrice")),
        original_price=to_float(p.get("originalPrice")),
        street_number=street_number,
        street_name=street_name,
        unit=unit,
        city=city,
        state=state,
        postal_code=postal_code,
        unparsed_address=unparsed,
        address_key=akey,
        beds=to_int(get_first(details, "numBedrooms", "bedrooms")) or to_int(raw.get("BedroomsTotal")),
        baths=to_float(get_first(details, "numBathrooms", "bathrooms"))
        or to_float(raw.get("BathroomsTotalInteger")),
        living_area_sqft=to_float(get_first(p, "livingArea") or details.get("sqft") or raw.get("LivingArea")),
        lot_size_sqft=to_float(p.get("lotSizeSquareFeet") or raw.get("LotSizeSquareFeet")),
        lot_size_acres=to_float(p.get("lotSizeAcres") or raw.get("LotSizeAcres")),
        year_built=to_int(p.get("yearBuilt") or details.get("yearBuilt") or raw.get("YearBuilt")),
        property_type=to_str(details.get("propertyType") or p.get("type")),
        property_sub_type=to_str(p.get("propertySubType") or raw.get("PropertySubType")),
        subdivision=to_str(p.get("subdivision") or raw.get("SubdivisionName")),
        neighborhood=to_str(get_nested(p, "address.neighborhood")),
        mls_number=mls_number,
        listing_id=listing_id,
        list_date=to_datetime(p.get("listDate") or raw.get("ListingContractDate")),
        close_date=to_datetime(get_first(p, "closeDate", "soldDate") or raw.get("CloseDate")),
        days_on_market=to_int(p.get("daysOnMarket") or raw.get("DaysOnMarket")),
        modification_timestamp=to_datetime(p.get("updatedOn") or raw.get("ModificationTimestamp")),
        latitude=to_float(get_nested(p, "map.latitude") or raw.get("Latitude")),
        longitude=to_float(get_nested(p, "map.longitude") or raw.get("Longitude")),
        photos=_photo_urls(p.get("photos") or p.get("images")),
        garage_spaces=to_float(p.get("garageSpaces") or details.get("garage")),
        pool_features=_features(p.get("poolFeatures") or details.get("pool")),
        elementary_school=to_str(p.get("elementarySchool")),
        middle_school=to_str(p.get("middleSchool")),
        high_school=to_str(p.get("highSchool")),
        public_remarks=to_str(details.get("description")),
        raw={ListingSource.search_api: dict(p)} if retain_raw else {},
    )


# -----------------------------
# Legacy rows from our own properties table
# -----------------------------
def database_to_listing(record: DatabaseRecord, *, retain_raw: bool = False) -> CanonicalListing:
    p = _payload(record)

    db_id = to_str(p.get("id"))
    mls_number = to_str(get_first(p, "listingId", "listing_id"))

    street_number = to_str(get_first(p, "streetNumber", "street_number"))
    street_name = to_str(get_first(p, "streetName", "street_name"))
    unit = to_str(get_first(p, "unitNumber", "unit_number", "unit"))
    city = to_str(p.get("city"))
    state = to_str(get_first(p, "stateOrProvince", "state"))
    postal_code = to_str(get_first(p, "postalCode", "postal_code", "zipcode"))
    unparsed = to_str(get_first(p, "unparsedAddress", "unparsed_address"))
    akey = _key(street_number, street_name, unit, city, state, postal_code, unparsed)

    cid = _require_id(generate_canonical_id(mls_number, None, db_id, akey), ListingSource.database, p)

    return CanonicalListing(
        id=cid,
        primary_source=ListingSource.database,
        source_ids={ListingSource.database: db_id or mls_number} if (db_id or mls_number) else {},
        sources={ListingSource.database},
        standard_status=normalize_status(to_str(get_first(p, "standardStatus", "standard_status"))),
        list_price=to_float(get_first(p, "listPrice", "list_price")),
        close_price=to_float(get_first(p, "closePrice", "close_price")),
        street_number=street_number,
        street_name=street_name,
        unit=unit,
        city=city,
        state=state,
        postal_code=postal_code,
        unparsed_address=unparsed,
        address_key=akey,
        beds=to_int(get_first(p, "bedroomsTotal", "beds")),
        baths=to_float(get_first(p, "bathroomsTotalInteger", "baths")),
        living_area_sqft=to_float(get_first(p, "livingArea", "living_area")),
        lot_size_sqft=to_float(get_first(p, "lotSizeSquareFeet", "lot_size_sqft")),
        year_built=to_int(get_first(p, "yearBuilt", "year_built")),
        property_type=to_str(get_first(p, "propertyType", "property_type")),
        property_sub_type=to_str(get_first(p, "propertySubType", "property_sub_type")),
        subdivision=to_str(get_first(p, "subdivision", "subdivisionName")),
        neighborhood=to_str(p.get("neighborhood")),
        mls_number=mls_number,
        latitude=to_float(p.get("latitude")),
        longitude=to_float(p.get("longitude")),
        photos=_photo_urls(p.get("photos")),
        raw={ListingSource.database: dict(p)} if retain_raw else {},
    )


def transform(raw: RawListing, *, retain_raw: bool = True) -> CanonicalListing:
    """Dispatch on the source tag. Any failure comes out as RecordTransformError."""
    try:
        if isinstance(raw, MlsRecord):
            return mls_to_listing(raw, retain_raw=retain_raw)
        if isinstance(raw, SearchApiRecord):
            return search_api_to_listing(raw, retain_raw=retain_raw)
        if isinstance(raw, DatabaseRecord):
            return database_to_listing(raw, retain_raw=retain_raw)
    except RecordTransformError:
        raise
    except (TypeError, ValueError, OverflowError, AttributeError, KeyError) as e:
        raise RecordTransformError(f"{type(raw).__name__}: {e}", source_ref=source_ref(raw)) from e
    raise RecordTransformError(f"unsupported raw record type {type(raw).__name__}")


def source_ref(raw: RawListing) -> str | None:
    """Best-effort native identifier for logs and error reports."""
    p = raw.payload if isinstance(getattr(raw, "payload", None), dict) else {}
    return to_str(get_first(p, "ListingKey", "ListingId", "mlsNumber", "listingId", "id"))
