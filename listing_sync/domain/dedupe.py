# listing_sync/domain/dedupe.py
from __future__ import annotations

from dataclasses import dataclass

from .address import key_strength
from .merge import merge_listings, source_priority
from .types import CanonicalListing

# Evidence weights. Each rule only counts toward the ceiling when both sides carry the field.
W_MLS_NUMBER = 100
W_LISTING_ID = 80
W_ADDRESS_KEY = 60
W_PRICE = 20
W_GEO = 30

PRICE_FULL_PCT = 0.01
PRICE_HALF_PCT = 0.05
GEO_FULL_DEG = 0.001  # ~100m
GEO_HALF_DEG = 0.005

# An equal native identifier is near-certain on its own, whatever the noisy fields say.
MLS_MATCH_FLOOR = 0.95
LISTING_ID_MATCH_FLOOR = 0.90

DEFAULT_THRESHOLD = 0.85

# Address keys shorter than this carry too little to group on.
MIN_ADDRESS_KEY_PARTS = 3


def _norm_id(x: str | None) -> str | None:
    if x is None:
        return None
    s = str(x).strip().lower()
    return s or None


def duplicate_score(a: CanonicalListing, b: CanonicalListing) -> float:
    """Confidence in [0, 1] that `a` and `b` describe the same listing."""
    earned = 0.0
    ceiling = 0.0
    floor = 0.0

    a_mls, b_mls = _norm_id(a.mls_number), _norm_id(b.mls_number)
    if a_mls and b_mls:
        ceiling += W_MLS_NUMBER
        if a_mls == b_mls:
            earned += W_MLS_NUMBER
            floor = max(floor, MLS_MATCH_FLOOR)

    a_lid, b_lid = _norm_id(a.listing_id), _norm_id(b.listing_id)
    if a_lid and b_lid:
        ceiling += W_LISTING_ID
        if a_lid == b_lid:
            earned += W_LISTING_ID
            floor = max(floor, LISTING_ID_MATCH_FLOOR)

    if a.address_key and b.address_key:
        ceiling += W_ADDRESS_KEY
        if a.address_key == b.address_key:
            earned += W_ADDRESS_KEY

    if a.list_price and b.list_price and a.list_price > 0 and b.list_price > 0:
        ceiling += W_PRICE
        diff = abs(a.list_price - b.list_price) / max(a.list_price, b.list_price)
        if diff < PRICE_FULL_PCT:
            earned += W_PRICE
        elif diff < PRICE_HALF_PCT:
            earned += W_PRICE / 2

    if None not in (a.latitude, a.longitude, b.latitude, b.longitude):
        ceiling += W_GEO
        d_lat = abs(a.latitude - b.latitude)
        d_lng = abs(a.longitude - b.longitude)
        if d_lat < GEO_FULL_DEG and d_lng < GEO_FULL_DEG:
            earned += W_GEO
        elif d_lat < GEO_HALF_DEG and d_lng < GEO_HALF_DEG:
            earned += W_GEO / 2

    if ceiling <= 0:
        return 0.0
    return max(earned / ceiling, floor)


def is_duplicate(a: CanonicalListing, b: CanonicalListing, threshold: float = DEFAULT_THRESHOLD) -> bool:
    return duplicate_score(a, b) >= threshold


def match_reason(a: CanonicalListing, b: CanonicalListing) -> str:
    if _norm_id(a.mls_number) and _norm_id(a.mls_number) == _norm_id(b.mls_number):
        return "mls_number"
    if _norm_id(a.listing_id) and _norm_id(a.listing_id) == _norm_id(b.listing_id):
        return "listing_id"
    if a.address_key and a.address_key == b.address_key:
        return "address_key"
    return "proximity"


def _by_priority(listings: list[CanonicalListing]) -> list[CanonicalListing]:
    return sorted(listings, key=lambda x: source_priority(x.primary_source))


def deduplicate_listings(
    listings: list[CanonicalListing],
    threshold: float = DEFAULT_THRESHOLD,
) -> list[CanonicalListing]:
    """
    Collapse an in-memory batch (e.g. one search response mixed with DB rows).

    1) group by MLS number and merge each group in source-priority order
    2) group the rest by address key; merge members that clear `threshold`
    3) anything without a usable key passes through untouched
    """
    out: list[CanonicalListing] = []

    by_mls: dict[str, list[CanonicalListing]] = {}
    rest: list[CanonicalListing] = []
    for item in listings:
        key = _norm_id(item.mls_number)
        if key:
            by_mls.setdefault(key, []).append(item)
        else:
            rest.append(item)

    for group in by_mls.values():
        ordered = _by_priority(group)
        merged = ordered[0]
        for other in ordered[1:]:
            merged = merge_listings(merged, other)
        out.append(merged)

    by_addr: dict[str, list[CanonicalListing]] = {}
    keyless: list[CanonicalListing] = []
    for item in rest:
        if key_strength(item.address_key) >= MIN_ADDRESS_KEY_PARTS:
            by_addr.setdefault(item.address_key, []).append(item)
        else:
            keyless.append(item)

    for group in by_addr.values():
        ordered = _by_priority(group)
        merged = ordered[0]
        for other in ordered[1:]:
            if duplicate_score(merged, other) >= threshold:
                merged = merge_listings(merged, other)
            else:
                out.append(other)
        out.append(merged)

    out.extend(keyless)
    return out


@dataclass(frozen=True)
class DuplicatePair:
    primary_id: str
    duplicate_id: str
    score: float
    reason: str


def find_near_duplicates(
    listings: list[CanonicalListing],
    lower: float = 0.5,
    upper: float = DEFAULT_THRESHOLD,
) -> list[DuplicatePair]:
    """Pairs scoring in [lower, upper): likely duplicates the threshold did not merge."""
    pairs: list[DuplicatePair] = []
    for i, a in enumerate(listings):
        for b in listings[i + 1:]:
            score = duplicate_score(a, b)
            if lower <= score < upper:
                pairs.append(DuplicatePair(a.id, b.id, score, match_reason(a, b)))
    return pairs
