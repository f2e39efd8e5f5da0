# listing_sync/domain/merge.py
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

from .types import MERGEABLE_FIELDS, CanonicalListing, ListingSource, StandardStatus

SOURCE_PRIORITY: dict[ListingSource, int] = {
    ListingSource.mls: 1,
    ListingSource.search_api: 2,
    ListingSource.database: 3,
}


def source_priority(source: ListingSource) -> int:
    """Lower is stronger."""
    return SOURCE_PRIORITY.get(source, 99)


def determine_primary_source(sources: Iterable[ListingSource]) -> ListingSource:
    ordered = sorted(sources, key=source_priority)
    return ordered[0] if ordered else ListingSource.database


def union_urls(first: list[str], second: list[str]) -> list[str]:
    """Order-preserving union, first list wins on position."""
    seen: set[str] = set()
    out: list[str] = []
    for url in [*first, *second]:
        if not url or url in seen:
            continue
        seen.add(url)
        out.append(url)
    return out


def merge_listings(primary: CanonicalListing, secondary: CanonicalListing) -> CanonicalListing:
    """
    Fill-if-missing merge. The result keeps primary.id.

    - source ids / sources are unioned (primary wins when both name the same source)
    - each scalar keeps primary's non-null value, otherwise takes secondary's
    - Unknown status counts as missing
    - photos are unioned by URL
    - raw payloads stay namespaced; a source only ever replaces its own payload
    - primary_source is recomputed from the priority table
    """
    merged = replace(
        primary,
        source_ids={**secondary.source_ids, **primary.source_ids},
        sources=set(primary.sources) | set(secondary.sources),
        photos=union_urls(primary.photos, secondary.photos),
        raw={**secondary.raw, **primary.raw},
    )

    for name in MERGEABLE_FIELDS:
        if getattr(merged, name) is None:
            other = getattr(secondary, name)
            if other is not None:
                setattr(merged, name, other)

    if merged.standard_status is StandardStatus.unknown:
        merged.standard_status = secondary.standard_status

    merged.primary_source = determine_primary_source(merged.sources or {primary.primary_source})
    return merged
