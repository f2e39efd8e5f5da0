from listing_sync.domain.merge import determine_primary_source, merge_listings, source_priority
from listing_sync.domain.types import CanonicalListing, ListingSource, StandardStatus


def _listing(id_: str, source: ListingSource, **kw) -> CanonicalListing:
    return CanonicalListing(id=id_, primary_source=source, sources={source}, **kw)


def test_fill_only_if_missing():
    primary = _listing("mls:1", ListingSource.mls, beds=3)
    secondary = _listing("lid:9", ListingSource.search_api, beds=4, year_built=1985)

    merged = merge_listings(primary, secondary)
    assert merged.beds == 3
    assert merged.year_built == 1985
    assert merged.id == "mls:1"

    empty = _listing("mls:2", ListingSource.mls, beds=None)
    assert merge_listings(empty, secondary).beds == 4


def test_unknown_status_counts_as_missing():
    primary = _listing("mls:1", ListingSource.mls, standard_status=StandardStatus.unknown)
    secondary = _listing("lid:9", ListingSource.search_api, standard_status=StandardStatus.pending)
    assert merge_listings(primary, secondary).standard_status == StandardStatus.pending

    primary.standard_status = StandardStatus.active
    assert merge_listings(primary, secondary).standard_status == StandardStatus.active


def test_sources_ids_photos_and_raw_union():
    primary = _listing(
        "mls:1",
        ListingSource.mls,
        source_ids={ListingSource.mls: "K1"},
        photos=["a.jpg", "b.jpg"],
        raw={ListingSource.mls: {"ListingKey": "K1"}},
    )
    secondary = _listing(
        "addr:x",
        ListingSource.database,
        source_ids={ListingSource.database: "7", ListingSource.mls: "OLD"},
        photos=["b.jpg", "c.jpg"],
        raw={ListingSource.database: {"id": 7}, ListingSource.mls: {"ListingKey": "OLD"}},
    )

    merged = merge_listings(primary, secondary)
    assert merged.source_ids == {ListingSource.mls: "K1", ListingSource.database: "7"}
    assert merged.sources == {ListingSource.mls, ListingSource.database}
    assert merged.photos == ["a.jpg", "b.jpg", "c.jpg"]
    assert merged.raw[ListingSource.mls] == {"ListingKey": "K1"}
    assert merged.raw[ListingSource.database] == {"id": 7}


def test_primary_source_recomputed():
    db_first = _listing("db:1", ListingSource.database)
    search = _listing("lid:1", ListingSource.search_api)
    assert merge_listings(db_first, search).primary_source == ListingSource.search_api

    assert determine_primary_source([ListingSource.database, ListingSource.mls]) == ListingSource.mls
    assert source_priority(ListingSource.mls) < source_priority(ListingSource.search_api)


def test_merge_does_not_mutate_inputs():
    primary = _listing("mls:1", ListingSource.mls, photos=["a.jpg"])
    secondary = _listing("lid:1", ListingSource.search_api, photos=["b.jpg"], beds=2)
    merge_listings(primary, secondary)
    assert primary.photos == ["a.jpg"]
    assert primary.beds is None
    assert primary.sources == {ListingSource.mls}
