from listing_sync.domain.dedupe import (
    deduplicate_listings,
    duplicate_score,
    find_near_duplicates,
    is_duplicate,
    match_reason,
)
from listing_sync.domain.types import CanonicalListing, ListingSource


def _listing(id_: str, source: ListingSource = ListingSource.mls, **kw) -> CanonicalListing:
    return CanonicalListing(id=id_, primary_source=source, sources={source}, **kw)


def test_same_mls_number_different_address_merges():
    a = _listing("mls:1", mls_number="1", address_key="123|main st|austin|tx|78704", list_price=300000)
    b = _listing(
        "mls:1b",
        ListingSource.search_api,
        mls_number="1",
        address_key="123|main|austin|tx|78704",
        list_price=300000,
    )
    assert duplicate_score(a, b) >= 0.85
    assert is_duplicate(a, b)
    assert match_reason(a, b) == "mls_number"


def test_nothing_shared_scores_low():
    a = _listing("a", address_key="1|oak st|austin|tx|78704", list_price=100000)
    b = _listing("b", address_key="9|elm st|austin|tx|78704", list_price=140000)
    assert duplicate_score(a, b) < 0.2
    assert not is_duplicate(a, b)


def test_missing_fields_do_not_penalize():
    a = _listing("a", address_key="1|oak st|austin|tx|78704")
    b = _listing("b", address_key="1|oak st|austin|tx|78704", list_price=250000)
    assert duplicate_score(a, b) == 1.0


def test_price_and_geo_partial_credit():
    a = _listing("a", address_key="k", list_price=100000, latitude=30.0, longitude=-97.0)
    b = _listing("b", address_key="k", list_price=103000, latitude=30.003, longitude=-97.003)
    # 60 + 10 + 15 out of 110
    assert abs(duplicate_score(a, b) - 85 / 110) < 1e-9


def test_no_comparable_fields_scores_zero():
    assert duplicate_score(_listing("a"), _listing("b")) == 0.0


def test_deduplicate_batch_groups_by_mls_then_address():
    key = "10|pine st|austin|tx|78704"
    listings = [
        _listing("lid:S1", ListingSource.search_api, listing_id="S1", address_key=key, list_price=200000, beds=3),
        _listing("mls:7", mls_number="7", list_price=500000),
        _listing("mls:7x", ListingSource.search_api, mls_number="7", baths=2.0),
        _listing("db:3", ListingSource.database, address_key=key, list_price=200500, year_built=1990),
        _listing("addr:x", ListingSource.database),
    ]
    out = deduplicate_listings(listings)
    by_id = {x.id: x for x in out}

    assert len(out) == 3
    assert by_id["mls:7"].baths == 2.0
    assert by_id["lid:S1"].year_built == 1990
    assert by_id["lid:S1"].sources == {ListingSource.search_api, ListingSource.database}
    assert "addr:x" in by_id


def test_near_duplicates_report():
    a = _listing("a", address_key="k1", list_price=100000, latitude=30.0, longitude=-97.0)
    b = _listing("b", list_price=100500, latitude=30.003, longitude=-97.003)
    c = _listing("c", address_key="k3", list_price=900000)

    pairs = find_near_duplicates([a, b, c])
    assert [(p.primary_id, p.duplicate_id) for p in pairs] == [("a", "b")]
    assert pairs[0].reason == "proximity"
    assert 0.5 <= pairs[0].score < 0.85
