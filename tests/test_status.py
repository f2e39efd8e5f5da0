from listing_sync.domain.status import (
    is_active_status,
    is_closed_status,
    is_under_contract_status,
    normalize_status,
)
from listing_sync.domain.types import StandardStatus


def test_legacy_codes():
    assert normalize_status("Sld") == StandardStatus.closed
    assert normalize_status("Lsd") == StandardStatus.closed
    assert normalize_status("U", "Act") == StandardStatus.active_under_contract
    assert normalize_status("AU") == StandardStatus.active_under_contract
    assert normalize_status("Pnd") == StandardStatus.pending
    assert normalize_status("A", "Pnd") == StandardStatus.pending


def test_last_status_beats_single_letter():
    assert normalize_status("U", "Sld") == StandardStatus.closed
    assert normalize_status("U") == StandardStatus.pending


def test_single_letters():
    assert normalize_status("A") == StandardStatus.active
    assert normalize_status("P") == StandardStatus.pending
    assert normalize_status("S") == StandardStatus.closed


def test_long_forms_case_insensitive():
    assert normalize_status("Active Under Contract") == StandardStatus.active_under_contract
    assert normalize_status("active under contract - showing") == StandardStatus.active_under_contract
    assert normalize_status("CLOSED") == StandardStatus.closed
    assert normalize_status("Active") == StandardStatus.active


def test_extended_vocabulary():
    assert normalize_status("Sold") == StandardStatus.closed
    assert normalize_status("Withdrawn") == StandardStatus.closed
    assert normalize_status("Contingent") == StandardStatus.pending
    assert normalize_status("under_contract") == StandardStatus.active_under_contract


def test_unrecognized_is_unknown_never_active():
    assert normalize_status("ZZZ") == StandardStatus.unknown
    assert normalize_status(None) == StandardStatus.unknown
    assert normalize_status("") == StandardStatus.unknown
    assert normalize_status("ZZZ", default=StandardStatus.active) == StandardStatus.active


def test_status_helpers():
    assert is_active_status(StandardStatus.active_under_contract) is True
    assert is_active_status(StandardStatus.pending) is False
    assert is_under_contract_status(StandardStatus.pending) is True
    assert is_closed_status(StandardStatus.closed) is True
    assert is_closed_status(StandardStatus.unknown) is False


def test_contract_abbreviations():
    assert normalize_status("Lc") == StandardStatus.active_under_contract
    assert normalize_status("Sc") == StandardStatus.active_under_contract
