# listing_sync/domain/status.py
from __future__ import annotations

from .types import StandardStatus

_LONG_FORMS: dict[str, StandardStatus] = {
    "active": StandardStatus.active,
    "active under contract": StandardStatus.active_under_contract,
    "pending": StandardStatus.pending,
    "closed": StandardStatus.closed,
}

_CLOSED_CODES = {"Sld", "Lsd"}
_PENDING_CODES = {"Pnd", "P"}

_ABBREVIATIONS: dict[str, StandardStatus] = {
    "A": StandardStatus.active,
    "U": StandardStatus.pending,  # U without a lastStatus override is Pending
    "S": StandardStatus.closed,
    "P": StandardStatus.pending,
    "Lc": StandardStatus.active_under_contract,  # listing contract
    "Sc": StandardStatus.active_under_contract,  # seller contract
}

# Vocabulary seen on older feeds and the search API query params.
# Off-market terms collapse into Closed so they never surface as available.
_EXTENDED: dict[str, StandardStatus] = {
    "sold": StandardStatus.closed,
    "under contract": StandardStatus.pending,
    "under_contract": StandardStatus.active_under_contract,
    "active_under_contract": StandardStatus.active_under_contract,
    "undercontract": StandardStatus.active_under_contract,
    "contingent": StandardStatus.pending,
    "expired": StandardStatus.closed,
    "withdrawn": StandardStatus.closed,
    "cancelled": StandardStatus.closed,
    "canceled": StandardStatus.closed,
    "terminated": StandardStatus.closed,
    "x": StandardStatus.closed,
    "w": StandardStatus.closed,
    "c": StandardStatus.closed,
    "t": StandardStatus.closed,
}


def normalize_status(
    raw_status: str | None,
    raw_last_status: str | None = None,
    *,
    default: StandardStatus = StandardStatus.unknown,
) -> StandardStatus:
    """
    Map a source status vocabulary onto StandardStatus.

    Precedence, highest first:
      1) canonical long form ("Active", "Pending", ...) or anything containing
         "Active Under Contract" ("Active Under Contract - Showing")
      2) legacy MLS codes, checked on lastStatus first and then status:
         Sld/Lsd -> Closed, AU -> Active Under Contract,
         status U + lastStatus Act -> Active Under Contract, Pnd/P -> Pending
      3) short codes (A, S, Lc, Sc, ...) and the extended vocabulary
      4) `default` (Unknown unless the caller asks otherwise)
    """
    status = (raw_status or "").strip()
    last = (raw_last_status or "").strip()

    lowered = status.lower()
    if lowered in _LONG_FORMS:
        return _LONG_FORMS[lowered]
    if "active under contract" in lowered:
        return StandardStatus.active_under_contract

    if last in _CLOSED_CODES or status in _CLOSED_CODES:
        return StandardStatus.closed
    if last == "AU" or status == "AU":
        return StandardStatus.active_under_contract
    if status == "U" and last == "Act":
        return StandardStatus.active_under_contract
    if last in _PENDING_CODES or status == "Pnd":
        return StandardStatus.pending

    if status in _ABBREVIATIONS:
        return _ABBREVIATIONS[status]
    if lowered in _EXTENDED:
        return _EXTENDED[lowered]

    return default


def is_active_status(status: StandardStatus) -> bool:
    return status in (StandardStatus.active, StandardStatus.active_under_contract)


def is_under_contract_status(status: StandardStatus) -> bool:
    return status in (StandardStatus.active_under_contract, StandardStatus.pending)


def is_closed_status(status: StandardStatus) -> bool:
    return status is StandardStatus.closed
