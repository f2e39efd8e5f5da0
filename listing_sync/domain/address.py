# listing_sync/domain/address.py
from __future__ import annotations

import re
from typing import Any

_SUFFIXES: tuple[tuple[str, str], ...] = (
    ("street", "st"),
    ("avenue", "ave"),
    ("boulevard", "blvd"),
    ("road", "rd"),
    ("drive", "dr"),
    ("lane", "ln"),
    ("court", "ct"),
    ("circle", "cir"),
    ("place", "pl"),
    ("terrace", "ter"),
    ("way", "wy"),
    ("highway", "hwy"),
    ("parkway", "pkwy"),
)
_SUFFIX_PATTERNS = [(re.compile(rf"\b{word}\b"), abbr) for word, abbr in _SUFFIXES]

_UNIT_PREFIX = re.compile(r"^(?:unit|apartment|apt|suite|ste|#)\.?\s*#?\s*", re.IGNORECASE)
_UNIT_PUNCT = re.compile(r"[.#,\-]")
_PUNCT = re.compile(r"[.,#]")
_WS = re.compile(r"\s+")


def _clean(x: Any) -> str:
    if x is None:
        return ""
    return str(x).strip()


def normalize_street_name(street_name: Any) -> str:
    s = _clean(street_name).lower()
    for pattern, abbr in _SUFFIX_PATTERNS:
        s = pattern.sub(abbr, s)
    s = _PUNCT.sub("", s)
    return _WS.sub(" ", s).strip()


def normalize_unit(unit: Any) -> str:
    u = _UNIT_PREFIX.sub("", _clean(unit).lower())
    return _WS.sub("", _UNIT_PUNCT.sub("", u))


def address_key(
    street_number: Any,
    street_name: Any,
    unit: Any = None,
    city: Any = None,
    state: Any = None,
    postal_code: Any = None,
) -> str:
    """
    Pipe-joined matching key: number|street|u<unit>|city|state|zip5.
    Missing parts are dropped, so a partial key is still usable (weaker) evidence.

    >>> address_key(123, "Main Street", None, "Austin", "TX", "78704")
    '123|main st|austin|tx|78704'
    """
    parts: list[str] = []

    number = _clean(street_number).lower()
    if number:
        parts.append(number)

    street = normalize_street_name(street_name)
    if street:
        parts.append(street)

    u = normalize_unit(unit)
    if u:
        parts.append(f"u{u}")

    c = _WS.sub("", _clean(city).lower())
    if c:
        parts.append(c)

    st = _clean(state).lower()
    if st:
        parts.append(st)

    z = _clean(postal_code)[:5]
    if z:
        parts.append(z)

    return "|".join(parts)


def address_key_from_line(line: Any, city: Any = None, state: Any = None, postal_code: Any = None) -> str:
    """
    For sources that only carry an unparsed street line ("123 Main St").
    First token is taken as the street number.
    """
    text = _clean(line)
    if not text:
        return ""
    tokens = text.split()
    if len(tokens) < 2:
        return "|".join(tokens).lower()
    return address_key(tokens[0], " ".join(tokens[1:]), None, city, state, postal_code)


def key_strength(key: str | None) -> int:
    """Number of populated components in a key."""
    if not key:
        return 0
    return len([p for p in key.split("|") if p])


def generate_canonical_id(
    mls_number: str | None = None,
    listing_id: str | None = None,
    database_id: str | None = None,
    addr_key: str | None = None,
) -> str | None:
    """
    Priority: MLS number > listing id > database id > address key.
    Returns None when nothing stable is available; callers must reject the record.
    """
    if mls_number:
        return f"mls:{mls_number}"
    if listing_id:
        return f"lid:{listing_id}"
    if database_id:
        return f"db:{database_id}"
    if addr_key:
        return f"addr:{addr_key}"
    return None
