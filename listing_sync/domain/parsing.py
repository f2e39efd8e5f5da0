# listing_sync/domain/parsing.py
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any


def to_int(x: Any) -> int | None:
    if x is None or x == "":
        return None
    try:
        return int(float(x))
    except (TypeError, ValueError, OverflowError):
        return None


def to_float(x: Any) -> float | None:
    if x is None or x == "":
        return None
    try:
        f = float(x)
    except (TypeError, ValueError, OverflowError):
        return None
    return f if math.isfinite(f) else None


def to_str(x: Any) -> str | None:
    if x is None:
        return None
    s = str(x).strip()
    return s or None


def to_datetime(x: Any) -> datetime | None:
    """
    Parse RESO-ish timestamps ("2024-01-01T00:00:00Z", "2024-01-01") into aware UTC datetimes.
    Unparseable input returns None.
    """
    if x is None or x == "":
        return None
    if isinstance(x, datetime):
        dt = x
    else:
        s = str(x).strip()
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_odata_timestamp(dt: datetime) -> str:
    """2024-01-01T00:00:00.000Z, the shape the feed expects in $filter."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def get_first(payload: dict[str, Any], *keys: str) -> Any:
    """Return first non-empty key from payload."""
    for k in keys:
        v = payload.get(k)
        if v is None:
            continue
        if isinstance(v, str) and not v.strip():
            continue
        return v
    return None


def get_nested(payload: dict[str, Any], path: str) -> Any:
    """Tiny dot-path getter: 'address.city' or 'map.latitude'."""
    cur: Any = payload
    for part in path.split("."):
        if not isinstance(cur, dict):
            return None
        cur = cur.get(part)
        if cur is None:
            return None
    return cur
