"""
Timestamp coercion for stored records.

Stored timestamps come in several shapes: provider-native timestamp objects,
``datetime`` values from the driver, ``{"_seconds", "_nanoseconds"}`` dicts
from JSON exports, ISO-8601 strings and epoch milliseconds.
"""

import math
from datetime import datetime, timezone
from typing import Any

# Numbers below this are treated as epoch seconds, above as milliseconds
_EPOCH_MS_THRESHOLD = 100_000_000_000


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _from_epoch(value: float) -> datetime | None:
    if not math.isfinite(value):
        return None
    seconds = value / 1000 if abs(value) >= _EPOCH_MS_THRESHOLD else value
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _from_string(value: str) -> datetime | None:
    text = value.strip()
    if not text:
        return None
    if text.lstrip("-").replace(".", "", 1).isdigit():
        return _from_epoch(float(text))
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return _as_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def parse_timestamp(value: Any) -> datetime | None:
    """Return an aware UTC datetime, or None when the value is not a timestamp."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _as_utc(value)

    for converter in ("to_date", "toDate", "ToDatetime", "to_datetime"):
        method = getattr(value, converter, None)
        if callable(method):
            try:
                converted = method()
            except (TypeError, ValueError):
                return None
            return _as_utc(converted) if isinstance(converted, datetime) else None

    if isinstance(value, (int, float)):
        return _from_epoch(float(value))
    if isinstance(value, str):
        return _from_string(value)
    if isinstance(value, dict):
        seconds = value.get("_seconds", value.get("seconds"))
        nanos = value.get("_nanoseconds", value.get("nanoseconds")) or 0
        if isinstance(seconds, (int, float)) and isinstance(nanos, (int, float)):
            return _from_epoch(float(seconds) + float(nanos) / 1e9)
    return None


def to_iso(value: Any, default_now: bool = True) -> str | None:
    """
    Normalize a stored timestamp to an ISO-8601 string.

    Invalid or missing values become the current time when ``default_now`` is
    set (the time of normalization, not of the original write), else None.
    """
    parsed = parse_timestamp(value)
    if parsed is None:
        if not default_now:
            return None
        parsed = now_utc()
    return parsed.isoformat()
