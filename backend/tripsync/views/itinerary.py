"""
Itinerary Normalizer

Merges a trip's activities and hotel suggestions into one day-indexed view:

    {"days": [{"day": 1, "date": "2026-01-10", "activities": [...], "hotels": [...]}]}

The embedded ``itinerary.days`` of the trip document wins when it has at least
one day. Otherwise days are built from the trip's activities collection and
hotels are still taken from the embedded itinerary when present.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Iterable

from tripsync.views.reactions import normalize_reactions

logger = logging.getLogger(__name__)

# canonical field -> accepted stored keys, in preference order
ACTIVITY_FIELDS: dict[str, tuple[str, ...]] = {
    "time": ("time",),
    "title": ("title", "activity", "name"),
    "category": ("category", "type"),
    "duration": ("duration",),
    "cost": ("cost",),
    "description": ("description",),
    "image": ("image", "imageUrl"),
    "location": ("location",),
    "rating": ("rating",),
    "reviews": ("reviews",),
    "proposedBy": ("proposedBy",),
}

HOTEL_FIELDS: dict[str, tuple[str, ...]] = {
    "name": ("name", "HotelName"),
    "rating": ("rating", "HotelRating"),
    "address": ("address", "Address"),
    "attractions": ("attractions", "CleanedAttractions"),
    "website": ("website", "url", "HotelWebsiteUrl"),
    "image": ("image", "HotelImage"),
}


def _pick(record: dict, keys: Iterable[str]) -> Any:
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return value
    return ""


def coerce_day(value: Any, default: int = 1) -> int:
    """Positive integer day number; anything else becomes ``default``."""
    if isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number != number or number < 1:  # NaN or non-positive
        return default
    return int(number)


def _record_id(record: dict) -> str | None:
    raw = record.get("_id", record.get("id"))
    return str(raw) if raw not in (None, "") else None


def coerce_activity(record: Any, day: int | None = None) -> dict:
    record = record if isinstance(record, dict) else {}
    activity = {"id": _record_id(record), "day": day if day is not None else coerce_day(record.get("day"))}
    for field, keys in ACTIVITY_FIELDS.items():
        activity[field] = _pick(record, keys)
    activity["reactions"] = normalize_reactions(record.get("reactions"))
    return activity


def coerce_hotel(record: Any) -> dict:
    record = record if isinstance(record, dict) else {}
    hotel = {field: _pick(record, keys) for field, keys in HOTEL_FIELDS.items()}
    hotel["reactions"] = normalize_reactions(record.get("reactions"))
    return hotel


def _embedded_days(trip_doc: dict) -> list:
    itinerary = trip_doc.get("itinerary") if isinstance(trip_doc, dict) else None
    days = itinerary.get("days") if isinstance(itinerary, dict) else None
    return [d for d in days if isinstance(d, dict)] if isinstance(days, list) else []


def normalize(trip_doc: Any, activities: Iterable[Any] | None = None) -> dict:
    """
    Build the canonical ``{"days": [...]}`` structure. Never returns an empty
    day list and never raises for malformed records. Idempotent: feeding the
    output back in as ``{"itinerary": output}`` yields the same structure.
    """
    trip_doc = trip_doc if isinstance(trip_doc, dict) else {}
    embedded = _embedded_days(trip_doc)
    days_map: dict[int, dict] = {}

    if embedded:
        for raw_day in embedded:
            number = coerce_day(raw_day.get("day"))
            day = days_map.setdefault(number, {"day": number, "activities": [], "hotels": []})
            if raw_day.get("date"):
                day["date"] = raw_day["date"]
            day["activities"].extend(coerce_activity(a, number) for a in raw_day.get("activities") or [])
            day["hotels"].extend(coerce_hotel(h) for h in raw_day.get("hotels") or [])
    else:
        for record in activities or []:
            activity = coerce_activity(record)
            number = activity["day"]
            days_map.setdefault(number, {"day": number, "activities": [], "hotels": []})
            days_map[number]["activities"].append(activity)

    if not days_map:
        days_map[1] = {"day": 1, "activities": [], "hotels": []}

    return {"days": [days_map[n] for n in sorted(days_map)]}


def parse_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def trip_day_count(start: Any, end: Any) -> int:
    """Number of calendar days a trip covers, both ends included; at least 1."""
    start_date, end_date = parse_date(start), parse_date(end)
    if start_date is None or end_date is None or end_date < start_date:
        return 1
    return (end_date - start_date).days + 1


def complete_days(itinerary: dict, start: Any, end: Any) -> dict:
    """
    Pad a normalized itinerary so days 1..N all exist and carry their date.

    Days beyond N (activities left over after the trip was shortened) are
    kept rather than dropped.
    """
    count = trip_day_count(start, end)
    start_date = parse_date(start)
    by_number = {d["day"]: d for d in itinerary.get("days", [])}

    for number in range(1, count + 1):
        by_number.setdefault(number, {"day": number, "activities": [], "hotels": []})

    overflow = [n for n in by_number if n > count]
    if overflow:
        logger.info("[complete_days] Keeping %d day(s) beyond the trip range: %s", len(overflow), sorted(overflow))

    days = []
    for number in sorted(by_number):
        day = dict(by_number[number])
        if start_date is not None:
            day["date"] = (start_date + timedelta(days=number - 1)).isoformat()
        days.append(day)
    return {"days": days}
