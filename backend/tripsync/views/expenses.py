"""
Expense Ledger View

Normalizes stored expenses to ``{id, description, amount, paidBy: {name}, createdAt}``
in stored (append) order. A malformed record degrades field by field and never
blocks the rest of the ledger.
"""

import math
from typing import Any

from tripsync.views.members import UNKNOWN_NAME
from tripsync.views.timestamps import to_iso


def coerce_amount(value: Any) -> float | int:
    """Numeric amount; missing or unparsable values become 0."""
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else 0
    if isinstance(value, str):
        text = value.strip().replace(",", "")
        try:
            number = float(text)
        except ValueError:
            return 0
        return number if math.isfinite(number) else 0
    return 0


def coerce_paid_by(raw: dict, member_lookup: dict[str, dict]) -> dict:
    """
    Resolve who paid, in order: an object with a name, a bare name string,
    ``paidByUserId`` through the member lookup, else "Unknown".
    """
    paid_by = raw.get("paidBy")
    if isinstance(paid_by, dict) and paid_by.get("name"):
        resolved = {"name": str(paid_by["name"])}
        for key in ("id", "avatar"):
            if paid_by.get(key):
                resolved[key] = paid_by[key]
        return resolved
    if isinstance(paid_by, str) and paid_by.strip():
        return {"name": paid_by.strip()}

    member = member_lookup.get(str(raw.get("paidByUserId") or ""))
    if member:
        return {"name": member["name"], "id": member["id"]}
    return {"name": UNKNOWN_NAME}


def coerce_expense(raw: Any, member_lookup: dict[str, dict], index: int = 0) -> dict:
    raw = raw if isinstance(raw, dict) else {}
    record_id = raw.get("_id", raw.get("id"))
    return {
        "id": str(record_id) if record_id not in (None, "") else f"doc-{index}",
        "description": str(raw.get("description") or ""),
        "amount": coerce_amount(raw.get("amount")),
        "paidBy": coerce_paid_by(raw, member_lookup),
        "createdAt": to_iso(raw.get("createdAt") or raw.get("timestamp"), default_now=False),
    }


def normalize_expenses(records: Any, member_lookup: dict[str, dict] | None = None) -> list[dict]:
    if not isinstance(records, list):
        return []
    lookup = member_lookup or {}
    return [coerce_expense(raw, lookup, i) for i, raw in enumerate(records)]


def ledger_total(expenses: list[dict]) -> float:
    return sum(coerce_amount(e.get("amount")) for e in expenses)
