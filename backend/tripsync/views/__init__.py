"""
Pure normalizers for stored trip data. Nothing in this package touches the
database or raises for malformed records.
"""

from tripsync.views.chat import normalize_messages
from tripsync.views.expenses import normalize_expenses
from tripsync.views.itinerary import complete_days, normalize as normalize_itinerary
from tripsync.views.live import TripLiveView
from tripsync.views.members import build_lookup
from tripsync.views.reactions import apply_reaction

__all__ = [
    "apply_reaction",
    "build_lookup",
    "complete_days",
    "normalize_expenses",
    "normalize_itinerary",
    "normalize_messages",
    "TripLiveView",
]
