"""Data models for trip assist."""
from .itinerary import Itinerary, ItineraryDay, Activity
from .preferences import TravelPreferences, TravelDates, Budget
from .session import SessionRecord, SessionStatus, ErrorCode

__all__ = [
    "Itinerary",
    "ItineraryDay",
    "Activity",
    "TravelPreferences",
    "TravelDates",
    "Budget",
    "SessionRecord",
    "SessionStatus",
    "ErrorCode",
]
