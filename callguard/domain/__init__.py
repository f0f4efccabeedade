"""
Domain layer - Pure business logic without external dependencies.
"""

from .conflicts import ConflictDetector, intervals_conflict
from .models import (
    Booking,
    BookingStatus,
    BusyInterval,
    BusySource,
    CallCompleted,
    CallOutcome,
    FlagRaised,
    Slot,
    Standing,
    Subject,
    SuspensionRecord,
    TimeRange,
    TimeWindow,
)
from .slot_generator import SlotGenerator
from .suspension import SuspensionPolicy, is_suspended
from .window import normalize_day, normalize_window

__all__ = [
    "Booking",
    "BookingStatus",
    "BusyInterval",
    "BusySource",
    "CallCompleted",
    "CallOutcome",
    "ConflictDetector",
    "FlagRaised",
    "Slot",
    "SlotGenerator",
    "Standing",
    "Subject",
    "SuspensionPolicy",
    "SuspensionRecord",
    "TimeRange",
    "TimeWindow",
    "intervals_conflict",
    "is_suspended",
    "normalize_day",
    "normalize_window",
]
