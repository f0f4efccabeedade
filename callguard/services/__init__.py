"""
Service layer helpers that orchestrate stores and domain logic.
"""

from .availability import AvailabilityService, fetch_external_busy
from .bookings import BookingService
from .locking import SubjectLockRegistry
from .protocols import BookingStore, BusyTimeProvider, SubjectStore
from .standing import StandingService, StandingStatus

__all__ = [
    "AvailabilityService",
    "BookingService",
    "BookingStore",
    "BusyTimeProvider",
    "StandingService",
    "StandingStatus",
    "SubjectLockRegistry",
    "SubjectStore",
    "fetch_external_busy",
]
