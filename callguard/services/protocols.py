"""
Protocols describing the collaborators the services depend on.

Persistence and calendar access live outside callguard; anything matching
these protocols can be plugged in (see ``callguard.adapters`` for in-memory
versions used by the CLI and tests).
"""

from typing import List, Optional, Protocol

from ..domain.models import Booking, BusyInterval, Subject, TimeWindow


class BookingStore(Protocol):
    """Read/write access to scheduled calls."""

    def list_bookings(self, subject_id: str, window: TimeWindow) -> List[Booking]:
        """Return non-cancelled bookings of the subject intersecting the window."""

    def list_requester_bookings(self, requester_id: str, window: TimeWindow) -> List[Booking]:
        """Return non-cancelled bookings made by the requester intersecting the window."""

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        """Return the booking or None."""

    def save_booking(self, booking: Booking) -> Booking:
        """Insert or replace a booking."""


class SubjectStore(Protocol):
    """Read/write access to subject standing records."""

    def get_subject(self, subject_id: str) -> Subject:
        """Return the subject or raise UnknownSubject."""

    def save_subject(self, subject: Subject, expected_version: int) -> Subject:
        """Persist the subject if its stored version still matches, else raise StaleSuspensionWrite."""

    def list_subjects(self) -> List[Subject]:
        """Return every known subject."""


class BusyTimeProvider(Protocol):
    """External calendar returning additional busy intervals."""

    async def get_busy_times(self, subject_id: str, window: TimeWindow) -> List[BusyInterval]:
        """Return busy intervals for the subject inside the window."""
