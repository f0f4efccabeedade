"""
Domain-specific exception hierarchy for callguard.
"""

from typing import Any, List, Optional


class CallGuardError(Exception):
    """Base class for all application-level errors."""


class InvalidWindow(CallGuardError, ValueError):
    """Raised when a requested window starts after it ends."""


class InvalidDuration(CallGuardError, ValueError):
    """Raised when a slot duration or step is not positive."""


class UnknownSubject(CallGuardError, LookupError):
    """Raised when a subject cannot be found in the store."""

    def __init__(self, subject_id: str):
        super().__init__(f"Unknown subject: {subject_id}")
        self.subject_id = subject_id


class UnknownBooking(CallGuardError, LookupError):
    """Raised when a booking cannot be found in the store."""

    def __init__(self, booking_id: str):
        super().__init__(f"Unknown booking: {booking_id}")
        self.booking_id = booking_id


class StaleSuspensionWrite(CallGuardError):
    """
    Raised when a subject write is attempted against a version that has
    changed since it was read. The caller should retry the serialized section.
    """

    def __init__(self, subject_id: str, expected_version: int, actual_version: int):
        super().__init__(
            f"Subject {subject_id} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )
        self.subject_id = subject_id
        self.expected_version = expected_version
        self.actual_version = actual_version


class SubjectSuspended(CallGuardError):
    """Raised when a booking is attempted for a currently suspended subject."""

    def __init__(self, subject_id: str, reason: Optional[str] = None):
        message = f"Subject {subject_id} is suspended"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.subject_id = subject_id
        self.reason = reason


class BookingConflict(CallGuardError):
    """Raised when a booking overlaps an existing busy interval."""

    def __init__(self, booking_id: str, conflicts: List[Any]):
        super().__init__(
            f"Booking {booking_id} conflicts with {len(conflicts)} existing interval(s)"
        )
        self.booking_id = booking_id
        self.conflicts = conflicts
