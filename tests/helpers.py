"""
Helpers shared by the test modules.
"""

from typing import Optional

import pendulum

from callguard.domain.models import Booking, BookingStatus, TimeRange


def utc(value: str) -> pendulum.DateTime:
    return pendulum.parse(value, tz="UTC")


def make_booking(
    booking_id: str,
    start: str,
    end: str,
    subject_id: str = "dm-1",
    requester_id: Optional[str] = "rep-1",
    status: BookingStatus = BookingStatus.SCHEDULED,
) -> Booking:
    return Booking(
        booking_id=booking_id,
        subject_id=subject_id,
        requester_id=requester_id,
        time_range=TimeRange(start=utc(start), end=utc(end)),
        status=status,
    )


class FrozenClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: str):
        self.now = utc(now)

    def __call__(self) -> pendulum.DateTime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now.add(**kwargs)
