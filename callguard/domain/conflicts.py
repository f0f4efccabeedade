"""
Overlap testing between candidate slots and existing busy intervals.

Intervals are half-open: ``[a1, a2)`` and ``[b1, b2)`` conflict iff
``a1 < b2 and b1 < a2``. A booking that ends exactly when a slot starts, or
starts exactly when it ends, is adjacent and does not conflict.
"""

from typing import Iterable, List

from .models import Booking, BusyInterval, BusySource, TimeRange, TimeWindow


def intervals_conflict(first: TimeRange, second: TimeRange) -> bool:
    """Half-open overlap test."""
    return first.start < second.end and second.start < first.end


def active_bookings(bookings: Iterable[Booking]) -> List[Booking]:
    """Drop cancelled bookings."""
    return [booking for booking in bookings if booking.is_active]


def bookings_in_window(bookings: Iterable[Booking], window: TimeWindow) -> List[Booking]:
    """Active bookings that intersect the window, ordered by start."""
    selected = [
        booking for booking in active_bookings(bookings)
        if window.intersects(booking.time_range)
    ]
    return sorted(selected, key=lambda b: b.time_range.start)


def busy_intervals_from_bookings(
    bookings: Iterable[Booking],
    source: BusySource = BusySource.SUBJECT_BOOKING,
) -> List[BusyInterval]:
    return [booking.as_busy_interval(source) for booking in active_bookings(bookings)]


class ConflictDetector:
    """
    Tests candidate slots against a fixed set of busy intervals.

    The busy set is sorted once so that conflicts are reported in start order
    and the scan can stop at the first interval starting after the slot.
    """

    def __init__(self, busy_intervals: Iterable[BusyInterval]):
        self._busy = sorted(busy_intervals, key=lambda b: (b.time_range.start, b.time_range.end))

    @property
    def busy_intervals(self) -> List[BusyInterval]:
        return list(self._busy)

    def find_conflicts(self, slot: TimeRange) -> List[BusyInterval]:
        """
        Return every busy interval overlapping the slot.

        Args:
            slot: Candidate time range

        Returns:
            Conflicting intervals ordered by start (empty if the slot is free)
        """
        conflicts: List[BusyInterval] = []

        for busy in self._busy:
            # Sorted by start: nothing further can overlap
            if busy.time_range.start >= slot.end:
                break
            if intervals_conflict(slot, busy.time_range):
                conflicts.append(busy)

        return conflicts

    def has_conflict(self, slot: TimeRange) -> bool:
        return bool(self.find_conflicts(slot))
