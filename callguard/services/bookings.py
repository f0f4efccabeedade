"""
Booking confirmation, cancellation and completion.

Confirmation never trusts a slot computed by an earlier availability query:
the suspension check and the conflict detector are re-run inside the same
locked section that performs the write.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, List, Optional

from pendulum import DateTime

from ..domain.conflicts import ConflictDetector, bookings_in_window, busy_intervals_from_bookings
from ..domain.exceptions import BookingConflict, SubjectSuspended, UnknownBooking
from ..domain.models import (
    Booking,
    BookingStatus,
    BusyInterval,
    BusySource,
    CallCompleted,
    CallOutcome,
    TimeWindow,
)
from ..domain.suspension import is_suspended
from .availability import utc_now
from .protocols import BookingStore, SubjectStore
from .standing import StandingService

logger = logging.getLogger(__name__)


class BookingService:
    """
    Write path for bookings, sharing per-subject locks with StandingService.
    """

    def __init__(
        self,
        booking_store: BookingStore,
        subject_store: SubjectStore,
        standing_service: StandingService,
        clock: Callable[[], DateTime] = utc_now,
    ) -> None:
        self._booking_store = booking_store
        self._subject_store = subject_store
        self._standing = standing_service
        self._locks = standing_service.locks
        self._clock = clock

    def confirm_booking(
        self,
        booking: Booking,
        external_busy: Optional[List[BusyInterval]] = None,
    ) -> Booking:
        """
        Persist a new booking after re-checking the subject's standing and conflicts.

        Args:
            booking: The booking to confirm (status is forced to scheduled)
            external_busy: Busy intervals from an external calendar, fetched by the caller

        Returns:
            The stored booking

        Raises:
            UnknownSubject: If the subject does not exist
            SubjectSuspended: If the subject is suspended right now
            BookingConflict: If the interval overlaps an existing call of the
                subject or of the requester, or an external busy interval
        """
        lock_ids = [booking.subject_id]
        if booking.requester_id:
            lock_ids.append(f"requester:{booking.requester_id}")

        with self._locks.hold(*lock_ids):
            subject = self._subject_store.get_subject(booking.subject_id)
            if is_suspended(subject, self._clock()):
                logger.warning(
                    "Rejected booking %s: subject %s is suspended",
                    booking.booking_id,
                    booking.subject_id,
                )
                raise SubjectSuspended(booking.subject_id, subject.suspension.reason)

            conflicts = self._find_conflicts(booking, external_busy or [])
            if conflicts:
                logger.warning(
                    "Rejected booking %s: %d conflicting interval(s)",
                    booking.booking_id,
                    len(conflicts),
                )
                raise BookingConflict(booking.booking_id, conflicts)

            saved = self._booking_store.save_booking(
                replace(booking, status=BookingStatus.SCHEDULED, outcome=None)
            )

        logger.info(
            "Confirmed booking %s for %s at %s",
            saved.booking_id,
            saved.subject_id,
            saved.time_range,
        )
        return saved

    def cancel_booking(self, booking_id: str) -> Booking:
        """Mark a booking cancelled so it stops blocking slots."""
        booking = self._get(booking_id)

        with self._locks.hold(booking.subject_id):
            booking = self._get(booking_id)
            if booking.status is BookingStatus.CANCELLED:
                return booking
            saved = self._booking_store.save_booking(replace(booking, status=BookingStatus.CANCELLED))

        logger.info("Cancelled booking %s", booking_id)
        return saved

    def complete_booking(
        self,
        booking_id: str,
        outcome: CallOutcome,
        event_id: Optional[str] = None,
    ) -> Booking:
        """
        Record a call outcome and forward it to the standing rules.

        A non-negative outcome lifts a suspension of the subject that is in
        effect. ``event_id`` defaults to one derived from the booking, so
        recording the same completion twice is harmless. The outcome of a
        completed booking is final.

        Raises:
            UnknownBooking: If the booking does not exist
            ValueError: If the booking was cancelled, or already completed
                with a different outcome
        """
        booking = self._get(booking_id)

        with self._locks.hold(booking.subject_id):
            booking = self._get(booking_id)
            if booking.status is BookingStatus.CANCELLED:
                raise ValueError(f"Booking {booking_id} was cancelled and cannot be completed")
            if booking.status is BookingStatus.COMPLETED:
                if booking.outcome is outcome:
                    return booking
                raise ValueError(f"Booking {booking_id} was already completed with a different outcome")

            self._standing.handle_call_completed(
                CallCompleted(
                    subject_id=booking.subject_id,
                    event_id=event_id or f"call-completed:{booking_id}",
                    outcome=outcome,
                    occurred_at=self._clock(),
                    booking_id=booking_id,
                )
            )
            saved = self._booking_store.save_booking(
                replace(booking, status=BookingStatus.COMPLETED, outcome=outcome)
            )

        logger.info("Booking %s completed with outcome %s", booking_id, outcome.value)
        return saved

    def _find_conflicts(self, booking: Booking, external_busy: List[BusyInterval]) -> List[BusyInterval]:
        window = TimeWindow(start=booking.time_range.start, end=booking.time_range.end)

        others = [
            existing
            for existing in self._booking_store.list_bookings(booking.subject_id, window)
            if existing.booking_id != booking.booking_id
        ]
        busy = busy_intervals_from_bookings(bookings_in_window(others, window))

        if booking.requester_id:
            requester_others = [
                existing
                for existing in self._booking_store.list_requester_bookings(booking.requester_id, window)
                if existing.booking_id != booking.booking_id and existing.subject_id != booking.subject_id
            ]
            busy.extend(
                busy_intervals_from_bookings(
                    bookings_in_window(requester_others, window),
                    BusySource.REQUESTER_BOOKING,
                )
            )

        busy.extend(external_busy)

        return ConflictDetector(busy).find_conflicts(booking.time_range)

    def _get(self, booking_id: str) -> Booking:
        booking = self._booking_store.get_booking(booking_id)
        if booking is None:
            raise UnknownBooking(booking_id)
        return booking
