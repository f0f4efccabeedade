"""
Application service listing bookable slots for a subject.

The service composes the window normalizer, the slot generator, the conflict
detector and the suspension rules. It only reads: bookings and subject state
come from the stores, and busy times from an external calendar must be
fetched by the caller beforehand (``fetch_external_busy``) under whatever
timeout the caller wants.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

import pendulum
from pendulum import DateTime

from ..domain.conflicts import ConflictDetector, bookings_in_window, busy_intervals_from_bookings
from ..domain.exceptions import InvalidDuration
from ..domain.models import BusyInterval, BusySource, Slot, TimeWindow
from ..domain.slot_generator import SlotGenerator
from ..domain.suspension import SuspensionPolicy, is_suspended
from ..domain.window import InstantLike, normalize_window
from .protocols import BookingStore, BusyTimeProvider, SubjectStore

logger = logging.getLogger(__name__)


def utc_now() -> DateTime:
    return pendulum.now("UTC")


async def fetch_external_busy(
    provider: BusyTimeProvider,
    subject_id: str,
    window: TimeWindow,
) -> List[BusyInterval]:
    """
    Fetch busy intervals from an external calendar, tagged as such.

    Errors from the provider propagate to the caller unchanged.
    """
    intervals = await provider.get_busy_times(subject_id, window)
    return [
        interval if interval.source is BusySource.EXTERNAL_CALENDAR
        else BusyInterval(
            time_range=interval.time_range,
            source=BusySource.EXTERNAL_CALENDAR,
            booking_id=interval.booking_id,
            summary=interval.summary,
        )
        for interval in intervals
        if window.intersects(interval.time_range)
    ]


class AvailabilityService:
    """
    Orchestrates busy-time collection and slot evaluation.

    Dependency inversion toward store protocols keeps the service free of any
    persistence concerns and easy to exercise with in-memory stores.
    """

    def __init__(
        self,
        booking_store: BookingStore,
        subject_store: SubjectStore,
        policy: Optional[SuspensionPolicy] = None,
        clock: Callable[[], DateTime] = utc_now,
    ) -> None:
        self._booking_store = booking_store
        self._subject_store = subject_store
        self._policy = policy or SuspensionPolicy()
        self._clock = clock

    def list_available_slots(
        self,
        subject_id: str,
        start: InstantLike,
        end: Optional[InstantLike] = None,
        duration_minutes: int = 30,
        *,
        step_minutes: Optional[int] = None,
        whole_days: bool = True,
        requester_id: Optional[str] = None,
        external_busy: Optional[Sequence[BusyInterval]] = None,
    ) -> List[Slot]:
        """
        List every candidate slot in the window with its availability.

        Args:
            subject_id: Subject whose calendar is queried
            start: Start of the raw window
            end: End of the raw window (defaults to the day of ``start``)
            duration_minutes: Length of each slot
            step_minutes: Distance between slot starts (defaults to the duration)
            whole_days: Widen the window to full UTC days
            requester_id: Also block slots where this requester already has a call
            external_busy: Busy intervals fetched by the caller from an external calendar

        Returns:
            Slots ordered by start. A slot is available iff it has no
            conflicts and the subject is not suspended right now.

        Raises:
            InvalidDuration: If the duration or step is not positive
            InvalidWindow: If the window starts after it ends
            UnknownSubject: If the subject does not exist
        """
        if duration_minutes <= 0:
            raise InvalidDuration(f"Slot duration must be positive, got {duration_minutes}")

        window = normalize_window(start, end, whole_days=whole_days)
        candidates = SlotGenerator(window, duration_minutes, step_minutes)

        subject = self._subject_store.get_subject(subject_id)
        suspended = is_suspended(subject, self._clock())

        detector = ConflictDetector(
            self.collect_busy_intervals(
                subject_id=subject_id,
                window=window,
                requester_id=requester_id,
                external_busy=external_busy,
            )
        )

        slots: List[Slot] = []
        for candidate in candidates:
            conflicts = detector.find_conflicts(candidate)
            slots.append(
                Slot(
                    time_range=candidate,
                    is_available=not conflicts and not suspended,
                    conflicts=conflicts,
                    blocked_by_suspension=suspended,
                )
            )
            if conflicts:
                logger.debug("Slot %s blocked by %d interval(s)", candidate, len(conflicts))

        logger.info(
            "Evaluated %d slot(s) for %s in %s - %s: %d available%s",
            len(slots),
            subject_id,
            window.start.to_iso8601_string(),
            window.end.to_iso8601_string(),
            sum(1 for slot in slots if slot.is_available),
            " (subject suspended)" if suspended else "",
        )

        return slots

    def collect_busy_intervals(
        self,
        *,
        subject_id: str,
        window: TimeWindow,
        requester_id: Optional[str] = None,
        external_busy: Optional[Sequence[BusyInterval]] = None,
    ) -> List[BusyInterval]:
        """
        Gather every busy interval relevant to the subject inside the window.

        Cancelled bookings are dropped here even if the store returned them.
        """
        busy = busy_intervals_from_bookings(
            bookings_in_window(self._booking_store.list_bookings(subject_id, window), window),
            BusySource.SUBJECT_BOOKING,
        )

        if requester_id:
            requester_bookings = bookings_in_window(
                self._booking_store.list_requester_bookings(requester_id, window),
                window,
            )
            seen = {interval.booking_id for interval in busy}
            busy.extend(
                booking.as_busy_interval(BusySource.REQUESTER_BOOKING)
                for booking in requester_bookings
                if booking.booking_id not in seen
            )

        if external_busy:
            busy.extend(
                interval for interval in external_busy
                if window.intersects(interval.time_range)
            )

        return busy
