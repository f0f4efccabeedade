"""
Domain models for windows, bookings, slots and account standing.

All instants are pendulum DateTime values in UTC.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import FrozenSet, List, Optional

from pendulum import DateTime


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable half-open time range ``[start, end)``.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """
        Check if this range overlaps with another.

        Ranges that only touch at a boundary are adjacent, not overlapping.
        """
        return self.start < other.end and other.start < self.end

    def contains(self, instant: DateTime) -> bool:
        """Check if an instant falls inside the range."""
        return self.start <= instant < self.end

    def intersect(self, other: "TimeRange") -> "TimeRange | None":
        """
        Calculate the intersection of two time ranges.
        Returns None if there is no overlap.
        """
        if not self.overlaps(other):
            return None

        return TimeRange(start=max(self.start, other.start), end=min(self.end, other.end))

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True)
class TimeWindow:
    """
    A query window ``[start, end)``. Unlike TimeRange it may be empty.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"Window start {self.start} is after window end {self.end}")

    def is_empty(self) -> bool:
        return self.start == self.end

    def intersects(self, time_range: TimeRange) -> bool:
        """Check if a time range has any instant inside this window."""
        return time_range.start < self.end and self.start < time_range.end


class BookingStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CallOutcome(str, Enum):
    SUCCESSFUL = "successful"
    NEUTRAL = "neutral"
    NEGATIVE_FEEDBACK = "negative-feedback"

    @property
    def is_negative(self) -> bool:
        return self is CallOutcome.NEGATIVE_FEEDBACK


class BusySource(str, Enum):
    """Where a busy interval came from."""
    SUBJECT_BOOKING = "subject_booking"
    REQUESTER_BOOKING = "requester_booking"
    EXTERNAL_CALENDAR = "external_calendar"


@dataclass(frozen=True)
class BusyInterval:
    """
    A time range that blocks a candidate slot.
    """
    time_range: TimeRange
    source: BusySource
    booking_id: Optional[str] = None
    summary: Optional[str] = None


@dataclass(frozen=True)
class Booking:
    """
    A scheduled call between a requester and a subject.
    """
    booking_id: str
    subject_id: str
    time_range: TimeRange
    requester_id: Optional[str] = None
    status: BookingStatus = BookingStatus.SCHEDULED
    outcome: Optional[CallOutcome] = None

    @property
    def is_active(self) -> bool:
        """Cancelled bookings never block a slot."""
        return self.status is not BookingStatus.CANCELLED

    def as_busy_interval(self, source: BusySource = BusySource.SUBJECT_BOOKING) -> BusyInterval:
        return BusyInterval(
            time_range=self.time_range,
            source=source,
            booking_id=self.booking_id,
        )


@dataclass(frozen=True)
class SuspensionRecord:
    """
    The suspension state attached to a subject.

    ``end_date`` is None for an open-ended suspension that only lifts on a
    qualifying call or a manual lift.
    """
    is_active: bool
    start_date: DateTime
    end_date: Optional[DateTime] = None
    reason: str = ""
    suspension_type: str = "flag-threshold"
    triggered_by: str = "automatic"
    lifted_at: Optional[DateTime] = None
    lifted_by: Optional[str] = None
    lift_reason: Optional[str] = None

    def __post_init__(self):
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError(
                f"Suspension end {self.end_date} is before its start {self.start_date}"
            )

    def is_in_effect(self, now: DateTime) -> bool:
        """
        Re-derive whether the suspension restricts the subject at ``now``.

        A stored ``is_active`` flag is never trusted on its own: an elapsed
        end date means the suspension has passively expired.
        """
        if not self.is_active:
            return False
        return self.end_date is None or now < self.end_date

    def deactivated(
        self,
        at: DateTime,
        lifted_by: str,
        lift_reason: Optional[str] = None,
    ) -> "SuspensionRecord":
        """Return a copy closed at ``at``, never ending before it started."""
        end = max(at, self.start_date)
        return replace(
            self,
            is_active=False,
            end_date=end,
            lifted_at=at,
            lifted_by=lifted_by,
            lift_reason=lift_reason,
        )


class Standing(str, Enum):
    GOOD = "good"
    WARNING = "warning"
    SUSPENDED = "suspended"


@dataclass(frozen=True)
class Subject:
    """
    A decision-maker account as seen by the standing rules.

    ``version`` is owned by the store and increases on every write.
    ``processed_event_ids`` is never pruned: an event replayed after any
    number of later transitions must still be recognised.
    """
    subject_id: str
    flags_received: int = 0
    suspension: Optional[SuspensionRecord] = None
    processed_event_ids: FrozenSet[str] = field(default_factory=frozenset)
    version: int = 0

    def __post_init__(self):
        if self.flags_received < 0:
            raise ValueError(f"flags_received must be non-negative, got {self.flags_received}")

    def has_processed(self, event_id: str) -> bool:
        return event_id in self.processed_event_ids


@dataclass(frozen=True)
class FlagRaised:
    """Negative-feedback flag raised against a subject by the moderation system."""
    subject_id: str
    event_id: str
    reason: str = ""
    occurred_at: Optional[DateTime] = None


@dataclass(frozen=True)
class CallCompleted:
    """A call with the subject finished with the given outcome."""
    subject_id: str
    event_id: str
    outcome: CallOutcome
    occurred_at: Optional[DateTime] = None
    booking_id: Optional[str] = None


@dataclass
class Slot:
    """
    A candidate slot with its availability verdict.
    """
    time_range: TimeRange
    is_available: bool
    conflicts: List[BusyInterval] = field(default_factory=list)
    blocked_by_suspension: bool = False

    @property
    def start(self) -> DateTime:
        return self.time_range.start

    @property
    def end(self) -> DateTime:
        return self.time_range.end

    def format_display(self, timezone: str = "UTC") -> str:
        """
        Format the slot for display.
        Format: Weekday, YYYY-MM-DD | HH:mm - HH:mm (N min)
        """
        start = self.time_range.start.in_timezone(timezone)
        end = self.time_range.end.in_timezone(timezone)
        duration = self.time_range.duration_minutes()

        return (
            f"{start.format('dddd, YYYY-MM-DD')} | "
            f"{start.format('HH:mm')} - {end.format('HH:mm')} ({duration} min)"
        )
