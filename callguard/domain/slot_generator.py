"""
Generation of candidate slots inside a normalized window.

This is pure generation: candidates carry no availability information yet.
"""

from typing import Iterator, Optional

from .exceptions import InvalidDuration
from .models import TimeRange, TimeWindow


class SlotGenerator:
    """
    Lazy, finite and restartable sequence of fixed-length candidate slots.

    Candidates start at ``window.start`` and advance by ``step_minutes``
    (defaulting to the slot duration). A candidate is only produced when it
    ends at or before ``window.end``.

    Example:
    Window: 08:00 - 09:10, duration 30, step 15
    Result: [08:00-08:30, 08:15-08:45, 08:30-09:00]
    """

    def __init__(
        self,
        window: TimeWindow,
        duration_minutes: int,
        step_minutes: Optional[int] = None,
    ):
        if duration_minutes <= 0:
            raise InvalidDuration(f"Slot duration must be positive, got {duration_minutes}")

        if step_minutes is None:
            step_minutes = duration_minutes
        elif step_minutes <= 0:
            raise InvalidDuration(f"Slot step must be positive, got {step_minutes}")

        self.window = window
        self.duration_minutes = duration_minutes
        self.step_minutes = step_minutes

    def __iter__(self) -> Iterator[TimeRange]:
        current = self.window.start

        while True:
            slot_end = current.add(minutes=self.duration_minutes)
            if slot_end > self.window.end:
                return
            yield TimeRange(start=current, end=slot_end)
            current = current.add(minutes=self.step_minutes)

    def __len__(self) -> int:
        """Number of candidates, computed without iterating."""
        span_seconds = (self.window.end - self.window.start).total_seconds()
        duration_seconds = self.duration_minutes * 60
        if span_seconds < duration_seconds:
            return 0
        return int((span_seconds - duration_seconds) // (self.step_minutes * 60)) + 1
