"""
Static external-calendar busy-time provider.

Stands in for an OAuth-linked calendar: busy entries are loaded from the
``calendar`` section of a data file instead of a remote API, while keeping
the async interface a real provider would have.
"""

from pathlib import Path
from typing import Dict, List, Optional

from ..domain.models import BusyInterval, TimeWindow
from .memory_store import calendar_busy_times, load_data_file


class StaticBusyTimeProvider:
    """
    Serves busy intervals per subject from memory.
    """

    def __init__(self, busy_times: Optional[Dict[str, List[BusyInterval]]] = None):
        self._busy_times = busy_times or {}

    @classmethod
    def from_file(cls, data_path: Path) -> "StaticBusyTimeProvider":
        return cls(calendar_busy_times(load_data_file(data_path)))

    async def get_busy_times(self, subject_id: str, window: TimeWindow) -> List[BusyInterval]:
        """
        Return the subject's busy intervals that intersect the window.

        Args:
            subject_id: Subject whose calendar is read
            window: Query window

        Returns:
            Busy intervals ordered by start
        """
        intervals = [
            interval for interval in self._busy_times.get(subject_id, [])
            if window.intersects(interval.time_range)
        ]
        return sorted(intervals, key=lambda i: i.time_range.start)
