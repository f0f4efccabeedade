"""
In-memory booking and subject store.

Used by the CLI (loaded from a JSON or YAML data file) and by the tests.
Implements both ``BookingStore`` and ``SubjectStore``.
"""

import json
import logging
import threading
from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import yaml
from pydantic import ValidationError

from ..domain.conflicts import bookings_in_window
from ..domain.exceptions import StaleSuspensionWrite, UnknownSubject
from ..domain.models import Booking, BusyInterval, Subject, TimeWindow
from .records import DataFileModel

logger = logging.getLogger(__name__)


class InMemoryStore:
    """
    Thread-safe dictionary-backed store.

    Subject writes are compare-and-swap on ``Subject.version``: a write
    carrying an outdated version raises StaleSuspensionWrite.
    """

    def __init__(
        self,
        subjects: Iterable[Subject] = (),
        bookings: Iterable[Booking] = (),
    ):
        self._subjects: Dict[str, Subject] = {s.subject_id: s for s in subjects}
        self._bookings: Dict[str, Booking] = {b.booking_id: b for b in bookings}
        self._lock = threading.Lock()

    # Subjects

    def add_subject(self, subject: Subject) -> Subject:
        with self._lock:
            self._subjects[subject.subject_id] = subject
        return subject

    def get_subject(self, subject_id: str) -> Subject:
        with self._lock:
            subject = self._subjects.get(subject_id)
        if subject is None:
            raise UnknownSubject(subject_id)
        return subject

    def save_subject(self, subject: Subject, expected_version: int) -> Subject:
        with self._lock:
            current = self._subjects.get(subject.subject_id)
            if current is None:
                raise UnknownSubject(subject.subject_id)
            if current.version != expected_version:
                raise StaleSuspensionWrite(subject.subject_id, expected_version, current.version)

            saved = replace(subject, version=current.version + 1)
            self._subjects[subject.subject_id] = saved
            return saved

    def list_subjects(self) -> List[Subject]:
        with self._lock:
            return sorted(self._subjects.values(), key=lambda s: s.subject_id)

    # Bookings

    def list_bookings(self, subject_id: str, window: TimeWindow) -> List[Booking]:
        with self._lock:
            candidates = [b for b in self._bookings.values() if b.subject_id == subject_id]
        return bookings_in_window(candidates, window)

    def list_requester_bookings(self, requester_id: str, window: TimeWindow) -> List[Booking]:
        with self._lock:
            candidates = [b for b in self._bookings.values() if b.requester_id == requester_id]
        return bookings_in_window(candidates, window)

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        with self._lock:
            return self._bookings.get(booking_id)

    def save_booking(self, booking: Booking) -> Booking:
        with self._lock:
            self._bookings[booking.booking_id] = booking
        return booking

    @classmethod
    def from_file(cls, data_path: Path) -> "InMemoryStore":
        """
        Build a store from a JSON or YAML data file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the file content is invalid
        """
        data = load_data_file(data_path)
        store = cls(
            subjects=[s.to_domain() for s in data.subjects],
            bookings=[b.to_domain() for b in data.bookings],
        )
        logger.debug(
            "Loaded %d subject(s) and %d booking(s) from %s",
            len(data.subjects),
            len(data.bookings),
            data_path,
        )
        return store


def load_data_file(data_path: Path) -> DataFileModel:
    """
    Parse and validate a data file.

    ``.json`` files are read as JSON, anything else as YAML.
    """
    if not data_path.exists():
        raise FileNotFoundError(f"Data file not found: {data_path}")

    try:
        with open(data_path, "r", encoding="utf-8") as f:
            if data_path.suffix.lower() == ".json":
                raw = json.load(f)
            else:
                raw = yaml.safe_load(f) or {}
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ValueError(f"Invalid data file {data_path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ValueError("Data file must contain a mapping at the root level.")

    try:
        return DataFileModel.model_validate(raw)
    except ValidationError as exc:
        raise ValueError(f"Invalid records in {data_path}:\n{exc}") from exc


def calendar_busy_times(data: DataFileModel) -> Dict[str, List[BusyInterval]]:
    """Group external calendar entries of a data file by subject."""
    grouped: Dict[str, List[BusyInterval]] = {}
    for event in data.calendar:
        grouped.setdefault(event.subject_id, []).append(event.to_domain())
    return grouped
