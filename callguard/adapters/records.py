"""
Validated record shapes for data entering callguard from outside.

Fixture files and other loosely typed sources are parsed into these pydantic
models first; only validated records are turned into domain objects.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..domain.models import (
    Booking,
    BookingStatus,
    BusyInterval,
    BusySource,
    CallOutcome,
    Subject,
    SuspensionRecord,
    TimeRange,
)
from ..domain.window import to_utc


class SuspensionRecordModel(BaseModel):
    """Suspension block of a subject record."""
    model_config = ConfigDict(populate_by_name=True)

    is_active: bool = Field(alias="isActive")
    start_date: datetime = Field(alias="startDate")
    end_date: Optional[datetime] = Field(default=None, alias="endDate")
    reason: str = ""
    suspension_type: str = Field(default="flag-threshold", alias="type")
    triggered_by: str = Field(default="automatic", alias="triggeredBy")
    lifted_at: Optional[datetime] = Field(default=None, alias="liftedAt")
    lifted_by: Optional[str] = Field(default=None, alias="liftedBy")
    lift_reason: Optional[str] = Field(default=None, alias="liftReason")

    @model_validator(mode="after")
    def validate_dates(self) -> "SuspensionRecordModel":
        """Ensure the suspension does not end before it starts."""
        if self.end_date is not None and to_utc(self.end_date) < to_utc(self.start_date):
            raise ValueError("endDate must not be before startDate")
        return self

    def to_domain(self) -> SuspensionRecord:
        return SuspensionRecord(
            is_active=self.is_active,
            start_date=to_utc(self.start_date),
            end_date=to_utc(self.end_date) if self.end_date else None,
            reason=self.reason,
            suspension_type=self.suspension_type,
            triggered_by=self.triggered_by,
            lifted_at=to_utc(self.lifted_at) if self.lifted_at else None,
            lifted_by=self.lifted_by,
            lift_reason=self.lift_reason,
        )


class SubjectModel(BaseModel):
    """A decision-maker account."""
    model_config = ConfigDict(populate_by_name=True)

    subject_id: str = Field(alias="id", min_length=1)
    flags_received: int = Field(default=0, alias="flagsReceived", ge=0)
    suspension: Optional[SuspensionRecordModel] = None

    def to_domain(self) -> Subject:
        return Subject(
            subject_id=self.subject_id,
            flags_received=self.flags_received,
            suspension=self.suspension.to_domain() if self.suspension else None,
        )


class BookingModel(BaseModel):
    """A scheduled call."""
    model_config = ConfigDict(populate_by_name=True)

    booking_id: str = Field(alias="id", min_length=1)
    subject_id: str = Field(alias="subjectId", min_length=1)
    requester_id: Optional[str] = Field(default=None, alias="requesterId")
    start: datetime
    end: datetime
    status: BookingStatus = BookingStatus.SCHEDULED
    outcome: Optional[CallOutcome] = None

    @model_validator(mode="after")
    def validate_interval(self) -> "BookingModel":
        """Ensure the booking has a positive length."""
        if to_utc(self.end) <= to_utc(self.start):
            raise ValueError(f"Booking {self.booking_id} must end after it starts")
        return self

    def to_domain(self) -> Booking:
        return Booking(
            booking_id=self.booking_id,
            subject_id=self.subject_id,
            requester_id=self.requester_id,
            time_range=TimeRange(start=to_utc(self.start), end=to_utc(self.end)),
            status=self.status,
            outcome=self.outcome,
        )


class CalendarEventModel(BaseModel):
    """A busy entry from an external calendar."""
    model_config = ConfigDict(populate_by_name=True)

    subject_id: str = Field(alias="subjectId", min_length=1)
    start: datetime
    end: datetime
    summary: Optional[str] = None

    @model_validator(mode="after")
    def validate_interval(self) -> "CalendarEventModel":
        if to_utc(self.end) <= to_utc(self.start):
            raise ValueError("Calendar event must end after it starts")
        return self

    def to_domain(self) -> BusyInterval:
        return BusyInterval(
            time_range=TimeRange(start=to_utc(self.start), end=to_utc(self.end)),
            source=BusySource.EXTERNAL_CALENDAR,
            summary=self.summary or "Calendar Event",
        )


class DataFileModel(BaseModel):
    """Root of a fixture file."""
    subjects: List[SubjectModel] = Field(default_factory=list)
    bookings: List[BookingModel] = Field(default_factory=list)
    calendar: List[CalendarEventModel] = Field(default_factory=list)

    @field_validator("subjects")
    @classmethod
    def validate_unique_subjects(cls, value: List[SubjectModel]) -> List[SubjectModel]:
        """Ensure subject ids are unique."""
        seen: set[str] = set()
        for subject in value:
            if subject.subject_id in seen:
                raise ValueError(f"Duplicate subject id detected: {subject.subject_id}")
            seen.add(subject.subject_id)
        return value

    @field_validator("bookings")
    @classmethod
    def validate_unique_bookings(cls, value: List[BookingModel]) -> List[BookingModel]:
        """Ensure booking ids are unique."""
        seen: set[str] = set()
        for booking in value:
            if booking.booking_id in seen:
                raise ValueError(f"Duplicate booking id detected: {booking.booking_id}")
            seen.add(booking.booking_id)
        return value
