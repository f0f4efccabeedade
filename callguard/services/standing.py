"""
Serialized write path for subject standing.

Every mutation of a subject's flags or suspension goes through this service:
it takes the subject's lock, reads the current record, applies the pure
transition from ``callguard.domain.suspension`` and writes the result back
with a version check.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from pendulum import DateTime

from ..domain import suspension as rules
from ..domain.models import CallCompleted, FlagRaised, Standing, Subject, SuspensionRecord
from ..domain.suspension import SuspensionPolicy
from .availability import utc_now
from .locking import SubjectLockRegistry
from .protocols import SubjectStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StandingStatus:
    """Read-side view of a subject's standing at a given instant."""
    subject_id: str
    flags_received: int
    standing: Standing
    is_suspended: bool
    suspension: Optional[SuspensionRecord]


class StandingService:
    """
    Applies flag and call-outcome events and administrative actions.
    """

    def __init__(
        self,
        subject_store: SubjectStore,
        policy: Optional[SuspensionPolicy] = None,
        locks: Optional[SubjectLockRegistry] = None,
        clock: Callable[[], DateTime] = utc_now,
    ) -> None:
        self._subject_store = subject_store
        self._policy = policy or SuspensionPolicy()
        self._locks = locks or SubjectLockRegistry()
        self._clock = clock

    @property
    def locks(self) -> SubjectLockRegistry:
        return self._locks

    @property
    def policy(self) -> SuspensionPolicy:
        return self._policy

    def handle_flag_raised(self, event: FlagRaised) -> Subject:
        """
        Record a flag against the subject, suspending it at the threshold.

        Raises:
            UnknownSubject: If the subject does not exist
            StaleSuspensionWrite: If the record changed underneath the write
        """
        def transition(subject: Subject, now: DateTime) -> Subject:
            return rules.apply_flag(subject, event, self._policy, now)

        before, after = self._update(event.subject_id, transition)

        if after is not before:
            logger.info(
                "Flag %s recorded for %s (%d flag(s))",
                event.event_id,
                event.subject_id,
                after.flags_received,
            )
            now = self._clock()
            if not rules.is_suspended(before, now) and rules.is_suspended(after, now):
                logger.warning(
                    "Subject %s suspended until %s: %s",
                    event.subject_id,
                    after.suspension.end_date.to_iso8601_string() if after.suspension.end_date else "further notice",
                    after.suspension.reason,
                )
        else:
            logger.debug("Flag %s for %s already applied", event.event_id, event.subject_id)

        return after

    def handle_call_completed(self, event: CallCompleted) -> Subject:
        """
        Record a completed call; a non-negative outcome lifts a suspension.

        Raises:
            UnknownSubject: If the subject does not exist
            StaleSuspensionWrite: If the record changed underneath the write
        """
        def transition(subject: Subject, now: DateTime) -> Subject:
            return rules.apply_call_completed(subject, event, now)

        before, after = self._update(event.subject_id, transition)

        if _was_lifted(before, after, rules.QUALIFYING_CALL):
            logger.info(
                "Suspension of %s lifted by qualifying call %s",
                event.subject_id,
                event.booking_id or event.event_id,
            )

        return after

    def suspend_subject(
        self,
        subject_id: str,
        reason: str,
        end_date: Optional[DateTime] = None,
        suspension_type: str = rules.MANUAL,
    ) -> Subject:
        """Suspend a subject administratively."""
        def transition(subject: Subject, now: DateTime) -> Subject:
            return rules.suspend(subject, now, reason=reason, end_date=end_date, suspension_type=suspension_type)

        _, after = self._update(subject_id, transition)
        logger.warning("Subject %s suspended manually: %s", subject_id, reason)
        return after

    def lift_suspension(self, subject_id: str, lifted_by: str, reason: Optional[str] = None) -> Subject:
        """Lift a suspension administratively."""
        def transition(subject: Subject, now: DateTime) -> Subject:
            return rules.lift(subject, now, lifted_by=lifted_by, reason=reason)

        before, after = self._update(subject_id, transition)
        if _was_lifted(before, after, lifted_by):
            logger.info("Suspension of %s lifted by %s", subject_id, lifted_by)
        elif after is not before:
            logger.info("Suspension of %s had already expired", subject_id)
        return after

    def expire_elapsed(self) -> List[Subject]:
        """
        Materialize passive expiries for every subject.

        Reads never depend on this; it only brings stored ``is_active`` flags
        in line with the logical state.
        """
        expired: List[Subject] = []

        for candidate in self._subject_store.list_subjects():
            before, after = self._update(candidate.subject_id, rules.expire)
            if after is not before:
                logger.info("Suspension of %s expired", after.subject_id)
                expired.append(after)

        return expired

    def get_status(self, subject_id: str) -> StandingStatus:
        subject = self._subject_store.get_subject(subject_id)
        return self._status(subject, self._clock())

    def list_suspended(self) -> List[StandingStatus]:
        """Subjects restricted right now, passive expiry taken into account."""
        now = self._clock()
        return [
            self._status(subject, now)
            for subject in self._subject_store.list_subjects()
            if rules.is_suspended(subject, now)
        ]

    def _status(self, subject: Subject, now: DateTime) -> StandingStatus:
        return StandingStatus(
            subject_id=subject.subject_id,
            flags_received=subject.flags_received,
            standing=rules.standing(subject, now, self._policy),
            is_suspended=rules.is_suspended(subject, now),
            suspension=subject.suspension,
        )

    def _update(
        self,
        subject_id: str,
        transition: Callable[[Subject, DateTime], Subject],
    ) -> tuple[Subject, Subject]:
        """
        Run one read-transition-write cycle under the subject's lock.

        Returns the record as read and as written. When the transition is a
        no-op nothing is written and both are the same object.
        """
        with self._locks.hold(subject_id):
            current = self._subject_store.get_subject(subject_id)
            updated = transition(current, self._clock())
            if updated is current:
                return current, current
            saved = self._subject_store.save_subject(updated, expected_version=current.version)
            return current, saved


def _was_lifted(before: Subject, after: Subject, lifted_by: str) -> bool:
    return (
        before.suspension is not None
        and before.suspension.is_active
        and after.suspension is not None
        and not after.suspension.is_active
        and after.suspension.lifted_by == lifted_by
    )
