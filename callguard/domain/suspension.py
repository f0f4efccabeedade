"""
Suspension state machine for subjects.

States are ``Clear`` and ``Suspended``. Every function here is pure: it takes
an explicitly owned Subject value and returns a new one, leaving the input
untouched. Persisting the result is the job of the serialized write path in
``callguard.services.standing``.

Transitions:
- Clear -> Suspended when a flag brings ``flags_received`` to the policy
  threshold (or beyond) while the subject is clear.
- Suspended -> Clear on a completed call with a non-negative outcome, which
  closes the suspension at the event time regardless of its scheduled end.
- Suspended -> Clear passively once ``now >= end_date``. This is evaluated at
  read time; ``expire`` can materialize it into the record.

Each event id is remembered on the subject so replays are no-ops.
"""

from dataclasses import dataclass, replace
from typing import Optional

from pendulum import DateTime

from .models import (
    CallCompleted,
    FlagRaised,
    Standing,
    Subject,
    SuspensionRecord,
)

QUALIFYING_CALL = "qualifying-call"
MANUAL = "manual"
PASSIVE_EXPIRY = "expiry"


@dataclass(frozen=True)
class SuspensionPolicy:
    """
    Threshold and duration rules for flag-triggered suspensions.

    ``duration_days=None`` keeps the suspension open until a qualifying call
    or a manual lift.
    """
    flag_threshold: int = 3
    duration_days: Optional[int] = 90
    suspension_type: str = "flag-threshold"
    warning_threshold: int = 1

    def __post_init__(self):
        if self.flag_threshold <= 0:
            raise ValueError("flag_threshold must be greater than zero")
        if self.warning_threshold <= 0:
            raise ValueError("warning_threshold must be greater than zero")
        if self.duration_days is not None and self.duration_days <= 0:
            raise ValueError("duration_days must be greater than zero or None")

    def end_date_for(self, start: DateTime) -> Optional[DateTime]:
        if self.duration_days is None:
            return None
        return start.add(days=self.duration_days)


def is_suspended(subject: Subject, now: DateTime) -> bool:
    """
    Whether the subject is restricted at ``now``.

    Always re-derived from ``is_active`` and ``end_date``; a stale active flag
    on an elapsed suspension does not count.
    """
    return subject.suspension is not None and subject.suspension.is_in_effect(now)


def standing(subject: Subject, now: DateTime, policy: SuspensionPolicy) -> Standing:
    if is_suspended(subject, now):
        return Standing.SUSPENDED
    if subject.flags_received >= policy.warning_threshold:
        return Standing.WARNING
    return Standing.GOOD


def _remember(subject: Subject, event_id: str) -> Subject:
    return replace(subject, processed_event_ids=subject.processed_event_ids | {event_id})


def apply_flag(
    subject: Subject,
    event: FlagRaised,
    policy: SuspensionPolicy,
    now: DateTime,
) -> Subject:
    """
    Apply a FlagRaised event.

    The flag counter is always incremented. A clear subject whose count
    reaches the threshold becomes suspended from the event time.

    Args:
        subject: Current subject state
        event: The flag event
        policy: Threshold/duration rules
        now: Current time, used when the event carries no timestamp

    Returns:
        The new subject state (the input itself when the event was replayed)
    """
    if subject.has_processed(event.event_id):
        return subject

    at = event.occurred_at or now
    flagged = replace(subject, flags_received=subject.flags_received + 1)

    if not is_suspended(subject, at) and flagged.flags_received >= policy.flag_threshold:
        reason = event.reason or (
            f"Reached {flagged.flags_received} flags (threshold {policy.flag_threshold})"
        )
        flagged = replace(
            flagged,
            suspension=SuspensionRecord(
                is_active=True,
                start_date=at,
                end_date=policy.end_date_for(at),
                reason=reason,
                suspension_type=policy.suspension_type,
                triggered_by="automatic",
            ),
        )

    return _remember(flagged, event.event_id)


def apply_call_completed(subject: Subject, event: CallCompleted, now: DateTime) -> Subject:
    """
    Apply a CallCompleted event.

    A non-negative outcome lifts a suspension in effect immediately, setting
    its end date to the event time. Negative outcomes and calls made while
    clear leave the state as is; a suspension that already elapsed is closed
    by expiry with its scheduled end date.
    """
    if subject.has_processed(event.event_id):
        return subject

    at = event.occurred_at or now

    if not event.outcome.is_negative and is_suspended(subject, at):
        updated = replace(
            subject,
            suspension=subject.suspension.deactivated(
                at,
                lifted_by=QUALIFYING_CALL,
                lift_reason=f"Completed call {event.booking_id or event.event_id} "
                            f"with outcome {event.outcome.value}",
            ),
        )
    else:
        updated = expire(subject, at)

    return _remember(updated, event.event_id)


def suspend(
    subject: Subject,
    now: DateTime,
    reason: str,
    end_date: Optional[DateTime] = None,
    suspension_type: str = MANUAL,
    triggered_by: str = MANUAL,
) -> Subject:
    """Start a suspension administratively, replacing any previous record."""
    return replace(
        subject,
        suspension=SuspensionRecord(
            is_active=True,
            start_date=now,
            end_date=end_date,
            reason=reason,
            suspension_type=suspension_type,
            triggered_by=triggered_by,
        ),
    )


def lift(subject: Subject, now: DateTime, lifted_by: str, reason: Optional[str] = None) -> Subject:
    """
    Lift a suspension administratively.

    Clear subjects are returned unchanged. An elapsed suspension is only
    closed by expiry, keeping its scheduled end date.
    """
    if not is_suspended(subject, now):
        return expire(subject, now)

    return replace(
        subject,
        suspension=subject.suspension.deactivated(now, lifted_by=lifted_by, lift_reason=reason or "Manual lift"),
    )


def expire(subject: Subject, now: DateTime) -> Subject:
    """
    Materialize a passive expiry into the record.

    The end date is kept as scheduled; only ``is_active`` is cleared.
    """
    suspension = subject.suspension
    if suspension is None or not suspension.is_active or suspension.is_in_effect(now):
        return subject

    return replace(
        subject,
        suspension=replace(suspension, is_active=False, lifted_by=PASSIVE_EXPIRY),
    )
