"""
Tests for the suspension state machine.
"""

import pytest

from callguard.domain import suspension as rules
from callguard.domain.models import (
    CallCompleted,
    CallOutcome,
    FlagRaised,
    Standing,
    Subject,
    SuspensionRecord,
)
from callguard.domain.suspension import SuspensionPolicy

from tests.helpers import utc

NOW = utc("2025-09-01T12:00:00Z")


def _flag(event_id: str, at: str = "2025-09-01T12:00:00Z", reason: str = "") -> FlagRaised:
    return FlagRaised(subject_id="dm-1", event_id=event_id, reason=reason, occurred_at=utc(at))


def _call(event_id: str, outcome: CallOutcome, at: str) -> CallCompleted:
    return CallCompleted(subject_id="dm-1", event_id=event_id, outcome=outcome, occurred_at=utc(at))


def _suspended_subject(end: str | None = "2025-11-30T12:00:00Z") -> Subject:
    return Subject(
        subject_id="dm-1",
        flags_received=3,
        suspension=SuspensionRecord(
            is_active=True,
            start_date=utc("2025-09-01T12:00:00Z"),
            end_date=utc(end) if end else None,
            reason="Reached 3 flags",
        ),
    )


class TestSuspensionPolicy:
    """Tests for SuspensionPolicy."""

    def test_fixed_duration_end(self):
        """A fixed-duration policy ends after the configured days."""
        policy = SuspensionPolicy(duration_days=90)

        assert policy.end_date_for(NOW) == utc("2025-11-30T12:00:00Z")

    def test_open_ended(self):
        """Test that duration_days=None yields no end date."""
        assert SuspensionPolicy(duration_days=None).end_date_for(NOW) is None

    @pytest.mark.parametrize(
        "kwargs",
        [{"flag_threshold": 0}, {"warning_threshold": 0}, {"duration_days": 0}],
    )
    def test_invalid_policy_raises(self, kwargs):
        """Test that non-positive settings are rejected."""
        with pytest.raises(ValueError):
            SuspensionPolicy(**kwargs)


class TestApplyFlag:
    """Tests for flag events."""

    def test_below_threshold_is_never_suspended(self):
        """Flags below the threshold only bump the counter."""
        policy = SuspensionPolicy(flag_threshold=3)
        subject = Subject(subject_id="dm-1")

        subject = rules.apply_flag(subject, _flag("f1"), policy, NOW)
        subject = rules.apply_flag(subject, _flag("f2"), policy, NOW)

        assert subject.flags_received == 2
        assert not rules.is_suspended(subject, NOW)
        assert rules.standing(subject, NOW, policy) is Standing.WARNING

    def test_threshold_suspends(self):
        """Three flags with threshold 3 suspend the subject."""
        policy = SuspensionPolicy(flag_threshold=3, duration_days=90)
        subject = Subject(subject_id="dm-1")

        for event_id in ("f1", "f2", "f3"):
            subject = rules.apply_flag(subject, _flag(event_id), policy, NOW)

        assert subject.flags_received == 3
        assert rules.is_suspended(subject, NOW)
        assert subject.suspension.start_date == NOW
        assert subject.suspension.end_date == utc("2025-11-30T12:00:00Z")
        assert subject.suspension.suspension_type == "flag-threshold"
        assert rules.standing(subject, NOW, policy) is Standing.SUSPENDED

    def test_old_flag_replayed_after_lift_is_ignored(self):
        """A flag delivered again after the suspension it caused was lifted does not re-suspend."""
        policy = SuspensionPolicy(flag_threshold=3)
        subject = Subject(subject_id="dm-1")
        for event_id in ("f1", "f2", "f3"):
            subject = rules.apply_flag(subject, _flag(event_id), policy, NOW)
        cleared = rules.apply_call_completed(
            subject, _call("c1", CallOutcome.SUCCESSFUL, "2025-09-10T15:00:00Z"), NOW
        )

        replayed = rules.apply_flag(cleared, _flag("f3", at="2025-09-11T00:00:00Z"), policy, NOW)

        assert replayed is cleared
        assert replayed.flags_received == 3
        assert not rules.is_suspended(replayed, utc("2025-09-11T00:00:00Z"))

    def test_reason_from_event(self):
        """The triggering event's reason is stored on the suspension."""
        policy = SuspensionPolicy(flag_threshold=1)

        subject = rules.apply_flag(Subject(subject_id="dm-1"), _flag("f1", reason="No-show"), policy, NOW)

        assert subject.suspension.reason == "No-show"

    def test_replayed_event_is_ignored(self):
        """Delivering the triggering flag twice suspends exactly once."""
        policy = SuspensionPolicy(flag_threshold=3)
        subject = Subject(subject_id="dm-1", flags_received=2)

        once = rules.apply_flag(subject, _flag("f3"), policy, NOW)
        twice = rules.apply_flag(once, _flag("f3", at="2025-09-02T12:00:00Z"), policy, NOW.add(days=1))

        assert twice is once
        assert twice.flags_received == 3
        assert twice.suspension.start_date == NOW

    def test_flag_while_suspended_keeps_suspension(self):
        """Additional flags bump the counter but leave the suspension untouched."""
        policy = SuspensionPolicy(flag_threshold=3)
        subject = _suspended_subject()

        updated = rules.apply_flag(subject, _flag("f4", at="2025-09-05T12:00:00Z"), policy, NOW)

        assert updated.flags_received == 4
        assert updated.suspension is subject.suspension

    def test_input_is_not_mutated(self):
        """Transitions return new values."""
        policy = SuspensionPolicy(flag_threshold=1)
        subject = Subject(subject_id="dm-1")

        rules.apply_flag(subject, _flag("f1"), policy, NOW)

        assert subject.flags_received == 0
        assert subject.suspension is None

    def test_event_time_defaults_to_now(self):
        """Without occurred_at the current time is used."""
        policy = SuspensionPolicy(flag_threshold=1)
        event = FlagRaised(subject_id="dm-1", event_id="f1")

        subject = rules.apply_flag(Subject(subject_id="dm-1"), event, policy, NOW)

        assert subject.suspension.start_date == NOW


class TestApplyCallCompleted:
    """Tests for call-outcome events."""

    def test_positive_call_lifts_immediately(self):
        """A successful call clears the suspension at the event time."""
        subject = _suspended_subject(end="2025-11-30T12:00:00Z")

        cleared = rules.apply_call_completed(
            subject, _call("c1", CallOutcome.SUCCESSFUL, "2025-09-10T15:00:00Z"), NOW
        )

        assert not cleared.suspension.is_active
        assert cleared.suspension.end_date == utc("2025-09-10T15:00:00Z")
        assert cleared.suspension.lifted_by == rules.QUALIFYING_CALL
        assert not rules.is_suspended(cleared, utc("2025-09-10T15:00:00Z"))

    def test_neutral_call_also_qualifies(self):
        """Any non-negative outcome qualifies."""
        cleared = rules.apply_call_completed(
            _suspended_subject(None), _call("c1", CallOutcome.NEUTRAL, "2025-09-10T15:00:00Z"), NOW
        )

        assert not cleared.suspension.is_active

    def test_negative_call_keeps_suspension(self):
        """Negative feedback does not lift the suspension."""
        subject = _suspended_subject()

        updated = rules.apply_call_completed(
            subject, _call("c1", CallOutcome.NEGATIVE_FEEDBACK, "2025-09-10T15:00:00Z"), NOW
        )

        assert updated.suspension is subject.suspension
        assert updated.has_processed("c1")

    def test_call_while_clear_is_noop_on_state(self):
        """A call for a clear subject changes neither flags nor suspension."""
        subject = Subject(subject_id="dm-1", flags_received=1)

        updated = rules.apply_call_completed(
            subject, _call("c1", CallOutcome.SUCCESSFUL, "2025-09-10T15:00:00Z"), NOW
        )

        assert updated.flags_received == 1
        assert updated.suspension is None

    def test_replayed_call_does_not_clear_twice(self):
        """Replaying the lifting call after a new suspension has no effect."""
        policy = SuspensionPolicy(flag_threshold=3)
        call = _call("c1", CallOutcome.SUCCESSFUL, "2025-09-10T15:00:00Z")

        cleared = rules.apply_call_completed(_suspended_subject(), call, NOW)
        resuspended = rules.apply_flag(cleared, _flag("f4", at="2025-09-11T00:00:00Z"), policy, NOW)
        replayed = rules.apply_call_completed(resuspended, call, NOW)

        assert replayed is resuspended
        assert rules.is_suspended(replayed, utc("2025-09-12T00:00:00Z"))

    def test_call_after_passive_expiry_keeps_scheduled_end(self):
        """A call after the suspension elapsed does not rewrite its end date."""
        subject = _suspended_subject(end="2025-09-05T00:00:00Z")

        updated = rules.apply_call_completed(
            subject, _call("c1", CallOutcome.SUCCESSFUL, "2025-10-01T09:00:00Z"), NOW
        )

        assert not updated.suspension.is_active
        assert updated.suspension.end_date == utc("2025-09-05T00:00:00Z")
        assert updated.suspension.lifted_by == rules.PASSIVE_EXPIRY
        assert updated.has_processed("c1")


class TestPassiveExpiry:
    """Tests for read-time expiry."""

    def test_elapsed_suspension_is_clear_without_write(self):
        """An active record with a past end date reads as not suspended."""
        subject = _suspended_subject(end="2025-09-05T00:00:00Z")

        assert subject.suspension.is_active
        assert not rules.is_suspended(subject, utc("2025-09-06T00:00:00Z"))
        assert rules.standing(subject, utc("2025-09-06T00:00:00Z"), SuspensionPolicy()) is Standing.WARNING

    def test_expire_materializes_record(self):
        """expire() clears is_active but keeps the scheduled end date."""
        subject = _suspended_subject(end="2025-09-05T00:00:00Z")

        expired = rules.expire(subject, utc("2025-09-06T00:00:00Z"))

        assert not expired.suspension.is_active
        assert expired.suspension.end_date == utc("2025-09-05T00:00:00Z")

    def test_expire_keeps_running_suspension(self):
        """Test that expire() returns running suspensions unchanged."""
        subject = _suspended_subject()

        assert rules.expire(subject, NOW.add(days=1)) is subject


class TestManualTransitions:
    """Tests for administrative suspend and lift."""

    def test_manual_suspend_and_lift(self):
        """Manual suspensions are tagged and can be lifted by an admin."""
        subject = rules.suspend(Subject(subject_id="dm-1"), NOW, reason="Abusive language")

        assert rules.is_suspended(subject, NOW.add(years=5))
        assert subject.suspension.suspension_type == rules.MANUAL

        lifted = rules.lift(subject, NOW.add(days=2), lifted_by="admin-1", reason="Appeal accepted")

        assert not rules.is_suspended(lifted, NOW.add(days=2))
        assert lifted.suspension.lifted_by == "admin-1"
        assert lifted.suspension.lift_reason == "Appeal accepted"
        assert lifted.suspension.end_date == NOW.add(days=2)

    def test_lift_after_passive_expiry_keeps_scheduled_end(self):
        """Lifting an elapsed suspension only closes it by expiry."""
        subject = _suspended_subject(end="2025-09-05T00:00:00Z")

        lifted = rules.lift(subject, utc("2025-10-01T09:00:00Z"), lifted_by="admin-1")

        assert not lifted.suspension.is_active
        assert lifted.suspension.end_date == utc("2025-09-05T00:00:00Z")
        assert lifted.suspension.lifted_by == rules.PASSIVE_EXPIRY

    def test_lift_on_clear_subject_is_noop(self):
        """Test that lifting a clear subject returns it unchanged."""
        subject = Subject(subject_id="dm-1")

        assert rules.lift(subject, NOW, lifted_by="admin-1") is subject
