"""
Shared fixtures.
"""

import pytest

from callguard.adapters.memory_store import InMemoryStore
from callguard.domain.models import Subject
from callguard.domain.suspension import SuspensionPolicy
from callguard.services.availability import AvailabilityService
from callguard.services.bookings import BookingService
from callguard.services.standing import StandingService

from tests.helpers import FrozenClock


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock("2025-09-01T12:00:00Z")


@pytest.fixture
def policy() -> SuspensionPolicy:
    return SuspensionPolicy(flag_threshold=3, duration_days=90)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore(
        subjects=[Subject(subject_id="dm-1"), Subject(subject_id="dm-2")],
    )


@pytest.fixture
def standing_service(store, policy, clock) -> StandingService:
    return StandingService(store, policy=policy, clock=clock)


@pytest.fixture
def availability_service(store, policy, clock) -> AvailabilityService:
    return AvailabilityService(store, store, policy=policy, clock=clock)


@pytest.fixture
def booking_service(store, standing_service, clock) -> BookingService:
    return BookingService(store, store, standing_service, clock=clock)
