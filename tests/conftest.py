from __future__ import annotations

from datetime import date
from zoneinfo import ZoneInfo

import pytest

from slotbook.application.use_cases.availability import AvailabilityEngine
from slotbook.application.use_cases.booking import BookingRequestService
from slotbook.application.use_cases.schedule import ManageScheduleUseCase
from slotbook.domain.entities.appointment import CustomerDetails
from slotbook.infrastructure.locks.memory_lock import MemoryLeaseLock
from slotbook.infrastructure.store.memory_store import MemorySchedulingStore

# 2030-01-01 is a Tuesday.
TODAY = date(2030, 1, 1)
NEXT_SATURDAY = date(2030, 1, 5)
NEXT_SUNDAY = date(2030, 1, 6)
NEXT_MONDAY = date(2030, 1, 7)

PROVIDER = "provider-1"


@pytest.fixture
def engine() -> AvailabilityEngine:
    return AvailabilityEngine(timezone=ZoneInfo("UTC"), clock=lambda: TODAY)


@pytest.fixture
def store() -> MemorySchedulingStore:
    return MemorySchedulingStore()


@pytest.fixture
def lock() -> MemoryLeaseLock:
    return MemoryLeaseLock(ttl_seconds=5.0, wait_seconds=5.0)


@pytest.fixture
def service(store, engine, lock) -> BookingRequestService:
    return BookingRequestService(
        weekly_store=store,
        exception_store=store,
        appointment_store=store,
        engine=engine,
        lock=lock,
    )


@pytest.fixture
def schedule(store, engine) -> ManageScheduleUseCase:
    return ManageScheduleUseCase(weekly_store=store, exception_store=store, engine=engine)


@pytest.fixture
def customer() -> CustomerDetails:
    return CustomerDetails(name="Ana Lima", phone="+251911000000")
