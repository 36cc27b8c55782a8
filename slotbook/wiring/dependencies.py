from functools import lru_cache
import logging
from zoneinfo import ZoneInfo

from slotbook.core.config import settings
from slotbook.application.ports.appointment_store import AppointmentStorePort
from slotbook.application.ports.date_exception_store import DateExceptionStorePort
from slotbook.application.ports.service_catalog import ServiceCatalogPort
from slotbook.application.ports.slot_lock import SlotLockPort
from slotbook.application.ports.weekly_availability_store import WeeklyAvailabilityStorePort
from slotbook.application.use_cases.availability import AvailabilityEngine, SlotBoundary
from slotbook.application.use_cases.booking import BookingRequestService
from slotbook.application.use_cases.conflicts import BookingConflictChecker
from slotbook.application.use_cases.schedule import ManageScheduleUseCase
from slotbook.domain.entities.time_of_day import TimeOfDay
from slotbook.infrastructure.catalog.static_catalog import StaticServiceCatalog
from slotbook.infrastructure.locks.memory_lock import MemoryLeaseLock
from slotbook.infrastructure.store.json_store import JsonSchedulingStore
from slotbook.infrastructure.store.memory_store import MemorySchedulingStore
from slotbook.infrastructure.supabase.supabase_store import SupabaseSchedulingStore

logger = logging.getLogger(__name__)

SchedulingStore = MemorySchedulingStore | JsonSchedulingStore | SupabaseSchedulingStore

_store: SchedulingStore | None = None
_lock: SlotLockPort | None = None


@lru_cache
def get_timezone() -> ZoneInfo:
    return ZoneInfo(settings.BUSINESS_TIMEZONE)


def get_store() -> SchedulingStore:
    global _store
    if _store is None:
        provider = settings.STORE_PROVIDER.lower()
        default_start = TimeOfDay.parse(settings.DEFAULT_DAY_START)
        default_end = TimeOfDay.parse(settings.DEFAULT_DAY_END)
        if provider == "supabase":
            _store = SupabaseSchedulingStore(
                base_url=settings.SUPABASE_URL or "",
                service_key=settings.SUPABASE_SERVICE_KEY or "",
                timezone=get_timezone(),
                timeout=settings.SUPABASE_TIMEOUT_SECONDS,
                default_start=default_start,
                default_end=default_end,
            )
        elif provider == "json":
            _store = JsonSchedulingStore(
                data_dir=settings.DATA_DIR,
                default_start=default_start,
                default_end=default_end,
            )
        elif provider == "memory":
            _store = MemorySchedulingStore(default_start=default_start, default_end=default_end)
        else:
            raise ValueError(f"Unknown STORE_PROVIDER: {settings.STORE_PROVIDER!r}")
        logger.info("Using %s", type(_store).__name__)
    return _store


def get_weekly_store() -> WeeklyAvailabilityStorePort:
    return get_store()


def get_exception_store() -> DateExceptionStorePort:
    return get_store()


def get_appointment_store() -> AppointmentStorePort:
    return get_store()


def get_lock() -> SlotLockPort:
    global _lock
    if _lock is None:
        _lock = MemoryLeaseLock(
            ttl_seconds=settings.SLOT_LOCK_TTL_SECONDS,
            wait_seconds=settings.SLOT_LOCK_WAIT_SECONDS,
        )
    return _lock


@lru_cache
def get_service_catalog() -> ServiceCatalogPort:
    return StaticServiceCatalog(settings.SERVICE_DURATIONS)


def get_engine() -> AvailabilityEngine:
    return AvailabilityEngine(timezone=get_timezone(), boundary=SlotBoundary(settings.SLOT_BOUNDARY))


def get_booking_service() -> BookingRequestService:
    return BookingRequestService(
        weekly_store=get_weekly_store(),
        exception_store=get_exception_store(),
        appointment_store=get_appointment_store(),
        engine=get_engine(),
        checker=BookingConflictChecker(),
        lock=get_lock(),
        catalog=get_service_catalog(),
        slot_granularity_minutes=settings.SLOT_GRANULARITY_MINUTES,
        default_duration_minutes=settings.DEFAULT_DURATION_MINUTES,
    )


def get_schedule_use_case() -> ManageScheduleUseCase:
    return ManageScheduleUseCase(
        weekly_store=get_weekly_store(),
        exception_store=get_exception_store(),
        engine=get_engine(),
    )
