from __future__ import annotations

import logging
from collections.abc import Iterable
from contextlib import AbstractContextManager, nullcontext
from datetime import date, datetime, time, timedelta

from slotbook.application.exceptions import (
    AppointmentNotFound,
    InvalidStatusTransition,
    UniqueConstraintViolation,
)
from slotbook.application.ports.appointment_store import AppointmentStorePort
from slotbook.application.ports.date_exception_store import DateExceptionStorePort
from slotbook.application.ports.service_catalog import ServiceCatalogPort
from slotbook.application.ports.slot_lock import SlotLockPort
from slotbook.application.ports.weekly_availability_store import WeeklyAvailabilityStorePort
from slotbook.application.use_cases.availability import AvailabilityEngine
from slotbook.application.use_cases.conflicts import BookingConflictChecker
from slotbook.domain.entities.appointment import (
    ACTIVE_STATUSES,
    Appointment,
    AppointmentStatus,
    CustomerDetails,
)
from slotbook.domain.entities.booking_result import BookingErrorKind, BookingResult
from slotbook.domain.entities.date_exception import DateException
from slotbook.domain.entities.day_of_week import DayOfWeek
from slotbook.domain.entities.time_of_day import TimeOfDay


class BookingRequestService:
    """
    Validates booking requests against live availability and commits them.

    The read-check-write sequence runs while holding the provider's lock
    (when a lock is configured), and the store's uniqueness rule on
    (provider, scheduled_at) backs it up: a write that loses the race is
    reported as a slot conflict, never as a second success.
    """

    def __init__(
        self,
        weekly_store: WeeklyAvailabilityStorePort,
        exception_store: DateExceptionStorePort,
        appointment_store: AppointmentStorePort,
        engine: AvailabilityEngine,
        checker: BookingConflictChecker | None = None,
        lock: SlotLockPort | None = None,
        catalog: ServiceCatalogPort | None = None,
        slot_granularity_minutes: int = 60,
        default_duration_minutes: int = 60,
    ) -> None:
        self._weekly = weekly_store
        self._exceptions = exception_store
        self._appointments = appointment_store
        self._engine = engine
        self._checker = checker or BookingConflictChecker()
        self._lock = lock
        self._catalog = catalog
        self._granularity = slot_granularity_minutes
        self._default_duration = default_duration_minutes
        self._logger = logging.getLogger(__name__)

    def submit_booking(
        self,
        provider_id: str,
        service_id: str,
        day: date,
        slot_time: TimeOfDay | time | str,
        duration_minutes: int | None,
        customer: CustomerDetails,
    ) -> BookingResult:
        try:
            requested = TimeOfDay.coerce(slot_time)
        except ValueError as e:
            return BookingResult.failure(BookingErrorKind.INVALID_DETAILS, str(e))

        duration = self._resolve_duration(service_id, duration_minutes)
        invalid = self._check_details(customer, duration)
        if invalid is not None:
            return invalid

        with self._hold(provider_id):
            rejected = self._validate_slot(provider_id, day, requested, duration)
            if rejected is not None:
                return rejected

            appointment = Appointment(
                provider_id=provider_id,
                service_id=service_id,
                customer_name=customer.name.strip(),
                customer_phone=customer.phone,
                customer_email=customer.email,
                scheduled_at=datetime.combine(day, requested.to_time()),
                duration_minutes=duration,
                status=AppointmentStatus.PENDING,
                notes=customer.notes,
            )
            try:
                created = self._appointments.create_appointment(appointment)
            except UniqueConstraintViolation:
                self._logger.info(
                    "Booking lost write race",
                    extra={"provider_id": provider_id, "date": day.isoformat(), "time": str(requested)},
                )
                return BookingResult.failure(
                    BookingErrorKind.SLOT_CONFLICT,
                    f"{requested} on {day.isoformat()} was just booked by someone else.",
                )

        self._logger.info(
            "Booking created",
            extra={
                "provider_id": provider_id,
                "appointment_id": created.id,
                "date": day.isoformat(),
                "time": str(requested),
            },
        )
        return BookingResult.success(created)

    def reschedule_booking(
        self,
        appointment_id: str,
        day: date,
        slot_time: TimeOfDay | time | str,
        duration_minutes: int | None = None,
    ) -> BookingResult:
        current = self._require(appointment_id)
        if current.status.is_terminal:
            raise InvalidStatusTransition(f"cannot reschedule a {current.status.value} appointment")

        try:
            requested = TimeOfDay.coerce(slot_time)
        except ValueError as e:
            return BookingResult.failure(BookingErrorKind.INVALID_DETAILS, str(e))

        duration = duration_minutes or current.duration_minutes
        if duration <= 0:
            return BookingResult.failure(BookingErrorKind.INVALID_DETAILS, "duration must be positive")

        provider_id = current.provider_id
        with self._hold(provider_id):
            rejected = self._validate_slot(provider_id, day, requested, duration, exclude_id=current.id)
            if rejected is not None:
                return rejected
            try:
                updated = self._appointments.update_appointment(
                    appointment_id,
                    scheduled_at=datetime.combine(day, requested.to_time()),
                    duration_minutes=duration,
                )
            except UniqueConstraintViolation:
                return BookingResult.failure(
                    BookingErrorKind.SLOT_CONFLICT,
                    f"{requested} on {day.isoformat()} was just booked by someone else.",
                )

        self._logger.info(
            "Booking rescheduled",
            extra={
                "provider_id": provider_id,
                "appointment_id": appointment_id,
                "date": day.isoformat(),
                "time": str(requested),
            },
        )
        return BookingResult.success(updated)

    def update_status(self, appointment_id: str, status: AppointmentStatus | str) -> Appointment:
        target = AppointmentStatus(status)
        current = self._require(appointment_id)
        if current.status == target:
            return current
        if not current.status.can_transition_to(target):
            raise InvalidStatusTransition(
                f"cannot move appointment from {current.status.value} to {target.value}"
            )
        updated = self._appointments.update_appointment(appointment_id, status=target)
        self._logger.info(
            "Booking status changed",
            extra={"appointment_id": appointment_id, "status": target.value},
        )
        return updated

    def set_paid(self, appointment_id: str, paid: bool) -> Appointment:
        self._require(appointment_id)
        return self._appointments.update_appointment(appointment_id, paid=paid)

    def list_appointments(
        self,
        provider_id: str,
        day: date | None = None,
        statuses: Iterable[AppointmentStatus] | None = None,
    ) -> list[Appointment]:
        start = end = None
        if day is not None:
            start = datetime.combine(day, time.min)
            end = start + timedelta(days=1)
        return self._appointments.get_appointments(provider_id, start=start, end=end, statuses=statuses)

    def open_slots(
        self,
        provider_id: str,
        day: date,
        duration_minutes: int | None = None,
        service_id: str | None = None,
    ) -> list[TimeOfDay]:
        """Bookable slots for the day that do not collide with an existing booking.

        The duration checked is resolved the same way submit_booking resolves it,
        so every listed slot can actually be booked for that service.
        """
        rules = self._weekly.get_weekly_rules(provider_id)
        exceptions = self._exceptions.get_date_exceptions(provider_id)
        slots = self._engine.get_bookable_slots(provider_id, day, rules, exceptions, self._granularity)
        if not slots:
            return []
        duration = self._resolve_duration(service_id, duration_minutes)
        existing = self._existing_around(provider_id, day)
        return [
            slot
            for slot in slots
            if not self._checker.has_conflict(datetime.combine(day, slot.to_time()), duration, existing)
        ]

    def bookable_dates(self, provider_id: str, limit: int = 5, horizon_days: int = 60) -> list[date]:
        rules = self._weekly.get_weekly_rules(provider_id)
        exceptions = self._exceptions.get_date_exceptions(provider_id)
        return self._engine.upcoming_bookable_dates(
            provider_id, rules, exceptions, limit=limit, horizon_days=horizon_days
        )

    def _validate_slot(
        self,
        provider_id: str,
        day: date,
        requested: TimeOfDay,
        duration: int,
        exclude_id: str | None = None,
    ) -> BookingResult | None:
        rules = self._weekly.get_weekly_rules(provider_id)
        exceptions = self._exceptions.get_date_exceptions(provider_id)

        if not self._engine.is_date_bookable(provider_id, day, rules, exceptions):
            reason = self._unavailable_reason(provider_id, day, exceptions)
            self._logger.info(
                "Booking rejected: date unavailable",
                extra={"provider_id": provider_id, "date": day.isoformat(), "reason": reason},
            )
            return BookingResult.failure(BookingErrorKind.DATE_UNAVAILABLE, reason)

        slots = self._engine.get_bookable_slots(provider_id, day, rules, exceptions, self._granularity)
        if requested not in slots:
            self._logger.info(
                "Booking rejected: slot not offered",
                extra={"provider_id": provider_id, "date": day.isoformat(), "time": str(requested)},
            )
            return BookingResult.failure(
                BookingErrorKind.SLOT_NOT_OFFERED,
                f"{requested} is not an available time on {day.isoformat()}.",
            )

        start = datetime.combine(day, requested.to_time())
        existing = [a for a in self._existing_around(provider_id, day) if a.id != exclude_id]
        conflict = self._checker.find_conflict(start, duration, existing)
        if conflict is not None:
            self._logger.info(
                "Booking rejected: slot conflict",
                extra={
                    "provider_id": provider_id,
                    "date": day.isoformat(),
                    "time": str(requested),
                    "appointment_id": conflict.id,
                },
            )
            return BookingResult.failure(
                BookingErrorKind.SLOT_CONFLICT,
                f"{requested} on {day.isoformat()} is already taken.",
            )
        return None

    def _existing_around(self, provider_id: str, day: date) -> list[Appointment]:
        # One day either side catches bookings that cross midnight.
        start = datetime.combine(day - timedelta(days=1), time.min)
        end = datetime.combine(day + timedelta(days=2), time.min)
        return self._appointments.get_appointments(provider_id, start=start, end=end, statuses=ACTIVE_STATUSES)

    def _unavailable_reason(self, provider_id: str, day: date, exceptions: list[DateException]) -> str:
        if day < self._engine.today():
            return f"{day.isoformat()} is in the past."
        for exc in exceptions:
            if exc.provider_id == provider_id and exc.date == day:
                suffix = f" ({exc.reason})" if exc.reason else ""
                return f"{day.isoformat()} is blocked{suffix}."
        return f"Bookings are not taken on {DayOfWeek.of(day).label}s."

    def _resolve_duration(self, service_id: str | None, duration_minutes: int | None) -> int:
        if duration_minutes is not None:
            return duration_minutes
        if self._catalog is not None and service_id is not None:
            from_catalog = self._catalog.get_duration_minutes(service_id)
            if from_catalog:
                return from_catalog
        return self._default_duration

    def _check_details(self, customer: CustomerDetails, duration: int) -> BookingResult | None:
        missing = []
        if not (customer.name or "").strip():
            missing.append("name")
        if not ((customer.phone or "").strip() or (customer.email or "").strip()):
            missing.append("phone or email")
        if missing:
            return BookingResult.failure(
                BookingErrorKind.INVALID_DETAILS,
                f"Missing required customer details: {', '.join(missing)}.",
            )
        if duration <= 0:
            return BookingResult.failure(BookingErrorKind.INVALID_DETAILS, "duration must be positive")
        return None

    def _require(self, appointment_id: str) -> Appointment:
        appointment = self._appointments.get_appointment(appointment_id)
        if appointment is None:
            raise AppointmentNotFound(appointment_id)
        return appointment

    def _hold(self, provider_id: str) -> AbstractContextManager[None]:
        if self._lock is None:
            return nullcontext()
        return self._lock.hold(f"provider:{provider_id}")
