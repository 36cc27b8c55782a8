from __future__ import annotations

import threading
import uuid
from collections.abc import Iterable
from dataclasses import replace
from datetime import date, datetime
from typing import Any

from slotbook.application.exceptions import AppointmentNotFound, UniqueConstraintViolation
from slotbook.application.ports.appointment_store import AppointmentStorePort
from slotbook.application.ports.date_exception_store import DateExceptionStorePort
from slotbook.application.ports.weekly_availability_store import WeeklyAvailabilityStorePort
from slotbook.application.utils.rules import default_weekly_rules, ensure_valid_rule, ensure_valid_window
from slotbook.domain.entities.appointment import Appointment, AppointmentStatus
from slotbook.domain.entities.date_exception import DateException
from slotbook.domain.entities.day_of_week import DayOfWeek
from slotbook.domain.entities.time_of_day import TimeOfDay
from slotbook.domain.entities.weekly_rule import WeeklyAvailabilityRule

_APPOINTMENT_FIELDS = {
    "service_id",
    "customer_name",
    "customer_phone",
    "customer_email",
    "scheduled_at",
    "duration_minutes",
    "status",
    "paid",
    "notes",
}


class MemorySchedulingStore(WeeklyAvailabilityStorePort, DateExceptionStorePort, AppointmentStorePort):
    def __init__(self, default_start: TimeOfDay | None = None, default_end: TimeOfDay | None = None) -> None:
        self._rules: dict[str, dict[DayOfWeek, WeeklyAvailabilityRule]] = {}
        self._exceptions: dict[str, DateException] = {}
        self._appointments: dict[str, Appointment] = {}
        self._default_start = default_start
        self._default_end = default_end
        self._lock = threading.RLock()

    # weekly rules

    def get_weekly_rules(self, provider_id: str) -> list[WeeklyAvailabilityRule]:
        with self._lock:
            return [self._week(provider_id)[day] for day in DayOfWeek]

    def set_day_availability(self, provider_id: str, day_of_week: int, is_available: bool) -> WeeklyAvailabilityRule:
        with self._lock:
            week = self._week(provider_id)
            day = DayOfWeek(day_of_week)
            rule = replace(week[day], is_available=is_available)
            ensure_valid_rule(rule)
            week[day] = rule
            return rule

    def set_day_times(
        self,
        provider_id: str,
        day_of_week: int,
        start_time: TimeOfDay,
        end_time: TimeOfDay,
    ) -> WeeklyAvailabilityRule:
        ensure_valid_window(start_time, end_time, day_of_week)
        with self._lock:
            week = self._week(provider_id)
            day = DayOfWeek(day_of_week)
            rule = replace(week[day], start_time=start_time, end_time=end_time)
            week[day] = rule
            return rule

    def save_weekly_rules(self, provider_id: str, rules: list[WeeklyAvailabilityRule]) -> list[WeeklyAvailabilityRule]:
        for rule in rules:
            ensure_valid_rule(rule)
        with self._lock:
            week = self._week(provider_id)
            for rule in rules:
                day = DayOfWeek(rule.day_of_week)
                week[day] = replace(rule, provider_id=provider_id, day_of_week=day, id=week[day].id)
            return [week[day] for day in DayOfWeek]

    def _week(self, provider_id: str) -> dict[DayOfWeek, WeeklyAvailabilityRule]:
        if provider_id not in self._rules:
            self._rules[provider_id] = {
                rule.day_of_week: replace(rule, id=_new_id())
                for rule in default_weekly_rules(provider_id, self._default_start, self._default_end)
            }
        return self._rules[provider_id]

    # blocked dates

    def get_date_exceptions(self, provider_id: str) -> list[DateException]:
        with self._lock:
            owned = [exc for exc in self._exceptions.values() if exc.provider_id == provider_id]
        return sorted(owned, key=lambda exc: exc.date)

    def add_date_exception(self, provider_id: str, day: date, reason: str | None = None) -> DateException:
        with self._lock:
            for exc in self._exceptions.values():
                if exc.provider_id == provider_id and exc.date == day:
                    raise UniqueConstraintViolation(f"{day.isoformat()} is already blocked")
            exc = DateException(
                provider_id=provider_id,
                date=day,
                reason=reason,
                id=_new_id(),
                created_at=datetime.now(),
            )
            self._exceptions[exc.id] = exc
            return exc

    def remove_date_exception(self, exception_id: str) -> bool:
        with self._lock:
            return self._exceptions.pop(exception_id, None) is not None

    # appointments

    def get_appointments(
        self,
        provider_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
        statuses: Iterable[AppointmentStatus] | None = None,
    ) -> list[Appointment]:
        wanted = {AppointmentStatus(s) for s in statuses} if statuses is not None else None
        with self._lock:
            found = [
                appt
                for appt in self._appointments.values()
                if appt.provider_id == provider_id
                and (start is None or appt.scheduled_at >= start)
                and (end is None or appt.scheduled_at < end)
                and (wanted is None or appt.status in wanted)
            ]
        return sorted(found, key=lambda appt: appt.scheduled_at)

    def get_appointment(self, appointment_id: str) -> Appointment | None:
        with self._lock:
            return self._appointments.get(appointment_id)

    def create_appointment(self, appointment: Appointment) -> Appointment:
        with self._lock:
            self._check_unique(appointment)
            created = replace(appointment, id=_new_id(), created_at=datetime.now())
            self._appointments[created.id] = created
            return created

    def update_appointment(self, appointment_id: str, **fields: Any) -> Appointment:
        unknown = set(fields) - _APPOINTMENT_FIELDS
        if unknown:
            raise ValueError(f"unknown appointment fields: {', '.join(sorted(unknown))}")
        if "status" in fields:
            fields["status"] = AppointmentStatus(fields["status"])
        with self._lock:
            current = self._appointments.get(appointment_id)
            if current is None:
                raise AppointmentNotFound(appointment_id)
            updated = replace(current, **fields)
            self._check_unique(updated)
            self._appointments[appointment_id] = updated
            return updated

    def _check_unique(self, candidate: Appointment) -> None:
        if not candidate.is_active:
            return
        for other in self._appointments.values():
            if (
                other.id != candidate.id
                and other.is_active
                and other.provider_id == candidate.provider_id
                and other.scheduled_at == candidate.scheduled_at
            ):
                raise UniqueConstraintViolation(
                    f"provider {candidate.provider_id} already has a booking at {candidate.scheduled_at.isoformat()}"
                )


def _new_id() -> str:
    return uuid.uuid4().hex
