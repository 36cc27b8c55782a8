from __future__ import annotations

import json
import logging
import threading
import uuid
from collections.abc import Iterable
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path
from typing import Any
from urllib.parse import quote

from slotbook.application.exceptions import (
    AppointmentNotFound,
    PersistenceUnavailable,
    UniqueConstraintViolation,
)
from slotbook.application.ports.appointment_store import AppointmentStorePort
from slotbook.application.ports.date_exception_store import DateExceptionStorePort
from slotbook.application.ports.weekly_availability_store import WeeklyAvailabilityStorePort
from slotbook.application.utils.rules import default_weekly_rules, ensure_valid_rule, ensure_valid_window
from slotbook.domain.entities.appointment import Appointment, AppointmentStatus
from slotbook.domain.entities.date_exception import DateException
from slotbook.domain.entities.day_of_week import DayOfWeek
from slotbook.domain.entities.time_of_day import TimeOfDay
from slotbook.domain.entities.weekly_rule import WeeklyAvailabilityRule

logger = logging.getLogger(__name__)


class JsonSchedulingStore(WeeklyAvailabilityStorePort, DateExceptionStorePort, AppointmentStorePort):
    """One JSON document per provider holding rules, blocked dates and appointments."""

    def __init__(
        self,
        data_dir: str = "./data/providers",
        default_start: TimeOfDay | None = None,
        default_end: TimeOfDay | None = None,
    ) -> None:
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._default_start = default_start
        self._default_end = default_end
        self._locks: dict[str, threading.Lock] = {}
        self._lock_lock = threading.Lock()  # Lock for managing locks dict

    def _get_lock(self, provider_id: str) -> threading.Lock:
        """Get or create a lock for a provider_id."""
        with self._lock_lock:
            if provider_id not in self._locks:
                self._locks[provider_id] = threading.Lock()
            return self._locks[provider_id]

    def _get_file_path(self, provider_id: str) -> Path:
        return self._data_dir / f"{quote(provider_id, safe='')}.json"

    def _empty_document(self, provider_id: str) -> dict[str, Any]:
        return {
            "provider_id": provider_id,
            "rules": [
                _serialize_rule(replace(rule, id=uuid.uuid4().hex))
                for rule in default_weekly_rules(provider_id, self._default_start, self._default_end)
            ],
            "blocked_dates": [],
            "appointments": [],
            "version": 1,
        }

    def _load(self, provider_id: str) -> dict[str, Any]:
        """Load provider data from JSON file, return defaults if missing.

        An existing file that cannot be read raises PersistenceUnavailable
        and is left untouched.
        """
        file_path = self._get_file_path(provider_id)
        if not file_path.exists():
            return self._empty_document(provider_id)
        data = _read_document(file_path)
        if not data.get("rules"):
            data["rules"] = self._empty_document(provider_id)["rules"]
        return data

    def _save(self, provider_id: str, data: dict[str, Any]) -> None:
        """Save provider data to JSON file atomically."""
        file_path = self._get_file_path(provider_id)
        temp_path = file_path.with_suffix(".json.tmp")

        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_path.replace(file_path)
        except Exception:
            if temp_path.exists():
                temp_path.unlink(missing_ok=True)
            raise

    def _owner_of(self, section: str, item_id: str) -> str | None:
        """Find which provider file holds an item. Scans every file."""
        for file_path in self._data_dir.glob("*.json"):
            data = _read_document(file_path)
            if any(item.get("id") == item_id for item in data.get(section, [])):
                return data.get("provider_id")
        return None

    # weekly rules

    def get_weekly_rules(self, provider_id: str) -> list[WeeklyAvailabilityRule]:
        with self._get_lock(provider_id):
            data = self._load(provider_id)
            if not self._get_file_path(provider_id).exists():
                self._save(provider_id, data)
            return _rules_by_day(data)

    def set_day_availability(self, provider_id: str, day_of_week: int, is_available: bool) -> WeeklyAvailabilityRule:
        day = DayOfWeek(day_of_week)
        with self._get_lock(provider_id):
            data = self._load(provider_id)
            rules = {rule.day_of_week: rule for rule in _rules_by_day(data)}
            rule = replace(rules[day], is_available=is_available)
            ensure_valid_rule(rule)
            rules[day] = rule
            data["rules"] = [_serialize_rule(rules[d]) for d in DayOfWeek]
            self._save(provider_id, data)
            return rule

    def set_day_times(
        self,
        provider_id: str,
        day_of_week: int,
        start_time: TimeOfDay,
        end_time: TimeOfDay,
    ) -> WeeklyAvailabilityRule:
        ensure_valid_window(start_time, end_time, day_of_week)
        day = DayOfWeek(day_of_week)
        with self._get_lock(provider_id):
            data = self._load(provider_id)
            rules = {rule.day_of_week: rule for rule in _rules_by_day(data)}
            rule = replace(rules[day], start_time=start_time, end_time=end_time)
            rules[day] = rule
            data["rules"] = [_serialize_rule(rules[d]) for d in DayOfWeek]
            self._save(provider_id, data)
            return rule

    def save_weekly_rules(self, provider_id: str, rules: list[WeeklyAvailabilityRule]) -> list[WeeklyAvailabilityRule]:
        for rule in rules:
            ensure_valid_rule(rule)
        with self._get_lock(provider_id):
            data = self._load(provider_id)
            current = {rule.day_of_week: rule for rule in _rules_by_day(data)}
            for rule in rules:
                day = DayOfWeek(rule.day_of_week)
                current[day] = replace(rule, provider_id=provider_id, day_of_week=day, id=current[day].id)
            data["rules"] = [_serialize_rule(current[d]) for d in DayOfWeek]
            self._save(provider_id, data)
            return [current[d] for d in DayOfWeek]

    # blocked dates

    def get_date_exceptions(self, provider_id: str) -> list[DateException]:
        with self._get_lock(provider_id):
            data = self._load(provider_id)
        exceptions = [_deserialize_exception(provider_id, item) for item in data["blocked_dates"]]
        return sorted(exceptions, key=lambda exc: exc.date)

    def add_date_exception(self, provider_id: str, day: date, reason: str | None = None) -> DateException:
        with self._get_lock(provider_id):
            data = self._load(provider_id)
            if any(item["date"] == day.isoformat() for item in data["blocked_dates"]):
                raise UniqueConstraintViolation(f"{day.isoformat()} is already blocked")
            exc = DateException(
                provider_id=provider_id,
                date=day,
                reason=reason,
                id=uuid.uuid4().hex,
                created_at=datetime.now(),
            )
            data["blocked_dates"].append(_serialize_exception(exc))
            self._save(provider_id, data)
            return exc

    def remove_date_exception(self, exception_id: str) -> bool:
        provider_id = self._owner_of("blocked_dates", exception_id)
        if provider_id is None:
            return False
        with self._get_lock(provider_id):
            data = self._load(provider_id)
            remaining = [item for item in data["blocked_dates"] if item.get("id") != exception_id]
            if len(remaining) == len(data["blocked_dates"]):
                return False
            data["blocked_dates"] = remaining
            self._save(provider_id, data)
            return True

    # appointments

    def get_appointments(
        self,
        provider_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
        statuses: Iterable[AppointmentStatus] | None = None,
    ) -> list[Appointment]:
        wanted = {AppointmentStatus(s) for s in statuses} if statuses is not None else None
        with self._get_lock(provider_id):
            data = self._load(provider_id)
        found = [
            appt
            for appt in (_deserialize_appointment(item) for item in data["appointments"])
            if (start is None or appt.scheduled_at >= start)
            and (end is None or appt.scheduled_at < end)
            and (wanted is None or appt.status in wanted)
        ]
        return sorted(found, key=lambda appt: appt.scheduled_at)

    def get_appointment(self, appointment_id: str) -> Appointment | None:
        provider_id = self._owner_of("appointments", appointment_id)
        if provider_id is None:
            return None
        with self._get_lock(provider_id):
            data = self._load(provider_id)
        for item in data["appointments"]:
            if item.get("id") == appointment_id:
                return _deserialize_appointment(item)
        return None

    def create_appointment(self, appointment: Appointment) -> Appointment:
        provider_id = appointment.provider_id
        with self._get_lock(provider_id):
            data = self._load(provider_id)
            existing = [_deserialize_appointment(item) for item in data["appointments"]]
            _check_unique(appointment, existing)
            created = replace(appointment, id=uuid.uuid4().hex, created_at=datetime.now())
            data["appointments"].append(_serialize_appointment(created))
            self._save(provider_id, data)
            return created

    def update_appointment(self, appointment_id: str, **fields: Any) -> Appointment:
        provider_id = self._owner_of("appointments", appointment_id)
        if provider_id is None:
            raise AppointmentNotFound(appointment_id)
        if "status" in fields:
            fields["status"] = AppointmentStatus(fields["status"])
        with self._get_lock(provider_id):
            data = self._load(provider_id)
            existing = [_deserialize_appointment(item) for item in data["appointments"]]
            for index, current in enumerate(existing):
                if current.id == appointment_id:
                    break
            else:
                raise AppointmentNotFound(appointment_id)
            updated = replace(current, **fields)
            _check_unique(updated, existing)
            data["appointments"][index] = _serialize_appointment(updated)
            self._save(provider_id, data)
            return updated


def _read_document(file_path: Path) -> dict[str, Any]:
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.error("Unreadable provider file", extra={"reason": f"{file_path.name}: {e}"})
        raise PersistenceUnavailable(f"cannot read {file_path.name}: {e}") from e
    if not isinstance(data, dict) or "provider_id" not in data:
        logger.error("Malformed provider file", extra={"reason": file_path.name})
        raise PersistenceUnavailable(f"malformed provider file {file_path.name}")
    data.setdefault("version", 1)
    data.setdefault("blocked_dates", [])
    data.setdefault("appointments", [])
    return data


def _check_unique(candidate: Appointment, existing: list[Appointment]) -> None:
    if not candidate.is_active:
        return
    for other in existing:
        if other.id != candidate.id and other.is_active and other.scheduled_at == candidate.scheduled_at:
            raise UniqueConstraintViolation(
                f"provider {candidate.provider_id} already has a booking at {candidate.scheduled_at.isoformat()}"
            )


def _rules_by_day(data: dict[str, Any]) -> list[WeeklyAvailabilityRule]:
    rules = {
        rule.day_of_week: rule
        for rule in (_deserialize_rule(data["provider_id"], item) for item in data["rules"])
    }
    return [rules[day] for day in DayOfWeek if day in rules]


def _serialize_rule(rule: WeeklyAvailabilityRule) -> dict[str, Any]:
    return {
        "id": rule.id,
        "day_of_week": int(rule.day_of_week),
        "is_available": rule.is_available,
        "start_time": str(rule.start_time),
        "end_time": str(rule.end_time),
    }


def _deserialize_rule(provider_id: str, data: dict[str, Any]) -> WeeklyAvailabilityRule:
    return WeeklyAvailabilityRule(
        provider_id=provider_id,
        day_of_week=DayOfWeek(data["day_of_week"]),
        is_available=bool(data.get("is_available", False)),
        start_time=TimeOfDay.parse(data["start_time"]),
        end_time=TimeOfDay.parse(data["end_time"]),
        id=data.get("id"),
    )


def _serialize_exception(exc: DateException) -> dict[str, Any]:
    return {
        "id": exc.id,
        "date": exc.date.isoformat(),
        "reason": exc.reason,
        "created_at": exc.created_at.isoformat() if exc.created_at else None,
    }


def _deserialize_exception(provider_id: str, data: dict[str, Any]) -> DateException:
    created_at = data.get("created_at")
    return DateException(
        provider_id=provider_id,
        date=date.fromisoformat(data["date"]),
        reason=data.get("reason"),
        id=data.get("id"),
        created_at=datetime.fromisoformat(created_at) if created_at else None,
    )


def _serialize_appointment(appt: Appointment) -> dict[str, Any]:
    return {
        "id": appt.id,
        "provider_id": appt.provider_id,
        "service_id": appt.service_id,
        "customer_name": appt.customer_name,
        "customer_phone": appt.customer_phone,
        "customer_email": appt.customer_email,
        "scheduled_at": appt.scheduled_at.isoformat(),
        "duration_minutes": appt.duration_minutes,
        "status": appt.status.value,
        "paid": appt.paid,
        "notes": appt.notes,
        "created_at": appt.created_at.isoformat() if appt.created_at else None,
    }


def _deserialize_appointment(data: dict[str, Any]) -> Appointment:
    created_at = data.get("created_at")
    return Appointment(
        id=data.get("id"),
        provider_id=data["provider_id"],
        service_id=data["service_id"],
        customer_name=data["customer_name"],
        customer_phone=data.get("customer_phone"),
        customer_email=data.get("customer_email"),
        scheduled_at=datetime.fromisoformat(data["scheduled_at"]),
        duration_minutes=int(data["duration_minutes"]),
        status=AppointmentStatus(data.get("status", "pending")),
        paid=bool(data.get("paid", False)),
        notes=data.get("notes"),
        created_at=datetime.fromisoformat(created_at) if created_at else None,
    )
