"""
PostgREST-backed store for the tables the hosted booking page already uses:
availability_settings, blocked_dates and service_requests.

Uniqueness is enforced by the database. The columns and indexes this store
relies on are created by supabase/migrations/20260301000000_slotbook_scheduling.sql:

    unique (user_id, day_of_week)                       on availability_settings
    unique (user_id, blocked_date)                      on blocked_dates
    unique (user_id, scheduled_at)
        where status in ('pending', 'accepted')         on service_requests
    duration_minutes integer                            on service_requests

A violated constraint comes back as HTTP 409 (Postgres code 23505) and is
raised as UniqueConstraintViolation. Any other 4xx, such as PGRST204 for a
missing column, is raised as StoreRequestRejected; transport errors and 5xx
as PersistenceUnavailable. Service requests without scheduled_at are not
appointments yet and are left out.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, datetime
from typing import Any
from zoneinfo import ZoneInfo

import httpx

from slotbook.application.exceptions import (
    AppointmentNotFound,
    PersistenceUnavailable,
    StoreRequestRejected,
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

RULES_TABLE = "availability_settings"
BLOCKED_TABLE = "blocked_dates"
REQUESTS_TABLE = "service_requests"

UNIQUE_VIOLATION_CODE = "23505"


class SupabaseSchedulingStore(WeeklyAvailabilityStorePort, DateExceptionStorePort, AppointmentStorePort):
    def __init__(
        self,
        base_url: str,
        service_key: str,
        timezone: ZoneInfo,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
        default_start: TimeOfDay | None = None,
        default_end: TimeOfDay | None = None,
    ) -> None:
        if not base_url or not service_key:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_KEY are required for the supabase store")
        self._rest_url = f"{base_url.rstrip('/')}/rest/v1"
        self._headers = {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Content-Type": "application/json",
        }
        self._timezone = timezone
        self._client = client or httpx.Client(timeout=timeout)
        self._default_start = default_start
        self._default_end = default_end
        self._logger = logging.getLogger(__name__)

    def _request(
        self,
        method: str,
        table: str,
        params: list[tuple[str, str]] | None = None,
        json: Any = None,
        prefer: str = "return=representation",
    ) -> list[dict[str, Any]]:
        url = f"{self._rest_url}/{table}"
        headers = {**self._headers, "Prefer": prefer}
        try:
            response = self._client.request(method, url, params=params, json=json, headers=headers)
        except httpx.TransportError as e:
            self._logger.error("Supabase request failed", extra={"reason": f"{method} {table}: {e}"})
            raise PersistenceUnavailable(f"{method} {table} failed: {e}") from e

        if response.status_code == 409 or _error_code(response) == UNIQUE_VIOLATION_CODE:
            raise UniqueConstraintViolation(_error_message(response))
        if response.status_code >= 500:
            self._logger.error(
                "Supabase returned server error",
                extra={"reason": f"{method} {table}: {response.status_code}"},
            )
            raise PersistenceUnavailable(f"{method} {table} returned {response.status_code}")
        if response.is_error:
            code = _error_code(response)
            self._logger.error(
                "Supabase rejected request",
                extra={"reason": f"{method} {table}: {response.status_code} {code or ''}".rstrip()},
            )
            raise StoreRequestRejected(
                f"{method} {table} returned {response.status_code}: {_error_message(response, 'request rejected')}",
                code=code,
            )

        if not response.content:
            return []
        data = response.json()
        return data if isinstance(data, list) else [data]

    # weekly rules

    def get_weekly_rules(self, provider_id: str) -> list[WeeklyAvailabilityRule]:
        rows = self._fetch_rules(provider_id)
        if len(rows) < len(DayOfWeek):
            present = {int(row["day_of_week"]) for row in rows}
            missing = [
                rule
                for rule in default_weekly_rules(provider_id, self._default_start, self._default_end)
                if int(rule.day_of_week) not in present
            ]
            self._request(
                "POST",
                RULES_TABLE,
                params=[("on_conflict", "user_id,day_of_week")],
                json=[_rule_row(rule) for rule in missing],
                prefer="resolution=ignore-duplicates,return=minimal",
            )
            self._logger.info("Seeded default week", extra={"provider_id": provider_id})
            rows = self._fetch_rules(provider_id)
        return [_parse_rule(row) for row in rows]

    def _fetch_rules(self, provider_id: str) -> list[dict[str, Any]]:
        return self._request(
            "GET",
            RULES_TABLE,
            params=[("user_id", f"eq.{provider_id}"), ("order", "day_of_week.asc"), ("select", "*")],
        )

    def set_day_availability(self, provider_id: str, day_of_week: int, is_available: bool) -> WeeklyAvailabilityRule:
        day = DayOfWeek(day_of_week)
        current = {rule.day_of_week: rule for rule in self.get_weekly_rules(provider_id)}[day]
        if is_available:
            ensure_valid_window(current.start_time, current.end_time, day)
        rows = self._request(
            "PATCH",
            RULES_TABLE,
            params=[("user_id", f"eq.{provider_id}"), ("day_of_week", f"eq.{int(day)}")],
            json={"is_available": is_available},
        )
        return _parse_rule(rows[0])

    def set_day_times(
        self,
        provider_id: str,
        day_of_week: int,
        start_time: TimeOfDay,
        end_time: TimeOfDay,
    ) -> WeeklyAvailabilityRule:
        ensure_valid_window(start_time, end_time, day_of_week)
        day = DayOfWeek(day_of_week)
        self.get_weekly_rules(provider_id)
        rows = self._request(
            "PATCH",
            RULES_TABLE,
            params=[("user_id", f"eq.{provider_id}"), ("day_of_week", f"eq.{int(day)}")],
            json={"start_time": str(start_time), "end_time": str(end_time)},
        )
        return _parse_rule(rows[0])

    def save_weekly_rules(self, provider_id: str, rules: list[WeeklyAvailabilityRule]) -> list[WeeklyAvailabilityRule]:
        for rule in rules:
            ensure_valid_rule(rule)
        payload = [
            {**_rule_row(rule), "user_id": provider_id}
            for rule in rules
        ]
        self._request(
            "POST",
            RULES_TABLE,
            params=[("on_conflict", "user_id,day_of_week")],
            json=payload,
            prefer="resolution=merge-duplicates,return=minimal",
        )
        return self.get_weekly_rules(provider_id)

    # blocked dates

    def get_date_exceptions(self, provider_id: str) -> list[DateException]:
        rows = self._request(
            "GET",
            BLOCKED_TABLE,
            params=[("user_id", f"eq.{provider_id}"), ("order", "blocked_date.asc"), ("select", "*")],
        )
        return [_parse_exception(row) for row in rows]

    def add_date_exception(self, provider_id: str, day: date, reason: str | None = None) -> DateException:
        rows = self._request(
            "POST",
            BLOCKED_TABLE,
            json={"user_id": provider_id, "blocked_date": day.isoformat(), "reason": reason},
        )
        return _parse_exception(rows[0])

    def remove_date_exception(self, exception_id: str) -> bool:
        rows = self._request("DELETE", BLOCKED_TABLE, params=[("id", f"eq.{exception_id}")])
        return bool(rows)

    # appointments

    def get_appointments(
        self,
        provider_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
        statuses: Iterable[AppointmentStatus] | None = None,
    ) -> list[Appointment]:
        # Requests created from the storefront checkout have no time yet.
        params = [("user_id", f"eq.{provider_id}"), ("scheduled_at", "not.is.null")]
        if start is not None:
            params.append(("scheduled_at", f"gte.{self._to_wire(start)}"))
        if end is not None:
            params.append(("scheduled_at", f"lt.{self._to_wire(end)}"))
        if statuses is not None:
            values = ",".join(AppointmentStatus(s).value for s in statuses)
            params.append(("status", f"in.({values})"))
        params += [("order", "scheduled_at.asc"), ("select", "*")]
        rows = self._request("GET", REQUESTS_TABLE, params=params)
        return [self._parse_appointment(row) for row in self._scheduled(rows)]

    def get_appointment(self, appointment_id: str) -> Appointment | None:
        rows = self._request("GET", REQUESTS_TABLE, params=[("id", f"eq.{appointment_id}"), ("select", "*")])
        rows = self._scheduled(rows)
        return self._parse_appointment(rows[0]) if rows else None

    def create_appointment(self, appointment: Appointment) -> Appointment:
        rows = self._request("POST", REQUESTS_TABLE, json=self._appointment_row(appointment))
        return self._parse_appointment(rows[0])

    def update_appointment(self, appointment_id: str, **fields: Any) -> Appointment:
        payload: dict[str, Any] = {}
        for key, value in fields.items():
            if key == "scheduled_at":
                payload[key] = self._to_wire(value)
            elif key == "status":
                payload[key] = AppointmentStatus(value).value
            else:
                payload[key] = value
        rows = self._request("PATCH", REQUESTS_TABLE, params=[("id", f"eq.{appointment_id}")], json=payload)
        rows = self._scheduled(rows)
        if not rows:
            raise AppointmentNotFound(appointment_id)
        return self._parse_appointment(rows[0])

    def _scheduled(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Drop service requests that were never given a time."""
        kept = []
        for row in rows:
            if row.get("scheduled_at"):
                kept.append(row)
            else:
                self._logger.warning(
                    "Skipping service request without scheduled_at",
                    extra={"appointment_id": row.get("id")},
                )
        return kept

    def _appointment_row(self, appt: Appointment) -> dict[str, Any]:
        return {
            "user_id": appt.provider_id,
            "service_id": appt.service_id,
            "customer_name": appt.customer_name,
            "customer_phone": appt.customer_phone,
            "customer_email": appt.customer_email,
            "scheduled_at": self._to_wire(appt.scheduled_at),
            "duration_minutes": appt.duration_minutes,
            "status": appt.status.value,
            "paid": appt.paid,
            "notes": appt.notes,
        }

    def _parse_appointment(self, row: dict[str, Any]) -> Appointment:
        return Appointment(
            id=str(row["id"]),
            provider_id=row["user_id"],
            service_id=row["service_id"],
            customer_name=row["customer_name"],
            customer_phone=row.get("customer_phone"),
            customer_email=row.get("customer_email"),
            scheduled_at=self._from_wire(row["scheduled_at"]),
            duration_minutes=int(row.get("duration_minutes") or 60),
            status=AppointmentStatus(row.get("status") or "pending"),
            paid=bool(row.get("paid")),
            notes=row.get("notes"),
            created_at=self._from_wire(row["created_at"]) if row.get("created_at") else None,
        )

    def _to_wire(self, value: datetime) -> str:
        # scheduled_at is timestamptz; local wall-clock values are pinned to the business timezone.
        if value.tzinfo is None:
            value = value.replace(tzinfo=self._timezone)
        return value.isoformat()

    def _from_wire(self, value: str) -> datetime:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            return parsed
        return parsed.astimezone(self._timezone).replace(tzinfo=None)


def _rule_row(rule: WeeklyAvailabilityRule) -> dict[str, Any]:
    return {
        "user_id": rule.provider_id,
        "day_of_week": int(rule.day_of_week),
        "is_available": rule.is_available,
        "start_time": str(rule.start_time),
        "end_time": str(rule.end_time),
    }


def _parse_rule(row: dict[str, Any]) -> WeeklyAvailabilityRule:
    return WeeklyAvailabilityRule(
        id=str(row["id"]) if row.get("id") is not None else None,
        provider_id=row["user_id"],
        day_of_week=DayOfWeek(int(row["day_of_week"])),
        is_available=bool(row.get("is_available")),
        start_time=TimeOfDay.parse(row["start_time"]),
        end_time=TimeOfDay.parse(row["end_time"]),
    )


def _parse_exception(row: dict[str, Any]) -> DateException:
    created_at = row.get("created_at")
    return DateException(
        id=str(row["id"]),
        provider_id=row["user_id"],
        date=date.fromisoformat(row["blocked_date"]),
        reason=row.get("reason"),
        created_at=datetime.fromisoformat(created_at.replace("Z", "+00:00")) if created_at else None,
    )


def _error_code(response: httpx.Response) -> str | None:
    if response.is_success:
        return None
    try:
        body = response.json()
    except ValueError:
        return None
    return body.get("code") if isinstance(body, dict) else None


def _error_message(response: httpx.Response, fallback: str = "unique constraint violated") -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or fallback
    if isinstance(body, dict):
        return body.get("message") or body.get("details") or fallback
    return fallback
