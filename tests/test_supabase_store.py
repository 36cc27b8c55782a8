from __future__ import annotations

import json
from datetime import date, datetime
from zoneinfo import ZoneInfo

import httpx
import pytest

from slotbook.application.exceptions import (
    AppointmentNotFound,
    PersistenceUnavailable,
    StoreRequestRejected,
    UniqueConstraintViolation,
)
from slotbook.domain.entities.appointment import Appointment, AppointmentStatus
from slotbook.domain.entities.day_of_week import DayOfWeek
from slotbook.infrastructure.supabase.supabase_store import SupabaseSchedulingStore

BASE_URL = "https://example.supabase.co"
# UTC+3 all year round
TZ = ZoneInfo("Africa/Addis_Ababa")


def _store(handler) -> SupabaseSchedulingStore:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return SupabaseSchedulingStore(base_url=BASE_URL, service_key="service-key", timezone=TZ, client=client)


def _table(request: httpx.Request) -> str:
    return request.url.path.rsplit("/", 1)[-1]


def test_requires_credentials():
    """Test that the store refuses to start without a URL and key."""
    with pytest.raises(ValueError):
        SupabaseSchedulingStore(base_url="", service_key="key", timezone=TZ)


def test_missing_days_are_seeded_with_defaults():
    """Test that a provider without rows gets the default week via an upsert."""
    rows: list[dict] = []
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        assert request.headers["apikey"] == "service-key"
        assert request.headers["Authorization"] == "Bearer service-key"
        if request.method == "GET":
            return httpx.Response(200, json=rows)
        payload = json.loads(request.content)
        for index, row in enumerate(payload):
            rows.append({"id": index + 1, **row})
        return httpx.Response(201)

    rules = _store(handler).get_weekly_rules("p1")

    assert [r.day_of_week for r in rules] == list(DayOfWeek)
    assert rules[DayOfWeek.MONDAY].is_available is True
    assert rules[DayOfWeek.SUNDAY].is_available is False
    assert rules[DayOfWeek.MONDAY].id == "2"

    post = next(r for r in seen if r.method == "POST")
    assert post.url.params["on_conflict"] == "user_id,day_of_week"
    assert "ignore-duplicates" in post.headers["Prefer"]


def test_existing_week_is_not_reseeded():
    """Test that a complete week is read without writing."""
    week = [
        {
            "id": day + 10,
            "user_id": "p1",
            "day_of_week": day,
            "is_available": day == 3,
            "start_time": "08:30:00",
            "end_time": "12:00:00",
        }
        for day in range(7)
    ]
    methods: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        return httpx.Response(200, json=week)

    rules = _store(handler).get_weekly_rules("p1")

    assert methods == ["GET"]
    assert str(rules[DayOfWeek.WEDNESDAY].start_time) == "08:30"
    assert [r.is_available for r in rules].count(True) == 1


def test_duplicate_blocked_date_is_a_unique_violation():
    """Test that a 409 on blocked_dates raises UniqueConstraintViolation."""
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"code": "23505", "message": "duplicate key value"})

    with pytest.raises(UniqueConstraintViolation, match="duplicate key"):
        _store(handler).add_date_exception("p1", date(2030, 1, 7))


def test_unique_code_without_409_is_still_a_violation():
    """Test that Postgres code 23505 is a unique violation whatever the status."""
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"code": "23505", "message": "duplicate"})

    with pytest.raises(UniqueConstraintViolation):
        _store(handler).add_date_exception("p1", date(2030, 1, 7))


def test_network_failure_is_persistence_unavailable():
    """Test that a connection error raises PersistenceUnavailable."""
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(PersistenceUnavailable):
        _store(handler).get_date_exceptions("p1")


def test_server_error_is_persistence_unavailable():
    """Test that a 5xx raises PersistenceUnavailable."""
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="upstream down")

    with pytest.raises(PersistenceUnavailable):
        _store(handler).get_appointments("p1")


def test_appointment_times_use_the_business_timezone():
    """Test that timestamptz values are converted to and from the business timezone."""
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(
            200,
            json=[
                {
                    "id": "a1",
                    "user_id": "p1",
                    "service_id": "haircut",
                    "customer_name": "Client",
                    "customer_phone": "+100",
                    "scheduled_at": "2030-01-07T07:00:00+00:00",
                    "duration_minutes": 45,
                    "status": "accepted",
                    "paid": True,
                    "created_at": "2030-01-01T09:00:00Z",
                }
            ],
        )

    found = _store(handler).get_appointments(
        "p1",
        start=datetime(2030, 1, 7),
        end=datetime(2030, 1, 8),
        statuses=[AppointmentStatus.PENDING, AppointmentStatus.ACCEPTED],
    )

    assert found[0].scheduled_at == datetime(2030, 1, 7, 10, 0)
    assert found[0].status == AppointmentStatus.ACCEPTED
    assert found[0].duration_minutes == 45
    params = captured[0].url.params
    assert params.get_list("scheduled_at") == [
        "not.is.null",
        "gte.2030-01-07T00:00:00+03:00",
        "lt.2030-01-08T00:00:00+03:00",
    ]
    assert params["status"] == "in.(pending,accepted)"


def test_create_appointment_sends_wire_row():
    """Test the row sent when creating an appointment."""
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        bodies.append(body)
        return httpx.Response(201, json=[{"id": "new", **body}])

    created = _store(handler).create_appointment(
        Appointment(
            provider_id="p1",
            service_id="haircut",
            customer_name="Client",
            customer_email="client@example.com",
            scheduled_at=datetime(2030, 1, 7, 10, 0),
            duration_minutes=60,
        )
    )

    assert bodies[0]["user_id"] == "p1"
    assert bodies[0]["scheduled_at"] == "2030-01-07T10:00:00+03:00"
    assert bodies[0]["status"] == "pending"
    assert created.id == "new"
    assert created.scheduled_at == datetime(2030, 1, 7, 10, 0)


def test_update_of_missing_appointment_raises_not_found():
    """Test that an update matching no row raises AppointmentNotFound."""
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "PATCH"
        assert request.url.params["id"] == "eq.missing"
        return httpx.Response(200, json=[])

    with pytest.raises(AppointmentNotFound):
        _store(handler).update_appointment("missing", status="accepted")


def test_remove_date_exception_reports_whether_a_row_was_deleted():
    """Test that removal reports whether a row was deleted."""
    responses = iter([[{"id": "x", "user_id": "p1", "blocked_date": "2030-01-07"}], []])

    def handler(request: httpx.Request) -> httpx.Response:
        assert _table(request) == "blocked_dates"
        return httpx.Response(200, json=next(responses))

    store = _store(handler)
    assert store.remove_date_exception("x") is True
    assert store.remove_date_exception("x") is False


def test_missing_column_is_reported_as_rejected_request():
    """Test that a schema mismatch (PGRST204) surfaces as StoreRequestRejected, not an httpx error."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            400,
            json={
                "code": "PGRST204",
                "message": "Could not find the 'duration_minutes' column of 'service_requests' in the schema cache",
            },
        )

    with pytest.raises(StoreRequestRejected, match="duration_minutes") as exc_info:
        _store(handler).create_appointment(
            Appointment(
                provider_id="p1",
                service_id="haircut",
                customer_name="Client",
                customer_phone="+100",
                scheduled_at=datetime(2030, 1, 7, 10, 0),
                duration_minutes=60,
            )
        )
    assert exc_info.value.code == "PGRST204"


def test_requests_without_a_time_are_not_appointments():
    """Test that checkout rows with a null scheduled_at are filtered out instead of crashing."""
    captured: list[httpx.Request] = []
    unscheduled = {
        "id": "checkout-1",
        "user_id": "p1",
        "service_id": "haircut",
        "customer_name": "Walk-in",
        "scheduled_at": None,
        "status": "pending",
    }
    scheduled = {**unscheduled, "id": "a1", "scheduled_at": "2030-01-07T07:00:00+00:00"}

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        if request.url.params.get("id") == "eq.checkout-1":
            return httpx.Response(200, json=[unscheduled])
        return httpx.Response(200, json=[unscheduled, scheduled])

    store = _store(handler)
    found = store.get_appointments("p1")

    assert [a.id for a in found] == ["a1"]
    assert found[0].duration_minutes == 60
    assert "not.is.null" in captured[0].url.params.get_list("scheduled_at")
    assert store.get_appointment("checkout-1") is None
