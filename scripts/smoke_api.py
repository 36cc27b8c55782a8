#!/usr/bin/env python3
"""Smoke test for the scheduling API against a running server."""

import sys
from datetime import date, timedelta

import httpx


BASE_URL = "http://127.0.0.1:8001"
PROVIDER = "smoke-provider"


def next_weekday(start: date) -> date:
    day = start + timedelta(days=1)
    while day.weekday() >= 5:
        day += timedelta(days=1)
    return day


def test_schedule():
    """Read the weekly schedule (seeded on first access)."""
    print("=" * 60)
    print(f"Testing GET /api/v1/providers/{PROVIDER}/schedule")
    print("=" * 60)

    try:
        response = httpx.get(f"{BASE_URL}/api/v1/providers/{PROVIDER}/schedule", timeout=10.0)
        response.raise_for_status()

        for rule in response.json()["rules"]:
            state = "open" if rule["is_available"] else "closed"
            print(f"  {rule['day_name']:<10} {state:<7} {rule['start_time']}-{rule['end_time']}")
        return True
    except httpx.HTTPStatusError as e:
        print(f"❌ HTTP Error: {e.response.status_code}")
        print(f"Response: {e.response.text}")
        return False


def test_slots(day: date) -> list[str]:
    print("\n" + "=" * 60)
    print(f"Testing GET /api/v1/providers/{PROVIDER}/slots?date={day}")
    print("=" * 60)

    response = httpx.get(
        f"{BASE_URL}/api/v1/providers/{PROVIDER}/slots",
        params={"date": day.isoformat()},
        timeout=10.0,
    )
    if response.status_code != 200:
        print(f"❌ HTTP Error: {response.status_code}")
        print(f"Response: {response.text}")
        return []
    slots = response.json()["slots"]
    print(f"✅ {len(slots)} open slots: {', '.join(slots)}")
    return slots


def test_booking(day: date, slot: str):
    """Book a slot twice; the second request must conflict."""
    print("\n" + "=" * 60)
    print(f"Testing POST /api/v1/providers/{PROVIDER}/bookings")
    print("=" * 60)

    payload = {
        "service_id": "consultation",
        "date": day.isoformat(),
        "time": slot,
        "customer_name": "Smoke Test",
        "customer_email": "smoke@example.com",
    }

    first = httpx.post(f"{BASE_URL}/api/v1/providers/{PROVIDER}/bookings", json=payload, timeout=10.0)
    if first.status_code != 201:
        print(f"❌ HTTP Error: {first.status_code}")
        print(f"Response: {first.text}")
        return None
    booking = first.json()
    print(f"✅ Booked {booking['scheduled_at']} (id={booking['id']}, status={booking['status']})")

    second = httpx.post(f"{BASE_URL}/api/v1/providers/{PROVIDER}/bookings", json=payload, timeout=10.0)
    if second.status_code == 409:
        print(f"✅ Double booking refused: {second.json()['detail']['message']}")
    else:
        print(f"❌ Expected 409, got {second.status_code}: {second.text}")
    return booking["id"]


def test_reject(appointment_id: str | None):
    print("\n" + "=" * 60)
    print("Testing PATCH /api/v1/bookings/{id}/status")
    print("=" * 60)

    if not appointment_id:
        print("⚠️  No booking to reject, skipping")
        return
    response = httpx.patch(
        f"{BASE_URL}/api/v1/bookings/{appointment_id}/status",
        json={"status": "rejected"},
        timeout=10.0,
    )
    if response.status_code == 200:
        print("✅ Booking rejected, slot is free again")
    else:
        print(f"❌ HTTP Error: {response.status_code}")
        print(f"Response: {response.text}")


def main():
    print("\n🚀 Testing Scheduling API\n")

    try:
        httpx.get(f"{BASE_URL}/health", timeout=5.0)
        print("✅ Server is running\n")
    except httpx.HTTPError:
        print("❌ Server is not running!")
        print("   Please start it with: uvicorn slotbook.main:app --reload --port 8001")
        sys.exit(1)

    if not test_schedule():
        sys.exit(1)

    day = next_weekday(date.today())
    slots = test_slots(day)
    if not slots:
        print("⚠️  No slots available, nothing to book")
        sys.exit(1)

    appointment_id = test_booking(day, slots[0])
    test_reject(appointment_id)

    print("\n" + "=" * 60)
    print("✅ Smoke test complete!")
    print("=" * 60 + "\n")


if __name__ == "__main__":
    main()
