from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta

from slotbook.domain.entities.appointment import Appointment


def intervals_overlap(start_a: datetime, minutes_a: int, start_b: datetime, minutes_b: int) -> bool:
    """Half-open overlap test: touching endpoints do not overlap."""
    end_a = start_a + timedelta(minutes=minutes_a)
    end_b = start_b + timedelta(minutes=minutes_b)
    return start_a < end_b and start_b < end_a


class BookingConflictChecker:
    """
    Overlap detection against a snapshot of one provider's appointments.

    Rejected and completed appointments never conflict. When rescheduling,
    the caller removes the appointment being moved from the snapshot.
    """

    def find_conflict(
        self,
        candidate_start: datetime,
        candidate_duration_minutes: int,
        existing_appointments: Iterable[Appointment],
    ) -> Appointment | None:
        for appointment in existing_appointments:
            if not appointment.is_active:
                continue
            if intervals_overlap(
                candidate_start,
                candidate_duration_minutes,
                appointment.scheduled_at,
                appointment.duration_minutes,
            ):
                return appointment
        return None

    def has_conflict(
        self,
        candidate_start: datetime,
        candidate_duration_minutes: int,
        existing_appointments: Iterable[Appointment],
    ) -> bool:
        return self.find_conflict(candidate_start, candidate_duration_minutes, existing_appointments) is not None
