from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"

    def can_transition_to(self, target: AppointmentStatus) -> bool:
        return target in _TRANSITIONS[self]

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self]


_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.ACCEPTED, AppointmentStatus.REJECTED}),
    AppointmentStatus.ACCEPTED: frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.REJECTED}),
    AppointmentStatus.REJECTED: frozenset(),
    AppointmentStatus.COMPLETED: frozenset(),
}

# Only these occupy the provider's calendar.
ACTIVE_STATUSES = frozenset({AppointmentStatus.PENDING, AppointmentStatus.ACCEPTED})


@dataclass(frozen=True)
class CustomerDetails:
    name: str
    phone: str | None = None
    email: str | None = None
    notes: str | None = None

    @property
    def contact(self) -> str | None:
        return self.phone or self.email


@dataclass(frozen=True)
class Appointment:
    provider_id: str
    service_id: str
    customer_name: str
    scheduled_at: datetime  # naive wall-clock time in the business timezone
    duration_minutes: int
    customer_phone: str | None = None
    customer_email: str | None = None
    status: AppointmentStatus = AppointmentStatus.PENDING
    paid: bool = False
    notes: str | None = None
    id: str | None = None
    created_at: datetime | None = None

    @property
    def ends_at(self) -> datetime:
        return self.scheduled_at + timedelta(minutes=self.duration_minutes)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def customer_contact(self) -> str | None:
        return self.customer_phone or self.customer_email
