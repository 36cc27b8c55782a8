from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from slotbook.domain.entities.appointment import Appointment, AppointmentStatus


class AppointmentStorePort(ABC):
    @abstractmethod
    def get_appointments(
        self,
        provider_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
        statuses: Iterable[AppointmentStatus] | None = None,
    ) -> list[Appointment]:
        """Appointments with start <= scheduled_at < end, ordered by scheduled_at."""
        raise NotImplementedError

    @abstractmethod
    def get_appointment(self, appointment_id: str) -> Appointment | None:
        raise NotImplementedError

    @abstractmethod
    def create_appointment(self, appointment: Appointment) -> Appointment:
        """
        Persist a new appointment and return it with id and created_at set.
        Raises UniqueConstraintViolation if another active appointment of the
        same provider starts at the same scheduled_at.
        """
        raise NotImplementedError

    @abstractmethod
    def update_appointment(self, appointment_id: str, **fields: Any) -> Appointment:
        """
        Apply field changes. Raises AppointmentNotFound for an unknown id and
        UniqueConstraintViolation under the same rule as create_appointment.
        """
        raise NotImplementedError
