from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from slotbook.domain.entities.appointment import Appointment


class BookingErrorKind(str, Enum):
    DATE_UNAVAILABLE = "date_unavailable"  # the whole day is closed, blocked or past
    SLOT_NOT_OFFERED = "slot_not_offered"  # day is open but that time is not a slot
    SLOT_CONFLICT = "slot_conflict"  # time overlaps another pending/accepted booking
    INVALID_DETAILS = "invalid_details"


@dataclass(frozen=True)
class BookingError:
    kind: BookingErrorKind
    message: str


@dataclass(frozen=True)
class BookingResult:
    appointment: Appointment | None = None
    error: BookingError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.appointment is not None

    @classmethod
    def success(cls, appointment: Appointment) -> BookingResult:
        return cls(appointment=appointment)

    @classmethod
    def failure(cls, kind: BookingErrorKind, message: str) -> BookingResult:
        return cls(error=BookingError(kind=kind, message=message))
