from datetime import date, datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field

from slotbook.domain.entities.appointment import Appointment, AppointmentStatus
from slotbook.domain.entities.date_exception import DateException
from slotbook.domain.entities.day_of_week import DayOfWeek
from slotbook.domain.entities.time_of_day import TimeOfDay
from slotbook.domain.entities.weekly_rule import WeeklyAvailabilityRule


def _check_time(value: str) -> str:
    return str(TimeOfDay.parse(value))


TimeString = Annotated[str, AfterValidator(_check_time)]


class RuleSchema(BaseModel):
    day_of_week: int = Field(ge=0, le=6)
    is_available: bool
    start_time: TimeString = "09:00"
    end_time: TimeString = "17:00"

    def to_rule(self, provider_id: str) -> WeeklyAvailabilityRule:
        return WeeklyAvailabilityRule(
            provider_id=provider_id,
            day_of_week=DayOfWeek(self.day_of_week),
            is_available=self.is_available,
            start_time=TimeOfDay.parse(self.start_time),
            end_time=TimeOfDay.parse(self.end_time),
        )


class RuleOutSchema(RuleSchema):
    id: str | None = None
    day_name: str

    @classmethod
    def from_rule(cls, rule: WeeklyAvailabilityRule) -> "RuleOutSchema":
        return cls(
            id=rule.id,
            day_of_week=int(rule.day_of_week),
            day_name=DayOfWeek(rule.day_of_week).label,
            is_available=rule.is_available,
            start_time=str(rule.start_time),
            end_time=str(rule.end_time),
        )


class WeeklyScheduleSchema(BaseModel):
    rules: list[RuleSchema] = Field(min_length=1, max_length=7)


class WeeklyScheduleOutSchema(BaseModel):
    provider_id: str
    rules: list[RuleOutSchema]


class DayUpdateSchema(BaseModel):
    is_available: bool | None = None
    start_time: TimeString | None = None
    end_time: TimeString | None = None


class BlockDateRequestSchema(BaseModel):
    date: date
    reason: str | None = None


class BlockedDateSchema(BaseModel):
    id: str | None
    date: date
    reason: str | None = None

    @classmethod
    def from_exception(cls, exc: DateException) -> "BlockedDateSchema":
        return cls(id=exc.id, date=exc.date, reason=exc.reason)


class SlotsResponseSchema(BaseModel):
    provider_id: str
    date: date
    slots: list[str]


class BookableDatesResponseSchema(BaseModel):
    provider_id: str
    dates: list[date]


class BookingRequestSchema(BaseModel):
    service_id: str
    date: date
    time: str
    duration_minutes: int | None = Field(default=None, gt=0)
    customer_name: str
    customer_phone: str | None = None
    customer_email: str | None = None
    notes: str | None = None


class RescheduleRequestSchema(BaseModel):
    date: date
    time: str
    duration_minutes: int | None = Field(default=None, gt=0)


class StatusUpdateSchema(BaseModel):
    status: AppointmentStatus


class PaidUpdateSchema(BaseModel):
    paid: bool


class AppointmentSchema(BaseModel):
    id: str | None
    provider_id: str
    service_id: str
    customer_name: str
    customer_phone: str | None = None
    customer_email: str | None = None
    scheduled_at: datetime
    ends_at: datetime
    duration_minutes: int
    status: AppointmentStatus
    paid: bool
    notes: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_appointment(cls, appt: Appointment) -> "AppointmentSchema":
        return cls(
            id=appt.id,
            provider_id=appt.provider_id,
            service_id=appt.service_id,
            customer_name=appt.customer_name,
            customer_phone=appt.customer_phone,
            customer_email=appt.customer_email,
            scheduled_at=appt.scheduled_at,
            ends_at=appt.ends_at,
            duration_minutes=appt.duration_minutes,
            status=appt.status,
            paid=appt.paid,
            notes=appt.notes,
            created_at=appt.created_at,
        )
