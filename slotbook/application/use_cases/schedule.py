from __future__ import annotations

import logging
from datetime import date, time

from slotbook.application.ports.date_exception_store import DateExceptionStorePort
from slotbook.application.ports.weekly_availability_store import WeeklyAvailabilityStorePort
from slotbook.application.use_cases.availability import AvailabilityEngine
from slotbook.domain.entities.date_exception import DateException
from slotbook.domain.entities.day_of_week import DayOfWeek
from slotbook.domain.entities.time_of_day import TimeOfDay
from slotbook.domain.entities.weekly_rule import WeeklyAvailabilityRule


class ManageScheduleUseCase:
    """Provider-side edits to the weekly template and the blocked-date list."""

    def __init__(
        self,
        weekly_store: WeeklyAvailabilityStorePort,
        exception_store: DateExceptionStorePort,
        engine: AvailabilityEngine,
    ) -> None:
        self._weekly = weekly_store
        self._exceptions = exception_store
        self._engine = engine
        self._logger = logging.getLogger(__name__)

    def get_weekly_schedule(self, provider_id: str) -> list[WeeklyAvailabilityRule]:
        return self._weekly.get_weekly_rules(provider_id)

    def set_day_availability(self, provider_id: str, day_of_week: int, is_available: bool) -> WeeklyAvailabilityRule:
        day = DayOfWeek(day_of_week)
        rule = self._weekly.set_day_availability(provider_id, day, is_available)
        self._logger.info(
            "%s availability updated",
            day.label,
            extra={"provider_id": provider_id, "status": "open" if is_available else "closed"},
        )
        return rule

    def set_day_times(
        self,
        provider_id: str,
        day_of_week: int,
        start_time: TimeOfDay | time | str,
        end_time: TimeOfDay | time | str,
    ) -> WeeklyAvailabilityRule:
        day = DayOfWeek(day_of_week)
        return self._weekly.set_day_times(
            provider_id,
            day,
            TimeOfDay.coerce(start_time),
            TimeOfDay.coerce(end_time),
        )

    def save_weekly_schedule(self, provider_id: str, rules: list[WeeklyAvailabilityRule]) -> list[WeeklyAvailabilityRule]:
        days = [rule.day_of_week for rule in rules]
        if len(set(days)) != len(days):
            raise ValueError("each weekday may appear only once")
        owned = [
            WeeklyAvailabilityRule(
                provider_id=provider_id,
                day_of_week=DayOfWeek(rule.day_of_week),
                is_available=rule.is_available,
                start_time=rule.start_time,
                end_time=rule.end_time,
                id=rule.id,
            )
            for rule in rules
        ]
        return self._weekly.save_weekly_rules(provider_id, owned)

    def list_blocked_dates(self, provider_id: str) -> list[DateException]:
        return self._exceptions.get_date_exceptions(provider_id)

    def block_date(self, provider_id: str, day: date, reason: str | None = None) -> DateException:
        if day < self._engine.today():
            raise ValueError(f"cannot block {day.isoformat()}: date is in the past")
        reason = (reason or "").strip() or None
        blocked = self._exceptions.add_date_exception(provider_id, day, reason)
        self._logger.info(
            "Date blocked",
            extra={"provider_id": provider_id, "date": day.isoformat(), "reason": reason},
        )
        return blocked

    def unblock_date(self, exception_id: str) -> bool:
        removed = self._exceptions.remove_date_exception(exception_id)
        if removed:
            self._logger.info("Date unblocked", extra={"exception_id": exception_id})
        return removed
