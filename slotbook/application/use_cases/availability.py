from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import date, datetime, timedelta
from enum import Enum
from zoneinfo import ZoneInfo

from slotbook.domain.entities.date_exception import DateException
from slotbook.domain.entities.day_of_week import DayOfWeek
from slotbook.domain.entities.time_of_day import TimeOfDay
from slotbook.domain.entities.weekly_rule import WeeklyAvailabilityRule


class SlotBoundary(str, Enum):
    # A slot may start exactly at closing time.
    INCLUSIVE = "inclusive"
    # A slot must end by closing time.
    MUST_FIT = "must_fit"


class AvailabilityEngine:
    """
    Turns weekly rules and blocked dates into bookable dates and slots.

    Stateless: every call works only on the snapshots it is given. Rules
    and exceptions belonging to other providers are ignored.
    """

    def __init__(
        self,
        timezone: ZoneInfo,
        boundary: SlotBoundary = SlotBoundary.INCLUSIVE,
        clock: Callable[[], date] | None = None,
    ) -> None:
        self._timezone = timezone
        self._boundary = SlotBoundary(boundary)
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    def today(self) -> date:
        if self._clock is not None:
            return self._clock()
        return datetime.now(self._timezone).date()

    def rule_for(
        self,
        provider_id: str,
        day: date,
        weekly_rules: Iterable[WeeklyAvailabilityRule],
    ) -> WeeklyAvailabilityRule | None:
        weekday = DayOfWeek.of(day)
        for rule in weekly_rules:
            if rule.provider_id == provider_id and rule.day_of_week == weekday:
                return rule
        return None

    def is_date_bookable(
        self,
        provider_id: str,
        day: date,
        weekly_rules: Iterable[WeeklyAvailabilityRule],
        exceptions: Iterable[DateException],
        today: date | None = None,
    ) -> bool:
        if day < (today or self.today()):
            return False

        if any(exc.provider_id == provider_id and exc.date == day for exc in exceptions):
            return False

        rule = self.rule_for(provider_id, day, weekly_rules)
        if rule is None:
            return False
        if not rule.is_available:
            return False
        if not rule.has_valid_window:
            self._logger.warning(
                "Malformed weekly rule treated as closed",
                extra={
                    "provider_id": provider_id,
                    "date": day.isoformat(),
                    "reason": f"{rule.start_time}>={rule.end_time}",
                },
            )
            return False
        return True

    def get_bookable_slots(
        self,
        provider_id: str,
        day: date,
        weekly_rules: Iterable[WeeklyAvailabilityRule],
        exceptions: Iterable[DateException],
        slot_granularity_minutes: int = 60,
        today: date | None = None,
    ) -> list[TimeOfDay]:
        if slot_granularity_minutes <= 0:
            raise ValueError(f"slot granularity must be positive, got {slot_granularity_minutes}")

        weekly_rules = list(weekly_rules)
        if not self.is_date_bookable(provider_id, day, weekly_rules, exceptions, today=today):
            return []

        rule = self.rule_for(provider_id, day, weekly_rules)
        if rule is None:
            return []

        last_start = rule.end_time.minutes
        if self._boundary is SlotBoundary.MUST_FIT:
            last_start -= slot_granularity_minutes

        slots: list[TimeOfDay] = []
        current: TimeOfDay | None = rule.start_time
        while current is not None and current.minutes <= last_start:
            slots.append(current)
            current = current.plus_minutes(slot_granularity_minutes)
        return slots

    def upcoming_bookable_dates(
        self,
        provider_id: str,
        weekly_rules: Iterable[WeeklyAvailabilityRule],
        exceptions: Iterable[DateException],
        limit: int = 5,
        horizon_days: int = 60,
        today: date | None = None,
    ) -> list[date]:
        """Next bookable dates starting today, at most limit, within horizon_days."""
        start = today or self.today()
        weekly_rules = list(weekly_rules)
        exceptions = list(exceptions)

        found: list[date] = []
        for offset in range(horizon_days):
            if len(found) >= limit:
                break
            day = start + timedelta(days=offset)
            if self.is_date_bookable(provider_id, day, weekly_rules, exceptions, today=start):
                found.append(day)
        return found
