from __future__ import annotations

from slotbook.application.exceptions import InvalidConfiguration
from slotbook.domain.entities.day_of_week import DayOfWeek
from slotbook.domain.entities.time_of_day import TimeOfDay
from slotbook.domain.entities.weekly_rule import WeeklyAvailabilityRule

WEEKEND = frozenset({DayOfWeek.SATURDAY, DayOfWeek.SUNDAY})


def ensure_valid_window(start_time: TimeOfDay, end_time: TimeOfDay, day_of_week: int | None = None) -> None:
    if start_time >= end_time:
        where = f" for {DayOfWeek(day_of_week).label}" if day_of_week is not None else ""
        raise InvalidConfiguration(f"start time {start_time} must be before end time {end_time}{where}")


def ensure_valid_rule(rule: WeeklyAvailabilityRule) -> None:
    if rule.is_available:
        ensure_valid_window(rule.start_time, rule.end_time, rule.day_of_week)


def default_weekly_rules(
    provider_id: str,
    start_time: TimeOfDay | None = None,
    end_time: TimeOfDay | None = None,
) -> list[WeeklyAvailabilityRule]:
    """Seed week for a provider seen for the first time: weekdays open, weekends closed."""
    start_time = start_time or TimeOfDay(9, 0)
    end_time = end_time or TimeOfDay(17, 0)
    ensure_valid_window(start_time, end_time)
    return [
        WeeklyAvailabilityRule(
            provider_id=provider_id,
            day_of_week=day,
            is_available=day not in WEEKEND,
            start_time=start_time,
            end_time=end_time,
        )
        for day in DayOfWeek
    ]
