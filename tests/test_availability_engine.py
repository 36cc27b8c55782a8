"""
Tests for date bookability and slot generation.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import timedelta
from zoneinfo import ZoneInfo

import pytest

from slotbook.application.use_cases.availability import AvailabilityEngine, SlotBoundary
from slotbook.application.utils.rules import default_weekly_rules
from slotbook.domain.entities.date_exception import DateException
from slotbook.domain.entities.day_of_week import DayOfWeek
from slotbook.domain.entities.time_of_day import TimeOfDay

from conftest import NEXT_MONDAY, NEXT_SATURDAY, NEXT_SUNDAY, PROVIDER, TODAY


def _week(**overrides):
    """Default week with per-day overrides, e.g. monday=(True, "09:00", "12:00")."""
    rules = default_weekly_rules(PROVIDER)
    result = []
    for rule in rules:
        key = DayOfWeek(rule.day_of_week).name.lower()
        if key in overrides:
            is_available, start, end = overrides[key]
            rule = replace(
                rule,
                is_available=is_available,
                start_time=TimeOfDay.parse(start),
                end_time=TimeOfDay.parse(end),
            )
        result.append(rule)
    return result


def _slots(values):
    return [TimeOfDay.parse(v) for v in values]


def test_closed_day_yields_no_slots(engine):
    """Weekends are closed in the default week."""
    rules = _week()
    assert engine.get_bookable_slots(PROVIDER, NEXT_SATURDAY, rules, []) == []
    assert engine.get_bookable_slots(PROVIDER, NEXT_SUNDAY, rules, []) == []


def test_exception_overrides_open_weekday(engine):
    """Test that a blocked date closes an otherwise open weekday."""
    rules = _week()
    blocked = [DateException(provider_id=PROVIDER, date=NEXT_MONDAY, reason="Holiday")]

    assert engine.is_date_bookable(PROVIDER, NEXT_MONDAY, rules, []) is True
    assert engine.is_date_bookable(PROVIDER, NEXT_MONDAY, rules, blocked) is False
    assert engine.get_bookable_slots(PROVIDER, NEXT_MONDAY, rules, blocked) == []


def test_nine_to_five_hourly_includes_closing_time(engine):
    """Test that 09:00-17:00 hourly offers nine slots including 17:00."""
    slots = engine.get_bookable_slots(PROVIDER, NEXT_MONDAY, _week(), [], slot_granularity_minutes=60)
    assert slots == _slots(["09:00", "10:00", "11:00", "12:00", "13:00", "14:00", "15:00", "16:00", "17:00"])


def test_must_fit_boundary_drops_slot_at_closing_time():
    """Test that must_fit offers only slots that finish by closing time."""
    engine = AvailabilityEngine(ZoneInfo("UTC"), boundary=SlotBoundary.MUST_FIT, clock=lambda: TODAY)
    slots = engine.get_bookable_slots(PROVIDER, NEXT_MONDAY, _week(), [], slot_granularity_minutes=60)
    assert slots[0] == TimeOfDay(9, 0)
    assert slots[-1] == TimeOfDay(16, 0)
    assert len(slots) == 8


def test_past_dates_are_never_bookable(engine):
    """Test that no rule or exception can open a past date."""
    rules = _week(tuesday=(True, "09:00", "17:00"), monday=(True, "09:00", "17:00"))
    yesterday = TODAY - timedelta(days=1)

    assert engine.is_date_bookable(PROVIDER, yesterday, rules, []) is False
    assert engine.get_bookable_slots(PROVIDER, yesterday, rules, []) == []
    assert engine.is_date_bookable(PROVIDER, TODAY, rules, []) is True


def test_explicit_today_overrides_clock(engine):
    """Test that an explicit today argument takes precedence over the clock."""
    rules = _week()
    assert engine.is_date_bookable(PROVIDER, NEXT_MONDAY, rules, [], today=NEXT_MONDAY + timedelta(days=1)) is False


def test_missing_rule_fails_closed(engine):
    """Test that a weekday without a rule is closed and yields no slots."""
    rules = [rule for rule in _week() if rule.day_of_week != DayOfWeek.MONDAY]
    assert engine.is_date_bookable(PROVIDER, NEXT_MONDAY, rules, []) is False
    assert engine.get_bookable_slots(PROVIDER, NEXT_MONDAY, rules, []) == []


def test_rules_and_exceptions_of_other_providers_are_ignored(engine):
    """Test that another provider's rules and blocked dates have no effect."""
    rules = default_weekly_rules("someone-else")
    assert engine.is_date_bookable(PROVIDER, NEXT_MONDAY, rules, []) is False

    others_block = [DateException(provider_id="someone-else", date=NEXT_MONDAY)]
    assert engine.is_date_bookable(PROVIDER, NEXT_MONDAY, _week(), others_block) is True


def test_malformed_open_rule_is_treated_as_closed(engine):
    """Test that an open rule with start after end is treated as closed."""
    rules = _week(monday=(True, "17:00", "09:00"))
    assert engine.is_date_bookable(PROVIDER, NEXT_MONDAY, rules, []) is False
    assert engine.get_bookable_slots(PROVIDER, NEXT_MONDAY, rules, []) == []


def test_half_hour_granularity_and_uneven_window(engine):
    """Test slot generation with 30-minute granularity and an uneven window."""
    rules = _week(monday=(True, "09:15", "10:30"))
    slots = engine.get_bookable_slots(PROVIDER, NEXT_MONDAY, rules, [], slot_granularity_minutes=30)
    assert slots == _slots(["09:15", "09:45", "10:15"])


def test_late_window_does_not_wrap_past_midnight(engine):
    """Test that slot generation stops at midnight instead of wrapping."""
    rules = _week(monday=(True, "22:00", "23:59"))
    slots = engine.get_bookable_slots(PROVIDER, NEXT_MONDAY, rules, [], slot_granularity_minutes=60)
    assert slots == _slots(["22:00", "23:00"])


def test_slots_are_deterministic(engine):
    """Test that identical inputs always give identical slots."""
    rules = _week(monday=(True, "08:00", "12:00"))
    first = engine.get_bookable_slots(PROVIDER, NEXT_MONDAY, rules, [], slot_granularity_minutes=45)
    second = engine.get_bookable_slots(PROVIDER, NEXT_MONDAY, rules, [], slot_granularity_minutes=45)
    assert first == second
    assert first == sorted(set(first))


def test_non_positive_granularity_is_rejected(engine):
    """Test that a zero granularity raises ValueError."""
    with pytest.raises(ValueError):
        engine.get_bookable_slots(PROVIDER, NEXT_MONDAY, _week(), [], slot_granularity_minutes=0)


def test_upcoming_bookable_dates_skip_weekends_and_blocks(engine):
    """Test that upcoming dates skip closed weekdays and blocked dates."""
    blocked = [DateException(provider_id=PROVIDER, date=TODAY + timedelta(days=1))]  # Wednesday
    dates = engine.upcoming_bookable_dates(PROVIDER, _week(), blocked, limit=4)
    # Tue, (Wed blocked), Thu, Fri, (weekend), Mon
    assert [d.isoformat() for d in dates] == ["2030-01-01", "2030-01-03", "2030-01-04", "2030-01-07"]


def test_upcoming_bookable_dates_respects_horizon(engine):
    """Test that upcoming dates never go past the horizon."""
    closed_week = _week(
        monday=(False, "09:00", "17:00"),
        tuesday=(False, "09:00", "17:00"),
        wednesday=(False, "09:00", "17:00"),
        thursday=(False, "09:00", "17:00"),
        friday=(False, "09:00", "17:00"),
    )
    assert engine.upcoming_bookable_dates(PROVIDER, closed_week, [], limit=3, horizon_days=30) == []
