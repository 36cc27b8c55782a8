from __future__ import annotations

from datetime import timedelta

import pytest

from slotbook.application.exceptions import InvalidConfiguration, UniqueConstraintViolation
from slotbook.domain.entities.day_of_week import DayOfWeek
from slotbook.domain.entities.time_of_day import TimeOfDay
from slotbook.domain.entities.weekly_rule import WeeklyAvailabilityRule
from slotbook.infrastructure.store.memory_store import MemorySchedulingStore

from conftest import NEXT_MONDAY, PROVIDER, TODAY


def test_first_access_creates_default_week(schedule):
    """Test that first access seeds weekdays open and weekends closed, 09:00-17:00."""
    rules = schedule.get_weekly_schedule(PROVIDER)

    assert [r.day_of_week for r in rules] == list(DayOfWeek)
    open_days = {r.day_of_week for r in rules if r.is_available}
    assert open_days == {
        DayOfWeek.MONDAY,
        DayOfWeek.TUESDAY,
        DayOfWeek.WEDNESDAY,
        DayOfWeek.THURSDAY,
        DayOfWeek.FRIDAY,
    }
    assert all(str(r.start_time) == "09:00" and str(r.end_time) == "17:00" for r in rules)
    assert schedule.get_weekly_schedule(PROVIDER) == rules


def test_custom_default_hours():
    """Test that the seeded week uses configured default hours."""
    store = MemorySchedulingStore(default_start=TimeOfDay(8, 0), default_end=TimeOfDay(14, 0))
    monday = store.get_weekly_rules(PROVIDER)[DayOfWeek.MONDAY]
    assert (monday.start_time, monday.end_time) == (TimeOfDay(8, 0), TimeOfDay(14, 0))


def test_toggle_and_edit_times(schedule):
    """Test opening a day and changing its hours."""
    schedule.set_day_availability(PROVIDER, DayOfWeek.SATURDAY, True)
    rule = schedule.set_day_times(PROVIDER, DayOfWeek.SATURDAY, "10:00", "14:00:00")

    assert rule.is_available is True
    assert (str(rule.start_time), str(rule.end_time)) == ("10:00", "14:00")


def test_inverted_window_is_rejected_at_write_time(schedule):
    """Test that start at or after end is refused and the old window is kept."""
    with pytest.raises(InvalidConfiguration):
        schedule.set_day_times(PROVIDER, DayOfWeek.MONDAY, "17:00", "09:00")
    with pytest.raises(InvalidConfiguration):
        schedule.set_day_times(PROVIDER, DayOfWeek.MONDAY, "09:00", "09:00")

    monday = schedule.get_weekly_schedule(PROVIDER)[DayOfWeek.MONDAY]
    assert str(monday.start_time) == "09:00"


def test_malformed_time_string_is_rejected(schedule):
    """Test that a malformed time string is refused."""
    with pytest.raises(ValueError):
        schedule.set_day_times(PROVIDER, DayOfWeek.MONDAY, "9am", "5pm")


def test_save_weekly_schedule_upserts_by_day(schedule):
    """Test that saving some days updates only those days."""
    rules = [
        WeeklyAvailabilityRule(PROVIDER, DayOfWeek.SUNDAY, True, TimeOfDay(10, 0), TimeOfDay(13, 0)),
        WeeklyAvailabilityRule(PROVIDER, DayOfWeek.MONDAY, False, TimeOfDay(9, 0), TimeOfDay(17, 0)),
    ]
    saved = schedule.save_weekly_schedule(PROVIDER, rules)

    assert len(saved) == 7
    assert saved[DayOfWeek.SUNDAY].is_available is True
    assert saved[DayOfWeek.MONDAY].is_available is False
    assert saved[DayOfWeek.TUESDAY].is_available is True


def test_save_weekly_schedule_validates_every_rule(schedule):
    """Test that duplicate weekdays and inverted open windows are refused."""
    with pytest.raises(ValueError):
        schedule.save_weekly_schedule(
            PROVIDER,
            [
                WeeklyAvailabilityRule(PROVIDER, DayOfWeek.MONDAY, True, TimeOfDay(9, 0), TimeOfDay(12, 0)),
                WeeklyAvailabilityRule(PROVIDER, DayOfWeek.MONDAY, False, TimeOfDay(9, 0), TimeOfDay(12, 0)),
            ],
        )
    with pytest.raises(InvalidConfiguration):
        schedule.save_weekly_schedule(
            PROVIDER,
            [WeeklyAvailabilityRule(PROVIDER, DayOfWeek.FRIDAY, True, TimeOfDay(18, 0), TimeOfDay(8, 0))],
        )


def test_closed_rule_may_keep_any_window(schedule):
    """Test that a closed day may hold any window but cannot be opened with a bad one."""
    saved = schedule.save_weekly_schedule(
        PROVIDER,
        [WeeklyAvailabilityRule(PROVIDER, DayOfWeek.FRIDAY, False, TimeOfDay(18, 0), TimeOfDay(8, 0))],
    )
    assert saved[DayOfWeek.FRIDAY].is_available is False

    with pytest.raises(InvalidConfiguration):
        schedule.set_day_availability(PROVIDER, DayOfWeek.FRIDAY, True)


def test_block_list_and_unblock_dates(schedule):
    """Test blocking, listing in date order and unblocking dates."""
    later = schedule.block_date(PROVIDER, NEXT_MONDAY + timedelta(days=7), "Conference")
    sooner = schedule.block_date(PROVIDER, NEXT_MONDAY, "  ")

    listed = schedule.list_blocked_dates(PROVIDER)
    assert [b.id for b in listed] == [sooner.id, later.id]
    assert sooner.reason is None
    assert later.reason == "Conference"

    assert schedule.unblock_date(sooner.id) is True
    assert schedule.unblock_date(sooner.id) is False
    assert [b.id for b in schedule.list_blocked_dates(PROVIDER)] == [later.id]


def test_date_can_be_blocked_only_once(schedule):
    """Test that blocking the same date twice is a unique violation."""
    schedule.block_date(PROVIDER, NEXT_MONDAY)
    with pytest.raises(UniqueConstraintViolation):
        schedule.block_date(PROVIDER, NEXT_MONDAY, "again")


def test_past_dates_cannot_be_blocked(schedule):
    """Test that past dates are refused and today is allowed."""
    with pytest.raises(ValueError):
        schedule.block_date(PROVIDER, TODAY - timedelta(days=1))
    assert schedule.block_date(PROVIDER, TODAY).date == TODAY
