from __future__ import annotations

from datetime import date
from enum import IntEnum


class DayOfWeek(IntEnum):
    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @classmethod
    def of(cls, day: date) -> DayOfWeek:
        # date.weekday() counts from Monday = 0
        return cls((day.weekday() + 1) % 7)

    @property
    def label(self) -> str:
        return self.name.capitalize()
