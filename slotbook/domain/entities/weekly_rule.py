from __future__ import annotations

from dataclasses import dataclass

from slotbook.domain.entities.day_of_week import DayOfWeek
from slotbook.domain.entities.time_of_day import TimeOfDay


@dataclass(frozen=True)
class WeeklyAvailabilityRule:
    provider_id: str
    day_of_week: DayOfWeek
    is_available: bool
    start_time: TimeOfDay
    end_time: TimeOfDay
    id: str | None = None

    @property
    def has_valid_window(self) -> bool:
        return self.start_time < self.end_time
