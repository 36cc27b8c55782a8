from __future__ import annotations

from abc import ABC, abstractmethod

from slotbook.domain.entities.time_of_day import TimeOfDay
from slotbook.domain.entities.weekly_rule import WeeklyAvailabilityRule


class WeeklyAvailabilityStorePort(ABC):
    @abstractmethod
    def get_weekly_rules(self, provider_id: str) -> list[WeeklyAvailabilityRule]:
        """
        Return the provider's seven rules ordered Sunday..Saturday.
        The default week is created on first access.
        """
        raise NotImplementedError

    @abstractmethod
    def set_day_availability(self, provider_id: str, day_of_week: int, is_available: bool) -> WeeklyAvailabilityRule:
        """Open or close a weekday. Raises InvalidConfiguration if opening a day with a bad window."""
        raise NotImplementedError

    @abstractmethod
    def set_day_times(
        self,
        provider_id: str,
        day_of_week: int,
        start_time: TimeOfDay,
        end_time: TimeOfDay,
    ) -> WeeklyAvailabilityRule:
        """Change a weekday's hours. Raises InvalidConfiguration if start_time >= end_time."""
        raise NotImplementedError

    @abstractmethod
    def save_weekly_rules(self, provider_id: str, rules: list[WeeklyAvailabilityRule]) -> list[WeeklyAvailabilityRule]:
        """Upsert rules keyed on (provider, day_of_week)."""
        raise NotImplementedError
