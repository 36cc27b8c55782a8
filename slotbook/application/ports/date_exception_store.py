from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

from slotbook.domain.entities.date_exception import DateException


class DateExceptionStorePort(ABC):
    @abstractmethod
    def get_date_exceptions(self, provider_id: str) -> list[DateException]:
        """Blocked dates for a provider, ordered by date."""
        raise NotImplementedError

    @abstractmethod
    def add_date_exception(self, provider_id: str, day: date, reason: str | None = None) -> DateException:
        """Block a date. Raises UniqueConstraintViolation if the date is already blocked."""
        raise NotImplementedError

    @abstractmethod
    def remove_date_exception(self, exception_id: str) -> bool:
        """Unblock. Returns False if no such exception exists."""
        raise NotImplementedError
