from __future__ import annotations

from abc import ABC, abstractmethod


class ServiceCatalogPort(ABC):
    @abstractmethod
    def get_duration_minutes(self, service_id: str) -> int | None:
        """Get service duration in minutes. Returns None if the service has none."""
        raise NotImplementedError
