from __future__ import annotations

from slotbook.application.ports.service_catalog import ServiceCatalogPort


class StaticServiceCatalog(ServiceCatalogPort):
    def __init__(self, durations: dict[str, int] | None = None) -> None:
        self._durations = dict(durations or {})

    def get_duration_minutes(self, service_id: str) -> int | None:
        return self._durations.get(service_id)
