from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime


@dataclass(frozen=True)
class DateException:
    """A calendar date the provider has blocked entirely."""

    provider_id: str
    date: date
    reason: str | None = None
    id: str | None = None
    created_at: datetime | None = None
