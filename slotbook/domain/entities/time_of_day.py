from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import time

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True, order=True)
class TimeOfDay:
    hour: int
    minute: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.hour <= 23:
            raise ValueError(f"hour out of range: {self.hour}")
        if not 0 <= self.minute <= 59:
            raise ValueError(f"minute out of range: {self.minute}")

    @classmethod
    def parse(cls, text: str) -> TimeOfDay:
        """Parse "HH:MM" or "HH:MM:SS". Seconds are validated and dropped."""
        if not isinstance(text, str):
            raise ValueError(f"time must be a string, got {type(text).__name__}")
        match = _TIME_RE.match(text.strip())
        if not match:
            raise ValueError(f"malformed time of day: {text!r}")
        hour, minute, second = match.groups()
        if second is not None and not 0 <= int(second) <= 59:
            raise ValueError(f"second out of range: {text!r}")
        return cls(int(hour), int(minute))

    @classmethod
    def coerce(cls, value: TimeOfDay | time | str) -> TimeOfDay:
        if isinstance(value, TimeOfDay):
            return value
        if isinstance(value, time):
            return cls.from_time(value)
        return cls.parse(value)

    @classmethod
    def from_time(cls, value: time) -> TimeOfDay:
        return cls(value.hour, value.minute)

    @classmethod
    def from_minutes(cls, minutes: int) -> TimeOfDay:
        if not 0 <= minutes < MINUTES_PER_DAY:
            raise ValueError(f"minutes out of range: {minutes}")
        return cls(minutes // 60, minutes % 60)

    @property
    def minutes(self) -> int:
        return self.hour * 60 + self.minute

    def plus_minutes(self, minutes: int) -> TimeOfDay | None:
        """Shift forward; None when the result would fall past 23:59."""
        total = self.minutes + minutes
        if total >= MINUTES_PER_DAY:
            return None
        return TimeOfDay.from_minutes(total)

    def to_time(self) -> time:
        return time(self.hour, self.minute)

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"
