"""
Holiday resolvers consumed by the vacation score.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Protocol

from tripmemories.config.settings import HolidaySettings


class HolidayResolver(Protocol):
    def is_holiday(self, day: date) -> bool: ...


class NullHolidayResolver:
    """No public holidays; only weekends count as free days."""

    def is_holiday(self, day: date) -> bool:
        return False


class FixedHolidayResolver:
    """Holidays from an explicit list of dates (e.g. `holidays.dates` in YAML)."""

    def __init__(self, dates: Iterable[date]):
        self._dates = frozenset(dates)

    @classmethod
    def from_settings(cls, settings: HolidaySettings) -> "FixedHolidayResolver":
        return cls(settings.dates)

    def is_holiday(self, day: date) -> bool:
        return day in self._dates
