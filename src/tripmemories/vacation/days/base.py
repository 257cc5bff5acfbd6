"""
Stage contract for the day-summary pipeline.

Each stage declares the `DaySummary` fields it reads and the fields it
writes. The builder checks the declarations once, at construction time, so
a misordered pipeline fails before any photo is processed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from tripmemories.config.settings import Settings
from tripmemories.core.time import TimezoneResolver
from tripmemories.domain.models import Home, Photo
from tripmemories.vacation.days.record import DaySummary

Days = dict[str, DaySummary]


@dataclass(frozen=True)
class DayContext:
    """Read-only inputs shared by all stages of one build."""

    photos: tuple[Photo, ...]
    home: Home
    settings: Settings
    resolver: TimezoneResolver


class DayStage(Protocol):
    name: str
    reads: frozenset[str]
    writes: frozenset[str]

    def apply(self, days: Days, ctx: DayContext) -> Days: ...


def real_days(days: Days) -> list[DaySummary]:
    return [d for d in days.values() if not d.is_synthetic]
