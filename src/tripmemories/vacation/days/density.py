"""
Density stage: is today unusually busy for this weekday?

The baseline is rolling: only earlier real days with the same weekday inside
`days.density_window_days` count, so a long trip does not skew its own days.
"""

from __future__ import annotations

from datetime import timedelta
from math import sqrt

from tripmemories.config.settings import DaySettings
from tripmemories.vacation.days.base import DayContext, Days, real_days

MIN_STD_EPSILON = 1.0e-6


class DensityStage:
    name = "density"
    reads = frozenset({"photo_count", "weekday"})
    writes = frozenset({"density_z"})

    def __init__(self, settings: DaySettings):
        self._window = timedelta(days=settings.density_window_days)

    def apply(self, days: Days, ctx: DayContext) -> Days:
        real = real_days(days)
        for day in real:
            current = day.local_date
            baseline = [
                other.photo_count
                for other in real
                if other.weekday == day.weekday and current - self._window <= other.local_date < current
            ]
            day.density_z = _z_score(day.photo_count, baseline)
        return days


def _z_score(value: int, baseline: list[int]) -> float:
    if len(baseline) < 2:
        return 0.0
    mean = sum(baseline) / len(baseline)
    std = sqrt(sum((x - mean) ** 2 for x in baseline) / len(baseline))
    if std < MIN_STD_EPSILON:
        return 0.0
    return (value - mean) / std
