"""
Transport day extension.

Arrival and departure days often carry few "touristy" photos: a few shots at
the airport, a train window. Such days fail the away test on their own but
belong to the trip, so a run may absorb them at its boundaries.
"""

from __future__ import annotations

from datetime import date, timedelta

from tripmemories.config.settings import TransportSettings
from tripmemories.vacation.days.base import Days
from tripmemories.vacation.days.record import DaySummary


class TransportDayExtender:
    def __init__(self, settings: TransportSettings):
        self._settings = settings

    def is_transit_heavy(self, day: DaySummary) -> bool:
        return (
            day.transit_ratio >= self._settings.transit_ratio_threshold
            and day.max_speed_kmh >= self._settings.transit_speed_kmh
        )

    def is_extendable(self, day: DaySummary) -> bool:
        if day.is_synthetic or day.photo_count == 0 or day.is_away_candidate:
            return False
        return day.has_airport_poi or day.has_high_speed_transit or self.is_transit_heavy(day)

    def extend(
        self,
        dates: list[str],
        days: Days,
        *,
        lower_bound: str | None = None,
        upper_bound: str | None = None,
    ) -> tuple[list[str], list[str]]:
        """Absorb extendable days adjacent to `dates`.

        Returns `(dates, extended)`. At most `max_extension_days` real days are
        absorbed per side; synthetic days are crossed only on the way to an
        absorbed real day. Bounds are exclusive and keep runs disjoint.
        """
        if not dates:
            return dates, []
        before = self._walk(date.fromisoformat(dates[0]), -1, days, lower_bound)
        after = self._walk(date.fromisoformat(dates[-1]), 1, days, upper_bound)
        extended = sorted(before + after)
        return sorted(set(dates) | set(extended)), extended

    def _walk(self, start: date, step: int, days: Days, bound: str | None) -> list[str]:
        absorbed: list[str] = []
        pending: list[str] = []
        taken = 0
        current = start
        while taken < self._settings.max_extension_days:
            current += timedelta(days=step)
            key = current.isoformat()
            if bound is not None and (key <= bound if step < 0 else key >= bound):
                break
            day = days.get(key)
            if day is None:
                break
            if day.is_synthetic:
                pending.append(key)
                if len(pending) > self._settings.max_extension_days:
                    break
                continue
            if not self.is_extendable(day):
                break
            absorbed.extend(pending)
            absorbed.append(key)
            pending = []
            taken += 1
        return absorbed
