"""
Away-run detection.

Walks the day summaries in calendar order and groups qualifying away days into
runs. Short data-sparse gaps between two qualifying days are bridged; longer
gaps split the trip. Runs are then extended over adjacent transport days.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta

from tripmemories.config.settings import Settings
from tripmemories.core.geo import haversine_km
from tripmemories.domain.models import Home
from tripmemories.vacation.days.base import Days
from tripmemories.vacation.days.record import DaySummary
from tripmemories.vacation.transport import TransportDayExtender

logger = logging.getLogger(__name__)


def _next_key(key: str) -> str:
    return (date.fromisoformat(key) + timedelta(days=1)).isoformat()


@dataclass(frozen=True)
class Run:
    """A candidate away period: contiguous, strictly increasing date keys."""

    dates: tuple[str, ...]
    bridged: frozenset[str] = field(default_factory=frozenset)
    extended: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if not self.dates:
            raise ValueError("a run needs at least one date")
        for previous, current in zip(self.dates, self.dates[1:]):
            if current != _next_key(previous):
                raise ValueError(f"run dates must be contiguous and increasing: {previous} -> {current}")

    @property
    def first(self) -> str:
        return self.dates[0]

    @property
    def last(self) -> str:
        return self.dates[-1]

    def __len__(self) -> int:
        return len(self.dates)


class RunDetector:
    def __init__(self, settings: Settings, extender: TransportDayExtender | None = None):
        self._settings = settings
        self._extender = extender or TransportDayExtender(settings.transport)

    def dominant_inside_home(self, day: DaySummary, home: Home) -> bool:
        if not day.dominant_staypoints:
            return False
        return haversine_km(home.point(), day.dominant_staypoints[0].point()) <= home.radius_km

    def is_qualifying(self, day: DaySummary, home: Home) -> bool:
        if day.is_synthetic or self.dominant_inside_home(day, home):
            return False
        if day.is_away_candidate:
            return True
        # A night in a hotel far from home counts even with few photos.
        return self._settings.runs.lodging_signal and day.has_lodging_poi and day.base_away

    def is_sparse(self, day: DaySummary, home: Home) -> bool:
        """True when the day lacks the data to say whether it was spent away."""
        if day.is_synthetic:
            return True
        if day.photo_count >= self._settings.days.min_items_per_day:
            return False
        if not day.gps_members:
            # Place annotations from the home country are evidence of a day at home.
            return not (home.country_code and day.country_codes.get(home.country_code))
        home_point = home.point()
        return all(haversine_km(home_point, p.point()) > home.radius_km for p in day.gps_members)

    def detect_vacation_runs(self, days: Days, home: Home) -> list[Run]:
        keys = sorted(days)
        qualifying = [self.is_qualifying(days[k], home) for k in keys]
        max_bridge = self._settings.runs.max_bridge_days

        raw: list[tuple[list[str], set[str]]] = []
        current: list[str] = []
        bridged: set[str] = set()
        i = 0
        n = len(keys)
        while i < n:
            if qualifying[i]:
                current.append(keys[i])
                i += 1
                continue
            if current:
                j = i
                while j < n and not qualifying[j] and self.is_sparse(days[keys[j]], home):
                    j += 1
                if j < n and qualifying[j] and j - i <= max_bridge:
                    current.extend(keys[i:j])
                    bridged.update(keys[i:j])
                    i = j
                    continue
                raw.append((current, bridged))
                current, bridged = [], set()
            i += 1
        if current:
            raw.append((current, bridged))

        runs = self._extend(raw, days)
        kept = [r for r in runs if len(r) >= self._settings.runs.min_run_days]
        logger.debug("Detected %d away run(s), %d kept", len(runs), len(kept))
        return kept

    def _extend(self, raw: list[tuple[list[str], set[str]]], days: Days) -> list[Run]:
        runs: list[Run] = []
        for idx, (dates, bridged) in enumerate(raw):
            lower = runs[-1].last if runs else None
            upper = raw[idx + 1][0][0] if idx + 1 < len(raw) else None
            dates, extended = self._extender.extend(dates, days, lower_bound=lower, upper_bound=upper)
            run = Run(dates=tuple(dates), bridged=frozenset(bridged), extended=frozenset(extended))

            if runs and _next_key(runs[-1].last) == run.first:
                # Extension closed the gap between two runs: one trip.
                previous = runs.pop()
                run = Run(
                    dates=previous.dates + run.dates,
                    bridged=previous.bridged | run.bridged,
                    extended=previous.extended | run.extended,
                )
            runs.append(run)
        return runs
