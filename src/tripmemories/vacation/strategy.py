from __future__ import annotations

# Top-level entry point of vacation detection.
# It wires together:
# - input hygiene (drop untimed photos, normalise timestamps, sort deterministically)
# - home resolution (configured or inferred)
# - the day-summary pipeline
# - run detection + scoring (via the segment assembler)
#
# Lifecycle events go to an injected monitoring emitter; they are side effects only.
# Emitter failures are logged and never propagate.

from typing import Any, Mapping, Protocol, Sequence

from tripmemories.config.settings import Settings
from tripmemories.core.time import TimezoneResolver, ensure_tz
from tripmemories.domain.models import ClusterDraft, Photo
from tripmemories.vacation.assembler import VacationSegmentAssembler
from tripmemories.vacation.days.builder import DaySummaryBuilder
from tripmemories.vacation.holidays import FixedHolidayResolver, HolidayResolver
from tripmemories.vacation.home import HomeLocator, is_degenerate_home
from tripmemories.vacation.monitoring import LoggingEmitter, MonitoringEmitter, emit_safely
from tripmemories.vacation.runs import RunDetector
from tripmemories.vacation.scoring import MONITORING_JOB, VacationScoreCalculator


class ClusterStrategy(Protocol):
    """Shared capability of every cluster strategy: photos in, drafts out."""

    def name(self) -> str: ...

    def cluster(self, photos: Sequence[Photo]) -> list[ClusterDraft]: ...


class VacationClusterStrategy:
    def __init__(
        self,
        settings: Settings,
        *,
        emitter: MonitoringEmitter | None = None,
        holiday_resolver: HolidayResolver | None = None,
        home_locator: HomeLocator | None = None,
        day_builder: DaySummaryBuilder | None = None,
        assembler: VacationSegmentAssembler | None = None,
    ):
        self._settings = settings
        self._emitter = emitter or LoggingEmitter()
        resolver = TimezoneResolver(settings.app.timezone)
        holidays = holiday_resolver or FixedHolidayResolver.from_settings(settings.holidays)
        self._home_locator = home_locator or HomeLocator(settings, resolver)
        self._day_builder = day_builder or DaySummaryBuilder(settings, resolver=resolver)
        self._assembler = assembler or VacationSegmentAssembler(
            RunDetector(settings),
            VacationScoreCalculator(settings, holiday_resolver=holidays, emitter=self._emitter),
        )

    def name(self) -> str:
        return "vacation"

    def _emit(self, status: str, context: Mapping[str, Any]) -> None:
        emit_safely(self._emitter, MONITORING_JOB, status, context)

    def prepare(self, photos: Sequence[Photo]) -> list[Photo]:
        """Timestamped photos, timezone-aware, sorted by (time, checksum, id), unique by id."""
        timed: list[Photo] = []
        for photo in photos:
            if photo.taken_at is None:
                continue
            if photo.taken_at.tzinfo is None:
                photo = photo.model_copy(update={"taken_at": ensure_tz(photo.taken_at, self._settings.app.timezone)})
            timed.append(photo)
        timed.sort(key=Photo.sort_key)

        unique: list[Photo] = []
        seen: set[int] = set()
        for photo in timed:
            if photo.id in seen:
                continue
            seen.add(photo.id)
            unique.append(photo)
        return unique

    def cluster(self, photos: Sequence[Photo]) -> list[ClusterDraft]:
        self._emit("start", {"photos": len(photos)})

        timed = self.prepare(photos)
        self._emit("filtered", {"photos": len(photos), "timestamped": len(timed), "dropped": len(photos) - len(timed)})
        if not timed:
            self._emit("completed", {"clusters": 0, "reason": "no_timestamped_photos"})
            return []

        home = self._home_locator.determine_home(timed)
        if home is None:
            self._emit("warning", {"reason": "home_unavailable", "photos": len(timed)})
            return []
        if is_degenerate_home(home, self._settings):
            self._emit("warning", {"reason": "home_degenerate", "lat": home.lat, "lon": home.lon})
            return []
        self._emit(
            "home_determined",
            {"lat": round(home.lat, 5), "lon": round(home.lon, 5), "radius_km": round(home.radius_km, 2), "source": home.source},
        )

        days = self._day_builder.build(timed, home)
        self._emit(
            "days_aggregated",
            {
                "days": len(days),
                "synthetic_days": sum(1 for d in days.values() if d.is_synthetic),
                "away_candidates": sum(1 for d in days.values() if d.is_away_candidate),
            },
        )

        drafts = sorted(self._assembler.detect_segments(days, home), key=lambda d: d.params.first_date)
        self._emit("completed", {"clusters": len(drafts)})
        return drafts
