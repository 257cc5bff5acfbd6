"""
Vacation scoring, classification and member balancing.

A run is summarised into `RunMetrics`, scored as a weighted sum of bonuses
minus a work-day penalty (`scoring.weights` / `scoring.caps`), classified by a
ladder over away days, nights and distance, and finally turned into a
`ClusterDraft` whose members interleave the run's days round-robin.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Sequence
from zoneinfo import ZoneInfo

from tripmemories.config.settings import Settings
from tripmemories.core.geo import centroid
from tripmemories.core.time import load_zone, offset_minutes
from tripmemories.domain.models import (
    ClusterDraft,
    GeoPoint,
    Home,
    Photo,
    TimeRange,
    TripClassification,
    VacationParams,
)
from tripmemories.scoring.composite import ScoreBook, capped, clamp01
from tripmemories.vacation.days.base import Days
from tripmemories.vacation.days.record import DaySummary
from tripmemories.vacation.holidays import HolidayResolver, NullHolidayResolver
from tripmemories.vacation.home import majority
from tripmemories.vacation.monitoring import MonitoringEmitter, NullEmitter, emit_safely
from tripmemories.vacation.runs import Run

logger = logging.getLogger(__name__)

MONITORING_JOB = "vacation_curation"

# Lower classes a run may fall back to when it misses its own threshold.
_FALLBACKS: dict[str, tuple[TripClassification, ...]] = {
    "vacation": ("short_trip",),
    "short_trip": (),
    "day_trip": (),
}


@dataclass(frozen=True)
class RunMetrics:
    """Aggregated signals of one run; the input of `score()`."""

    away_days: int
    max_distance_km: float = 0.0
    foreign_countries: int = 0
    foreign_timezones: int = 0
    tourism_ratio: float = 0.0
    move_days: int = 0
    airport_transfer: bool = False
    density_z: float = 0.0
    multi_spot_days: int = 0
    spot_dwell_hours: float = 0.0
    weekend_holiday_days: int = 0
    cohort_presence_ratio: float = 0.0
    work_days: int = 0

    @property
    def nights(self) -> int:
        return max(0, self.away_days - 1)


@dataclass
class ScoreResult:
    score: float
    book: ScoreBook
    spot_bonus: float
    weekend_holiday_bonus: float
    cohort_bonus: float
    work_day_penalty: float


def quality_rank(photo: Photo) -> float:
    """0..1 quality estimate from resolution, sharpness and ISO (0 without metrics)."""
    q = photo.quality
    if q is None:
        return 0.0
    megapixels = (q.width or 0) * (q.height or 0) / 1_000_000
    resolution = clamp01(megapixels / 12.0)
    sharpness = clamp01(q.sharpness) if q.sharpness is not None else 0.0
    noise = clamp01(((q.iso or 100) - 100) / 3200)
    return 0.4 * resolution + 0.4 * sharpness + 0.2 * (1.0 - noise)


def rank_day_members(members: Sequence[Photo]) -> list[Photo]:
    """Best-first order within one day; chronological when no quality data exists."""
    chronological = sorted(members, key=Photo.sort_key)
    if not any(p.quality is not None for p in chronological):
        return chronological
    return sorted(chronological, key=lambda p: -quality_rank(p))


def balance_members(per_day: Sequence[Sequence[Photo]]) -> list[Photo]:
    """Interleave day lists round-robin so any prefix of length >= days covers every day."""
    queues = [list(day) for day in per_day if day]
    out: list[Photo] = []
    seen: set[int] = set()
    depth = 0
    while any(depth < len(q) for q in queues):
        for queue in queues:
            if depth < len(queue) and queue[depth].id not in seen:
                seen.add(queue[depth].id)
                out.append(queue[depth])
        depth += 1
    return out


def classify_trip(metrics: RunMetrics, settings: Settings) -> TripClassification:
    if metrics.away_days <= 1:
        return "day_trip"
    if metrics.nights >= 4 or metrics.away_days >= 5:
        return "vacation"
    if metrics.max_distance_km >= settings.scoring.long_distance_km and metrics.nights >= 2:
        return "vacation"
    return "short_trip"


class VacationScoreCalculator:
    def __init__(
        self,
        settings: Settings,
        holiday_resolver: HolidayResolver | None = None,
        emitter: MonitoringEmitter | None = None,
    ):
        self._settings = settings
        self._holidays = holiday_resolver or NullHolidayResolver()
        self._emitter = emitter or NullEmitter()
        self._home_zone = ZoneInfo(settings.app.timezone)

    def score(self, metrics: RunMetrics) -> ScoreResult:
        w = self._settings.scoring.weights
        caps = self._settings.scoring.caps
        book = ScoreBook()

        book.bonus("away_days", min(metrics.away_days, caps.away_days), w.away_day)
        book.bonus("distance", math.log1p(metrics.max_distance_km / self._settings.scoring.distance_scale_km), w.distance)
        book.bonus("countries", min(metrics.foreign_countries, caps.countries), w.country)
        book.bonus("timezones", min(metrics.foreign_timezones, caps.timezones), w.timezone)
        book.bonus("tourism", clamp01(metrics.tourism_ratio), w.tourism)
        book.bonus("move_days", min(metrics.move_days, caps.move_days), w.move_day)
        book.bonus("airport", 1.0 if metrics.airport_transfer else 0.0, w.airport)
        book.bonus("density", capped(metrics.density_z, caps.density_z), w.density)

        spot_bonus = capped(metrics.multi_spot_days * w.multi_spot_day, caps.multi_spot_bonus) + capped(
            metrics.spot_dwell_hours * w.spot_dwell_hour, caps.spot_dwell_bonus
        )
        book.bonus("spot_exploration", spot_bonus, 1.0)
        weekend_bonus = capped(metrics.weekend_holiday_days * w.weekend_holiday_day, caps.weekend_holiday_bonus)
        book.bonus("weekend_holiday", weekend_bonus, 1.0)
        cohort_bonus = book.bonus("cohort", clamp01(metrics.cohort_presence_ratio), w.cohort)
        penalty = book.penalty("work_days", metrics.work_days, w.work_day_penalty)

        return ScoreResult(
            score=book.total,
            book=book,
            spot_bonus=spot_bonus,
            weekend_holiday_bonus=weekend_bonus,
            cohort_bonus=cohort_bonus,
            work_day_penalty=penalty,
        )

    def classify(self, metrics: RunMetrics, score: float) -> TripClassification | None:
        """Ladder class, downgraded or rejected when the score misses its threshold."""
        thresholds = self._settings.scoring.thresholds
        ladder = classify_trip(metrics, self._settings)
        for candidate in (ladder, *_FALLBACKS[ladder]):
            if score >= thresholds[candidate]:
                return candidate
        return None

    def is_free_day(self, day: DaySummary) -> bool:
        return day.weekday >= 6 or self._holidays.is_holiday(day.local_date)

    def _home_offset_on(self, local_date: date, zone: ZoneInfo) -> int:
        noon = datetime.combine(local_date, time(12), tzinfo=zone)
        return offset_minutes(noon)

    def _foreign_offsets(self, real: list[DaySummary], home: Home) -> list[int]:
        """Day offsets that differ from the home zone's offset on the same date."""
        zone = load_zone(home.timezone_identifier) or self._home_zone
        foreign: set[int] = set()
        for day in real:
            offset = day.local_timezone_offset
            if offset is not None and offset != self._home_offset_on(day.local_date, zone):
                foreign.add(offset)
        return sorted(foreign)

    def measure(self, run: Run, days: Days, home: Home) -> RunMetrics:
        run_days = [days[k] for k in run.dates]
        real = [d for d in run_days if not d.is_synthetic]
        countries = sorted({c for d in real for c in d.country_codes})
        foreign_countries = [c for c in countries if home.country_code and c != home.country_code]
        poi_samples = sum(d.poi_samples for d in real)
        work_days = [
            d
            for d in real
            if not self.is_free_day(d)
            and d.tourism_ratio < self._settings.scoring.work_day_tourism_ratio
            and d.spot_count < 2
        ]
        boundary = [real[0], real[-1]] if real else []
        extended = [days[k] for k in run.extended]

        return RunMetrics(
            away_days=len(run_days),
            max_distance_km=max((d.max_distance_km for d in real), default=0.0),
            foreign_countries=len(foreign_countries),
            foreign_timezones=len(self._foreign_offsets(real, home)),
            tourism_ratio=sum(d.tourism_hits for d in real) / poi_samples if poi_samples else 0.0,
            move_days=sum(1 for d in real if d.travel_km > self._settings.days.movement_threshold_km),
            airport_transfer=any(d.has_airport_poi for d in boundary + extended),
            density_z=sum(d.density_z for d in real) / len(real) if real else 0.0,
            multi_spot_days=sum(1 for d in real if d.spot_count >= 2),
            spot_dwell_hours=sum(d.spot_dwell_seconds for d in real) / 3600,
            weekend_holiday_days=sum(1 for d in real if self.is_free_day(d)),
            cohort_presence_ratio=sum(d.cohort_presence_ratio for d in real) / len(real) if real else 0.0,
            work_days=len(work_days),
        )

    def build_draft(self, run: Run, days: Days, home: Home) -> ClusterDraft | None:
        run_days = [days[k] for k in run.dates]
        real = [d for d in run_days if not d.is_synthetic]
        reliable = [d for d in real if d.sufficient_samples and d.has_gps]
        gps_members = [p for d in real for p in d.gps_members]
        if not reliable or not gps_members:
            logger.debug("Run %s..%s skipped: no reliable GPS day", run.first, run.last)
            return None

        metrics = self.measure(run, days, home)
        result = self.score(metrics)
        score = round(result.score, 2)
        classification = self.classify(metrics, score)
        if classification is None:
            logger.debug("Run %s..%s below threshold (score=%.2f)", run.first, run.last, score)
            return None

        members = balance_members([rank_day_members(d.members) for d in real])
        required = math.ceil(
            self._settings.days.min_items_per_day * len(real) * self._settings.scoring.member_floor_ratio
        )
        if len(members) < required:
            emit_safely(
                self._emitter,
                MONITORING_JOB,
                "insufficient_members",
                {"first_date": run.first, "last_date": run.last, "members": len(members), "required": required},
            )
            return None

        away_points = [p.point() for d in real if d.is_away_candidate for p in d.gps_members]
        center = centroid(away_points) or centroid(p.point() for p in gps_members)
        if center is None:
            raise RuntimeError(f"run {run.first}..{run.last} has GPS members but no centroid")

        times = [p.taken_at for p in members if p.taken_at is not None]
        places = [p.place for p in members if p.place is not None]
        city = majority(pl.city for pl in places if pl.city)
        country = majority(pl.country or pl.country_code.upper() for pl in places if pl.country or pl.country_code)
        labels = self._settings.scoring.labels[self._settings.scoring.locale]
        away_gps_days = [d for d in real if d.has_gps]
        speeds = [d.avg_speed_kmh for d in real if d.avg_speed_kmh > 0]
        cohort_members: dict[str, int] = {}
        for d in real:
            for person, count in d.cohort_members.items():
                cohort_members[person] = cohort_members.get(person, 0) + count

        params = VacationParams(
            classification=classification,
            classification_label=labels[classification],
            score=score,
            nights=metrics.nights,
            away_days=metrics.away_days,
            raw_away_days=len(run.dates) - len(run.bridged) - len(run.extended),
            bridged_away_days=len(run.bridged),
            extended_days=len(run.extended),
            total_days=len(run.dates),
            first_date=run.first,
            last_date=run.last,
            time_range=TimeRange(start=min(times), end=max(times)),
            max_distance_km=round(metrics.max_distance_km, 2),
            avg_distance_km=round(sum(d.avg_distance_km for d in away_gps_days) / len(away_gps_days), 2),
            travel_km=round(sum(d.travel_km for d in real), 2),
            country_change=metrics.foreign_countries > 0,
            timezone_change=metrics.foreign_timezones > 0,
            countries=sorted({c for d in real for c in d.country_codes}),
            timezones=sorted({d.local_timezone_offset for d in real if d.local_timezone_offset is not None}),
            timezone_identifiers=sorted({d.local_timezone_identifier for d in real if d.local_timezone_identifier}),
            tourism_ratio=round(metrics.tourism_ratio, 3),
            move_days=metrics.move_days,
            photo_density_z=round(metrics.density_z, 3),
            airport_transfer=metrics.airport_transfer,
            avg_speed_kmh=round(sum(speeds) / len(speeds), 2) if speeds else 0.0,
            max_speed_kmh=round(max((d.max_speed_kmh for d in real), default=0.0), 2),
            high_speed_transit=any(d.has_high_speed_transit for d in real),
            spot_count=sum(d.spot_count for d in real),
            spot_cluster_days=metrics.multi_spot_days,
            spot_dwell_hours=round(metrics.spot_dwell_hours, 2),
            spot_exploration_bonus=round(result.spot_bonus, 2),
            weekend_holiday_days=metrics.weekend_holiday_days,
            weekend_holiday_bonus=round(result.weekend_holiday_bonus, 2),
            cohort_presence_ratio=round(metrics.cohort_presence_ratio, 3),
            cohort_bonus=round(result.cohort_bonus, 2),
            cohort_members=dict(sorted(cohort_members.items())),
            work_day_penalty_days=metrics.work_days,
            work_day_penalty_score=round(result.work_day_penalty, 2),
            member_count=len(members),
            place=", ".join(part for part in (city, country) if part) or None,
            place_city=city,
            place_country=country,
            score_terms=result.book.terms,
        )
        return ClusterDraft(
            params=params,
            centroid=GeoPoint(lat=center.lat, lon=center.lon),
            members=[p.id for p in members],
        )
