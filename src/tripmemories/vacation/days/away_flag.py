"""
Away flag stage: decide whether a day was spent away from home.

Two independent signals are kept:
- `base_away`: the day's base location is outside the home radius and its place
  is not residential,
- `away_by_distance`: the farthest (non-noise) sample exceeds the away distance.

A day is an away candidate only with enough real photos and at least one signal.
"""

from __future__ import annotations

from tripmemories.config.settings import DaySettings, PoiSettings
from tripmemories.core.geo import haversine_km
from tripmemories.domain.models import Photo
from tripmemories.vacation.days.base import DayContext, Days
from tripmemories.vacation.days.base_location import BaseLocationResolver
from tripmemories.vacation.days.record import BaseLocation, DaySummary
from tripmemories.vacation.poi import NO_FLAGS, PoiClassifier, PoiFlags


class AwayFlagStage:
    name = "away_flag"
    reads = frozenset(
        {
            "gps_members",
            "staypoints",
            "first_gps",
            "last_gps",
            "centroid",
            "max_distance_km",
            "photo_count",
            "local_timezone_offset",
        }
    )
    writes = frozenset({"base_location", "base_poi_flags", "base_away", "away_by_distance", "is_away_candidate"})

    def __init__(self, settings: DaySettings, poi_settings: PoiSettings):
        self._settings = settings
        self._resolver = BaseLocationResolver(settings)
        self._classifier = PoiClassifier(poi_settings)

    def apply(self, days: Days, ctx: DayContext) -> Days:
        home = ctx.home
        away_threshold = max(home.radius_km, self._settings.away_distance_km)
        ordered = list(days.values())
        for idx, day in enumerate(ordered):
            if day.is_synthetic:
                continue
            next_day = ordered[idx + 1] if idx + 1 < len(ordered) else None
            base = self._resolver.resolve(day, next_day, home)
            flags = self._base_flags(day, base)

            day.base_location = base
            day.base_poi_flags = flags
            day.base_away = base is not None and base.distance_km > home.radius_km and not flags.residential
            day.away_by_distance = day.max_distance_km > away_threshold
            day.is_away_candidate = day.photo_count >= self._settings.min_items_per_day and (
                day.base_away or day.away_by_distance
            )
        return days

    def _base_flags(self, day: DaySummary, base: BaseLocation | None) -> PoiFlags:
        """Classify the place of the sample nearest to the base location."""
        if base is None:
            return NO_FLAGS
        with_place = [p for p in day.gps_members if p.place is not None]
        if not with_place:
            return NO_FLAGS
        point = base.point()

        def distance(photo: Photo) -> tuple[float, int]:
            return haversine_km(point, photo.point()), photo.id

        return self._classifier.classify(min(with_place, key=distance).place)
