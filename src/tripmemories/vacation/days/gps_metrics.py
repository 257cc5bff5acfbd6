"""
GPS metrics stage: distances, travel, staypoints and spot clusters per day.

Samples that DBSCAN leaves as noise while the day has at least one dense
cluster are treated as mis-geotagged: they are kept in `gps_noise` but do not
feed any distance or travel aggregate.
"""

from __future__ import annotations

from tripmemories.config.settings import DaySettings
from tripmemories.core.geo import centroid, haversine_km
from tripmemories.domain.models import Photo
from tripmemories.vacation.dbscan import GeoDbscanHelper
from tripmemories.vacation.days.base import DayContext, Days
from tripmemories.vacation.staypoints import StaypointDetector


class GpsMetricsStage:
    name = "gps_metrics"
    reads = frozenset({"members", "photo_count"})
    writes = frozenset(
        {
            "gps_members",
            "gps_noise",
            "max_distance_km",
            "avg_distance_km",
            "travel_km",
            "centroid",
            "first_gps",
            "last_gps",
            "staypoints",
            "spot_clusters",
            "spot_noise",
            "spot_count",
            "spot_noise_samples",
            "spot_dwell_seconds",
            "sufficient_samples",
        }
    )

    def __init__(self, settings: DaySettings, detector: StaypointDetector, dbscan: GeoDbscanHelper | None = None):
        self._settings = settings
        self._detector = detector
        self._dbscan = dbscan or GeoDbscanHelper()

    def filter_outliers(self, gps: list[Photo]) -> tuple[list[Photo], list[Photo]]:
        """Split chronologically sorted samples into `(kept, noise)`."""
        result = self._dbscan.cluster(
            gps,
            eps_km=self._settings.gps_outlier_radius_km,
            min_samples=self._settings.gps_outlier_min_samples,
            get_point=Photo.point,
        )
        if not result.clusters:
            # No dense core to compare against (e.g. a road-trip day): keep everything.
            return gps, []
        noise_ids = {p.id for p in result.noise}
        return [p for p in gps if p.id not in noise_ids], result.noise

    def apply(self, days: Days, ctx: DayContext) -> Days:
        home = ctx.home.point()
        for day in days.values():
            day.sufficient_samples = day.photo_count >= self._settings.min_items_per_day
            if day.is_synthetic:
                continue

            gps = sorted((p for p in day.members if p.has_gps), key=Photo.sort_key)
            kept, noise = self.filter_outliers(gps)
            day.gps_members = kept
            day.gps_noise = noise
            if not kept:
                continue

            points = [p.point() for p in kept]
            distances = [haversine_km(home, pt) for pt in points]
            day.max_distance_km = max(distances)
            day.avg_distance_km = sum(distances) / len(distances)
            day.travel_km = sum(haversine_km(a, b) for a, b in zip(points, points[1:]))
            day.centroid = centroid(points)
            day.first_gps = kept[0]
            day.last_gps = kept[-1]
            day.staypoints = self._detector.detect(kept)

            spots = self._dbscan.cluster(
                kept,
                eps_km=self._settings.spot_radius_km,
                min_samples=self._settings.spot_min_samples,
                get_point=Photo.point,
            )
            day.spot_clusters = spots.clusters
            day.spot_noise = spots.noise
            day.spot_count = len(spots.clusters)
            day.spot_noise_samples = len(spots.noise)
            day.spot_dwell_seconds = sum(_span_seconds(c) for c in spots.clusters)
        return days


def _span_seconds(members: list[Photo]) -> int:
    times = [p.taken_at for p in members if p.taken_at is not None]
    if len(times) < 2:
        return 0
    return int((max(times) - min(times)).total_seconds())
