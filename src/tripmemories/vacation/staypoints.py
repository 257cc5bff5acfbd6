"""
Staypoint detection.

A staypoint is a place where the photographer lingered: a run of consecutive
GPS samples that stay within a small radius for at least a minimum dwell time.
Radius and dwell adapt to the day: dense, compact (urban) days use the tight
end of the configured range, sparse long-distance days the loose end.
When no sequential window qualifies, DBSCAN over the whole day is tried.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from tripmemories.config.settings import StaypointSettings
from tripmemories.core.geo import GeoPoint, centroid, haversine_km
from tripmemories.domain.models import Photo
from tripmemories.scoring.composite import clamp01
from tripmemories.vacation.dbscan import GeoDbscanHelper


@dataclass(frozen=True)
class Staypoint:
    lat: float
    lon: float
    start: datetime
    end: datetime
    dwell_seconds: int
    member_ids: tuple[int, ...]

    def point(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lon=self.lon)


def _travel_km(points: list[GeoPoint]) -> float:
    return sum(haversine_km(a, b) for a, b in zip(points, points[1:]))


class StaypointDetector:
    def __init__(self, settings: StaypointSettings, dbscan: GeoDbscanHelper | None = None):
        self._settings = settings
        self._dbscan = dbscan or GeoDbscanHelper()

    def calibrate(self, photos: list[Photo]) -> tuple[float, float]:
        """Return `(radius_km, min_dwell_seconds)` for a chronologically sorted day."""
        s = self._settings
        if not s.adaptive or len(photos) < 2:
            return s.radius_km, s.min_dwell_minutes * 60

        travel = _travel_km([p.point() for p in photos])
        span_hours = max(1 / 60, (photos[-1].taken_at - photos[0].taken_at).total_seconds() / 3600)
        travel_factor = clamp01((travel - s.urban_travel_km) / (s.rural_travel_km - s.urban_travel_km))
        density_factor = clamp01(len(photos) / span_hours / s.dense_samples_per_hour)
        mix = clamp01((travel_factor + (1.0 - density_factor)) / 2)

        radius = s.min_radius_km + (s.max_radius_km - s.min_radius_km) * mix
        dwell_min = s.min_dwell_floor_minutes + (s.max_dwell_minutes - s.min_dwell_floor_minutes) * mix
        return radius, dwell_min * 60

    def detect(self, photos: list[Photo]) -> list[Staypoint]:
        """Detect staypoints among GPS-bearing photos of one day."""
        gps = sorted((p for p in photos if p.has_gps and p.taken_at is not None), key=Photo.sort_key)
        if len(gps) < 2:
            return []

        radius_km, min_dwell = self.calibrate(gps)
        staypoints = self._sequential(gps, radius_km, min_dwell)
        if not staypoints:
            staypoints = self._dbscan_fallback(gps, min_dwell)
        return sorted(staypoints, key=lambda sp: (sp.start, sp.member_ids))

    def _sequential(self, gps: list[Photo], radius_km: float, min_dwell: float) -> list[Staypoint]:
        out: list[Staypoint] = []
        i = 0
        n = len(gps)
        while i < n:
            anchor = gps[i].point()
            j = i + 1
            while j < n and haversine_km(anchor, gps[j].point()) <= radius_km:
                j += 1
            window = gps[i:j]
            if len(window) >= 2 and self._dwell(window) >= min_dwell:
                out.append(self._build(window))
                i = j
            else:
                i += 1
        return out

    def _dbscan_fallback(self, gps: list[Photo], min_dwell: float) -> list[Staypoint]:
        s = self._settings
        result = self._dbscan.cluster(
            gps,
            eps_km=s.dbscan_radius_km,
            min_samples=s.dbscan_min_samples,
            get_point=Photo.point,
        )
        return [self._build(c) for c in result.clusters if self._dwell(c) >= min_dwell]

    @staticmethod
    def _dwell(members: list[Photo]) -> float:
        times = [p.taken_at for p in members if p.taken_at is not None]
        return (max(times) - min(times)).total_seconds()

    @staticmethod
    def _build(members: list[Photo]) -> Staypoint:
        center = centroid(p.point() for p in members)
        if center is None:
            raise ValueError("a staypoint needs at least one member")
        times = sorted(p.taken_at for p in members if p.taken_at is not None)
        return Staypoint(
            lat=center.lat,
            lon=center.lon,
            start=times[0],
            end=times[-1],
            dwell_seconds=int((times[-1] - times[0]).total_seconds()),
            member_ids=tuple(p.id for p in members),
        )
