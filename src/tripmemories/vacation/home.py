"""
Home anchor resolution.

A configured home (`home.lat` / `home.lon`) always wins. Otherwise home is
inferred from where photos are taken during daylight hours on many different
days: samples are bucketed on a metric grid, the bucket seen on the most
distinct days wins, and its neighbourhood defines centroid and radius.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import date, datetime
from typing import Iterable, TypeVar
from zoneinfo import ZoneInfo

from tripmemories.config.settings import Settings
from tripmemories.core.geo import centroid, haversine_km, percentile
from tripmemories.core.spatial_index import SpatialGridIndex
from tripmemories.core.time import TimezoneResolver, ensure_tz, load_zone
from tripmemories.domain.models import Home, Photo

logger = logging.getLogger(__name__)

K = TypeVar("K")


def majority(values: Iterable[K]) -> K | None:
    """Most frequent value; ties resolve to the smallest value for determinism."""
    counts = Counter(values)
    if not counts:
        return None
    return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[0][0]


def is_degenerate_home(home: Home, settings: Settings) -> bool:
    """(0, 0) without an explicitly configured radius means "never initialised"."""
    return home.lat == 0.0 and home.lon == 0.0 and settings.home.radius_km is None


class HomeLocator:
    def __init__(self, settings: Settings, resolver: TimezoneResolver | None = None):
        self._settings = settings
        self._resolver = resolver or TimezoneResolver(settings.app.timezone)
        self._zone = ZoneInfo(settings.app.timezone)

    def determine_home(self, photos: list[Photo]) -> Home | None:
        cfg = self._settings.home
        timed = [p for p in photos if p.taken_at is not None]

        if cfg.lat is not None and cfg.lon is not None:
            return Home(
                lat=cfg.lat,
                lon=cfg.lon,
                radius_km=cfg.radius_km or cfg.default_radius_km,
                country_code=cfg.country_code.lower() if cfg.country_code else None,
                timezone_identifier=self._settings.app.timezone,
                source="configured",
            )

        samples = [p for p in timed if p.has_gps and self._is_daylight(p)]
        if not samples:
            logger.info("Home inference skipped: no daylight GPS samples among %d photos", len(photos))
            return None

        index: SpatialGridIndex[Photo] = SpatialGridIndex(
            samples,
            get_latlon=lambda p: (float(p.lat), float(p.lon)),  # type: ignore[arg-type]
            cell_size_m=cfg.grid_cell_km * 1000.0,
        )
        best: list[Photo] = []
        best_rank = (0, 0)
        for _key, members in sorted(index.buckets().items()):
            rank = (len(self._days(members)), len(members))
            if rank > best_rank:
                best, best_rank = members, rank

        seed = centroid(p.point() for p in best)
        if seed is None:
            return None
        seen = {p.id for p in best}
        cluster = list(best)
        for p in index.query_within(lat=seed.lat, lon=seed.lon, radius_m=cfg.grid_cell_km * 1000.0):
            if p.id not in seen:
                seen.add(p.id)
                cluster.append(p)

        distinct_days = len(self._days(cluster))
        if distinct_days < cfg.min_distinct_days:
            logger.info(
                "Home inference rejected: best cluster spans %d day(s), need %d",
                distinct_days,
                cfg.min_distinct_days,
            )
            return None

        center = centroid(p.point() for p in cluster)
        if center is None:
            return None
        spread = percentile([haversine_km(center, p.point()) for p in cluster], cfg.spread_percentile)
        radius = max(cfg.default_radius_km, min(spread, cfg.max_radius_km))
        zones = [self._resolver.resolve(p) for p in cluster]

        home = Home(
            lat=center.lat,
            lon=center.lon,
            radius_km=radius,
            country_code=majority(
                p.place.country_code for p in cluster if p.place is not None and p.place.country_code
            ),
            timezone_offset_min=majority(z.offset_min for z in zones),
            timezone_identifier=majority(z.identifier for z in zones if load_zone(z.identifier) is not None),
            source="inferred",
            sample_count=len(cluster),
            distinct_days=distinct_days,
        )
        logger.debug("Inferred home %s", home)
        return home

    def _aware(self, photo: Photo) -> datetime:
        if photo.taken_at is None:
            raise ValueError(f"photo {photo.id} has no capture timestamp")
        return ensure_tz(photo.taken_at, self._settings.app.timezone)

    def _local_date(self, photo: Photo) -> date:
        return self._aware(photo).astimezone(self._zone).date()

    def _is_daylight(self, photo: Photo) -> bool:
        cfg = self._settings.home
        hour = self._aware(photo).astimezone(self._zone).hour
        return cfg.daylight_start_hour <= hour < cfg.daylight_end_hour

    def _days(self, members: list[Photo]) -> set[date]:
        return {self._local_date(p) for p in members}
