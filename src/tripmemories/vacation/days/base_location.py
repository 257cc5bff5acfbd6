"""
Base location of a day: where the traveller most likely spent the night.

Candidates, first match wins:
1. the longest staypoint overlapping the evening window (today or the next
   day's early hours),
2. a sleep proxy: the midpoint of the day's last GPS sample and the next day's
   first one when they are close, otherwise the day's last sample,
3. the day's longest staypoint,
4. the centroid of the day's GPS samples.
"""

from __future__ import annotations

from datetime import datetime, time, timedelta

from tripmemories.config.settings import DaySettings
from tripmemories.core.geo import GeoPoint, haversine_km
from tripmemories.core.time import fixed_offset_zone
from tripmemories.domain.models import Home
from tripmemories.vacation.days.record import BaseLocation, DaySummary


class BaseLocationResolver:
    def __init__(self, settings: DaySettings):
        self._settings = settings

    def resolve(self, day: DaySummary, next_day: DaySummary | None, home: Home) -> BaseLocation | None:
        if not day.gps_members:
            return None
        home_point = home.point()

        evening = self._evening_staypoint(day, next_day)
        if evening is not None:
            return self._located(evening, home_point, "evening_staypoint")

        proxy = self._sleep_proxy(day, next_day)
        if proxy is not None:
            return self._located(proxy[0], home_point, proxy[1])

        if day.staypoints:
            largest = sorted(day.staypoints, key=lambda sp: (-sp.dwell_seconds, sp.start))[0]
            return self._located(largest.point(), home_point, "largest_staypoint")

        if day.centroid is not None:
            return self._located(day.centroid, home_point, "centroid")
        return None

    def _evening_staypoint(self, day: DaySummary, next_day: DaySummary | None) -> GeoPoint | None:
        if day.local_timezone_offset is None:
            return None
        tz = fixed_offset_zone(day.local_timezone_offset)
        start = datetime.combine(day.local_date, time(hour=self._settings.evening_hour), tzinfo=tz)
        end = start + timedelta(hours=self._settings.base_window_hours)

        candidates = list(day.staypoints)
        if next_day is not None and day.last_gps is not None:
            # Next-day staypoints only count where today ended, not after a morning flight.
            last = day.last_gps.point()
            candidates.extend(
                sp for sp in next_day.staypoints
                if haversine_km(last, sp.point()) <= self._settings.sleep_proxy_pair_km
            )
        overlapping = [sp for sp in candidates if sp.start < end and sp.end >= start]
        if not overlapping:
            return None
        best = sorted(overlapping, key=lambda sp: (-sp.dwell_seconds, sp.start))[0]
        return best.point()

    def _sleep_proxy(self, day: DaySummary, next_day: DaySummary | None) -> tuple[GeoPoint, str] | None:
        if day.last_gps is None or next_day is None or next_day.first_gps is None:
            return None
        last = day.last_gps.point()
        first = next_day.first_gps.point()
        if haversine_km(last, first) <= self._settings.sleep_proxy_pair_km:
            return GeoPoint(lat=(last.lat + first.lat) / 2, lon=(last.lon + first.lon) / 2), "sleep_proxy_pair"
        return last, "sleep_proxy_last"

    @staticmethod
    def _located(point: GeoPoint, home: GeoPoint, source: str) -> BaseLocation:
        return BaseLocation(lat=point.lat, lon=point.lon, distance_km=haversine_km(home, point), source=source)
