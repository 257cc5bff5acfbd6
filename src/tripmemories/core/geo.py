from __future__ import annotations
from dataclasses import dataclass
from math import asin, ceil, cos, radians, sin, sqrt
from typing import Iterable

"""
Geospatial helpers.

A tiny geometry layer so day summaries, staypoints and home inference can do
distance calculations without pulling in heavier GIS dependencies.
"""


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float


def haversine_m(a: GeoPoint, b: GeoPoint) -> float:
    """Compute great-circle distance in meters between two points."""
    r = 6_371_000
    lat1 = radians(a.lat)
    lon1 = radians(a.lon)
    lat2 = radians(b.lat)
    lon2 = radians(b.lon)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    return 2 * r * asin(sqrt(min(1.0, h)))


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance in kilometres."""
    return haversine_m(a, b) / 1000.0


def centroid(points: Iterable[GeoPoint]) -> GeoPoint | None:
    """Arithmetic mean of the points (adequate for the city-scale spreads we average)."""
    lat_sum = 0.0
    lon_sum = 0.0
    n = 0
    for p in points:
        lat_sum += p.lat
        lon_sum += p.lon
        n += 1
    if n == 0:
        return None
    return GeoPoint(lat=lat_sum / n, lon=lon_sum / n)


def percentile(values: list[float], q: float) -> float:
    """Nearest-rank percentile (`q` in 0..1); 0.0 for an empty list."""
    if not values:
        return 0.0
    ordered = sorted(values)
    rank = max(1, int(ceil(q * len(ordered))))
    return ordered[min(rank, len(ordered)) - 1]
