"""
Lightweight spatial indexing (grid bucket) for lat/lon points.

Used by home inference to bucket daylight samples into metric cells and to
gather every sample around the winning cell without O(N^2) scans.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from tripmemories.core.geo import GeoPoint, haversine_m

T = TypeVar("T")


def _to_xy_m(lat: float, lon: float, *, lat0_deg: float) -> tuple[float, float]:
    # Equirectangular projection around a reference latitude (fine for city-scale cells).
    lat0 = math.radians(float(lat0_deg))
    x = float(lon) * 111_320.0 * math.cos(lat0)
    y = float(lat) * 110_540.0
    return x, y


@dataclass(frozen=True)
class _Entry(Generic[T]):
    item: T
    lat: float
    lon: float
    x_m: float
    y_m: float


class SpatialGridIndex(Generic[T]):
    def __init__(
        self,
        items: list[T],
        *,
        get_latlon: Callable[[T], tuple[float, float]],
        cell_size_m: float = 2000.0,
        lat0_deg: float | None = None,
    ):
        if float(cell_size_m) <= 0:
            raise ValueError("cell_size_m must be > 0")
        coords = [get_latlon(it) for it in items]
        if lat0_deg is None:
            lat0_deg = sum(lat for lat, _ in coords) / len(coords) if coords else 0.0
        self._cell_size_m = float(cell_size_m)
        self._lat0_deg = float(lat0_deg)
        self._cells: dict[tuple[int, int], list[_Entry[T]]] = {}

        for it, (lat, lon) in zip(items, coords):
            x_m, y_m = _to_xy_m(lat, lon, lat0_deg=self._lat0_deg)
            e = _Entry(item=it, lat=float(lat), lon=float(lon), x_m=x_m, y_m=y_m)
            self._cells.setdefault(self._cell_key_xy(x_m, y_m), []).append(e)

    def _cell_key_xy(self, x_m: float, y_m: float) -> tuple[int, int]:
        return (int(math.floor(x_m / self._cell_size_m)), int(math.floor(y_m / self._cell_size_m)))

    def buckets(self) -> dict[tuple[int, int], list[T]]:
        """Items grouped by grid cell, in insertion order within each cell."""
        return {key: [e.item for e in entries] for key, entries in self._cells.items()}

    def query_within(self, *, lat: float, lon: float, radius_m: float) -> list[T]:
        r = float(radius_m)
        if r <= 0:
            return []
        x0, y0 = _to_xy_m(float(lat), float(lon), lat0_deg=self._lat0_deg)
        cx, cy = self._cell_key_xy(x0, y0)
        steps = int(math.ceil(r / self._cell_size_m))

        origin = GeoPoint(lat=float(lat), lon=float(lon))
        out: list[T] = []
        for dx in range(-steps, steps + 1):
            for dy in range(-steps, steps + 1):
                cell = self._cells.get((cx + dx, cy + dy))
                if not cell:
                    continue
                for e in cell:
                    # Cheap bounding circle filter in projected space.
                    if (e.x_m - x0) ** 2 + (e.y_m - y0) ** 2 > (r * 1.15) ** 2:
                        continue
                    if haversine_m(origin, GeoPoint(lat=e.lat, lon=e.lon)) <= r:
                        out.append(e.item)
        return out
