"""
Density-based spatial clustering (DBSCAN) over lat/lon points.

Shared by the GPS outlier filter, spot detection and the staypoint fallback.
scikit-learn does the clustering with the haversine metric on radians, so
`eps_km` is converted to an angle on the Earth's mean radius.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Generic, TypeVar

import numpy as np
from sklearn.cluster import DBSCAN

from tripmemories.core.geo import GeoPoint

T = TypeVar("T")

KMS_PER_RADIAN = 6371.0088


@dataclass
class DbscanResult(Generic[T]):
    clusters: list[list[T]] = field(default_factory=list)
    noise: list[T] = field(default_factory=list)


class GeoDbscanHelper:
    def cluster(
        self,
        items: list[T],
        *,
        eps_km: float,
        min_samples: int,
        get_point: Callable[[T], GeoPoint],
    ) -> DbscanResult[T]:
        """Cluster `items`; members keep input order, clusters follow core-point discovery order."""
        if not items:
            return DbscanResult()
        if eps_km <= 0 or min_samples < 1 or len(items) < min_samples:
            return DbscanResult(noise=list(items))

        points = [get_point(it) for it in items]
        coords = np.radians([[p.lat, p.lon] for p in points])
        db = DBSCAN(eps=eps_km / KMS_PER_RADIAN, min_samples=min_samples, algorithm="ball_tree", metric="haversine")
        labels = db.fit(coords).labels_

        grouped: dict[int, list[T]] = {}
        result: DbscanResult[T] = DbscanResult()
        for item, label in zip(items, labels):
            if label < 0:
                result.noise.append(item)
            else:
                grouped.setdefault(int(label), []).append(item)
        result.clusters = [grouped[label] for label in sorted(grouped)]
        return result
