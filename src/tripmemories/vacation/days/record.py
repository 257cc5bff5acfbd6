"""
Per-day working record threaded through the day-summary stages.

One `DaySummary` exists per local calendar date (`YYYY-MM-DD`). Stages fill
disjoint groups of fields; `FIELD_NAMES` is what stage declarations are
checked against.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date

from tripmemories.core.geo import GeoPoint
from tripmemories.domain.models import Photo
from tripmemories.vacation.poi import NO_FLAGS, PoiFlags
from tripmemories.vacation.staypoints import Staypoint


@dataclass(frozen=True)
class BaseLocation:
    """Where the day was anchored (evening staypoint, sleep proxy, ...)."""

    lat: float
    lon: float
    distance_km: float
    source: str

    def point(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lon=self.lon)


@dataclass
class DaySummary:
    date: str
    weekday: int
    is_synthetic: bool = False

    # initialization
    members: list[Photo] = field(default_factory=list)
    photo_count: int = 0
    local_timezone_identifier: str | None = None
    local_timezone_offset: int | None = None
    timezone_offsets: dict[int, int] = field(default_factory=dict)
    timezone_votes: dict[str, int] = field(default_factory=dict)
    country_codes: dict[str, int] = field(default_factory=dict)
    tourism_hits: int = 0
    poi_samples: int = 0
    tourism_ratio: float = 0.0
    has_airport_poi: bool = False
    has_lodging_poi: bool = False

    # gps metrics
    gps_members: list[Photo] = field(default_factory=list)
    gps_noise: list[Photo] = field(default_factory=list)
    max_distance_km: float = 0.0
    avg_distance_km: float = 0.0
    travel_km: float = 0.0
    centroid: GeoPoint | None = None
    first_gps: Photo | None = None
    last_gps: Photo | None = None
    staypoints: list[Staypoint] = field(default_factory=list)
    spot_clusters: list[list[Photo]] = field(default_factory=list)
    spot_noise: list[Photo] = field(default_factory=list)
    spot_count: int = 0
    spot_noise_samples: int = 0
    spot_dwell_seconds: int = 0
    sufficient_samples: bool = False

    # transport speed
    avg_speed_kmh: float = 0.0
    max_speed_kmh: float = 0.0
    has_high_speed_transit: bool = False

    # staypoint profile
    staypoint_dwell_seconds: int = 0
    dominant_staypoints: list[Staypoint] = field(default_factory=list)
    transit_ratio: float = 0.0
    poi_density: float = 0.0

    # density
    density_z: float = 0.0

    # cohort presence
    cohort_presence_ratio: float = 0.0
    cohort_members: dict[str, int] = field(default_factory=dict)

    # away flag
    base_location: BaseLocation | None = None
    base_poi_flags: PoiFlags = NO_FLAGS
    base_away: bool = False
    away_by_distance: bool = False
    is_away_candidate: bool = False

    @property
    def local_date(self) -> date:
        return date.fromisoformat(self.date)

    @property
    def has_gps(self) -> bool:
        return bool(self.gps_members)


FIELD_NAMES: frozenset[str] = frozenset(f.name for f in fields(DaySummary))

# Fields that exist as soon as a record is created.
SEED_FIELDS: frozenset[str] = frozenset({"date", "weekday", "is_synthetic"})
