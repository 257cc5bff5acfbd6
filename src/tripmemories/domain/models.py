"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- library/CLI inputs (`Photo`, `Place`, `Poi`)
- the home anchor (`Home`)
- explainable clustering output (`ClusterDraft` with typed `VacationParams`)

Keeping these models in one place helps:
- validation (reject bad inputs early),
- typed refactors,
- consistent JSON output across CLI and embedding applications.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from tripmemories.core import geo


class GeoPoint(BaseModel):
    """A geographic point in decimal degrees."""

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)


class TimeRange(BaseModel):
    """First and last capture time of a cluster."""

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def _validate_order(self) -> "TimeRange":
        if self.end < self.start:
            raise ValueError("time_range.end must not be before time_range.start")
        return self


class Poi(BaseModel):
    """One point of interest attached to a place (OSM-style key/value + tags)."""

    name: str | None = None
    category_key: str | None = None
    category_value: str | None = None
    tags: dict[str, str] = Field(default_factory=dict)


class Place(BaseModel):
    """Resolved place annotation of a photo (read-only input)."""

    country_code: str | None = None
    country: str | None = None
    region: str | None = None
    city: str | None = None
    category: str | None = None
    type: str | None = None
    timezone: str | None = None
    pois: list[Poi] = Field(default_factory=list)

    @field_validator("country_code")
    @classmethod
    def _normalize_country_code(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value.strip().lower()


class PhotoQuality(BaseModel):
    """Optional quality metrics, used only to rank members within a day."""

    width: int | None = Field(default=None, ge=1)
    height: int | None = Field(default=None, ge=1)
    sharpness: float | None = Field(default=None, ge=0)
    iso: int | None = Field(default=None, ge=1)


class Photo(BaseModel):
    """A photo as delivered by the photo source (already deduplicated by id)."""

    id: int
    taken_at: datetime | None = None
    lat: float | None = Field(default=None, ge=-90, le=90)
    lon: float | None = Field(default=None, ge=-180, le=180)
    place: Place | None = None
    timezone_offset_min: int | None = Field(default=None, ge=-14 * 60, le=14 * 60)
    checksum: str | None = None
    quality: PhotoQuality | None = None
    persons: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_coordinates(self) -> "Photo":
        if (self.lat is None) != (self.lon is None):
            raise ValueError("photo lat and lon must be provided together")
        return self

    @property
    def has_gps(self) -> bool:
        return self.lat is not None and self.lon is not None

    def point(self) -> geo.GeoPoint:
        if self.lat is None or self.lon is None:
            raise ValueError(f"photo {self.id} has no GPS coordinates")
        return geo.GeoPoint(lat=self.lat, lon=self.lon)

    def sort_key(self) -> tuple[datetime, str, int]:
        """Chronological key, tie-broken by content checksum then id."""
        if self.taken_at is None:
            raise ValueError(f"photo {self.id} has no capture timestamp")
        return (self.taken_at, self.checksum or "", self.id)


class Home(BaseModel):
    """Home anchor used to measure "away" distances."""

    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    radius_km: float = Field(..., gt=0)
    country_code: str | None = None
    timezone_offset_min: int | None = None
    timezone_identifier: str | None = None
    source: Literal["configured", "inferred"] = "configured"
    sample_count: int = Field(0, ge=0)
    distinct_days: int = Field(0, ge=0)

    def point(self) -> geo.GeoPoint:
        return geo.GeoPoint(lat=self.lat, lon=self.lon)


TripClassification = Literal["day_trip", "short_trip", "vacation"]


class ScoreTerm(BaseModel):
    """One explainable score contribution (`contribution = weight * value`, negative for penalties)."""

    name: str
    value: float
    weight: float
    contribution: float


class VacationParams(BaseModel):
    """Typed parameters of a vacation cluster draft."""

    classification: TripClassification
    classification_label: str
    score: float
    nights: int = Field(..., ge=0)
    away_days: int = Field(..., ge=0)
    raw_away_days: int = Field(..., ge=0)
    bridged_away_days: int = Field(0, ge=0)
    extended_days: int = Field(0, ge=0)
    total_days: int = Field(..., ge=1)
    first_date: str
    last_date: str
    time_range: TimeRange
    max_distance_km: float = Field(..., ge=0)
    avg_distance_km: float = Field(..., ge=0)
    travel_km: float = Field(0.0, ge=0)
    country_change: bool = False
    timezone_change: bool = False
    countries: list[str] = Field(default_factory=list)
    timezones: list[int] = Field(default_factory=list)
    timezone_identifiers: list[str] = Field(default_factory=list)
    tourism_ratio: float = Field(0.0, ge=0, le=1)
    move_days: int = Field(0, ge=0)
    photo_density_z: float = 0.0
    airport_transfer: bool = False
    avg_speed_kmh: float = Field(0.0, ge=0)
    max_speed_kmh: float = Field(0.0, ge=0)
    high_speed_transit: bool = False
    spot_count: int = Field(0, ge=0)
    spot_cluster_days: int = Field(0, ge=0)
    spot_dwell_hours: float = Field(0.0, ge=0)
    spot_exploration_bonus: float = Field(0.0, ge=0)
    weekend_holiday_days: int = Field(0, ge=0)
    weekend_holiday_bonus: float = Field(0.0, ge=0)
    cohort_presence_ratio: float = Field(0.0, ge=0, le=1)
    cohort_bonus: float = Field(0.0, ge=0)
    cohort_members: dict[str, int] = Field(default_factory=dict)
    work_day_penalty_days: int = Field(0, ge=0)
    work_day_penalty_score: float = Field(0.0, ge=0)
    member_count: int = Field(0, ge=0)
    place: str | None = None
    place_city: str | None = None
    place_country: str | None = None
    score_terms: list[ScoreTerm] = Field(default_factory=list)


class ClusterDraft(BaseModel):
    """Final output record of a clustering strategy."""

    algorithm: Literal["vacation"] = "vacation"
    params: VacationParams
    centroid: GeoPoint
    members: list[int]

    @field_validator("members")
    @classmethod
    def _members_unique(cls, members: list[int]) -> list[int]:
        if len(set(members)) != len(members):
            raise ValueError("cluster members must be unique")
        return members
