# src/tripmemories/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/tripmemories/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `TRIPMEMORIES_HOME_LAT`, `TRIPMEMORIES_HOME_LON`)
- an external YAML file via `TRIPMEMORIES_CONFIG_PATH`

Design rule:
- Tuning knobs live in YAML, not hard-coded in business logic.
- Components receive a `Settings` instance explicitly; `get_settings()` only builds the default one.
"""

from __future__ import annotations

import os
from datetime import date
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal
from tripmemories.core.env import load_dotenv_if_present

import yaml
from pydantic import BaseModel, Field, model_validator

TripClass = Literal["day_trip", "short_trip", "vacation"]


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `tripmemories.config`."""
    text = resources.files("tripmemories.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "TripMemories"
    timezone: str = "Europe/Berlin"
    log_level: str = "INFO"


class HomeSettings(BaseModel):
    lat: float | None = Field(default=None, ge=-90, le=90)
    lon: float | None = Field(default=None, ge=-180, le=180)
    radius_km: float | None = Field(default=None, gt=0)
    country_code: str | None = None
    default_radius_km: float = Field(15.0, gt=0)
    max_radius_km: float = Field(25.0, gt=0)
    daylight_start_hour: int = Field(7, ge=0, le=23)
    daylight_end_hour: int = Field(21, ge=1, le=24)
    grid_cell_km: float = Field(2.0, gt=0)
    spread_percentile: float = Field(0.95, gt=0, le=1)
    min_distinct_days: int = Field(2, ge=1)

    @model_validator(mode="after")
    def _validate_home(self) -> "HomeSettings":
        if (self.lat is None) != (self.lon is None):
            raise ValueError("home.lat and home.lon must be configured together")
        if self.daylight_end_hour <= self.daylight_start_hour:
            raise ValueError("home.daylight_end_hour must be after home.daylight_start_hour")
        return self

    @property
    def is_configured(self) -> bool:
        return self.lat is not None and self.lon is not None


class DaySettings(BaseModel):
    min_items_per_day: int = Field(3, ge=1)
    gps_outlier_radius_km: float = Field(1.0, gt=0)
    gps_outlier_min_samples: int = Field(3, ge=2)
    spot_radius_km: float = Field(1.0, gt=0)
    spot_min_samples: int = Field(3, ge=2)
    away_distance_km: float = Field(50.0, gt=0)
    movement_threshold_km: float = Field(35.0, gt=0)
    density_window_days: int = Field(56, ge=7)
    evening_hour: int = Field(18, ge=0, le=23)
    base_window_hours: int = Field(16, ge=1, le=24)
    sleep_proxy_pair_km: float = Field(2.0, gt=0)


class StaypointSettings(BaseModel):
    radius_km: float = Field(0.25, gt=0)
    min_dwell_minutes: float = Field(20, gt=0)
    adaptive: bool = True
    min_radius_km: float = Field(0.18, gt=0)
    max_radius_km: float = Field(0.35, gt=0)
    min_dwell_floor_minutes: float = Field(15, gt=0)
    max_dwell_minutes: float = Field(25, gt=0)
    urban_travel_km: float = Field(5.0, gt=0)
    rural_travel_km: float = Field(80.0, gt=0)
    dense_samples_per_hour: float = Field(12.0, gt=0)
    dbscan_radius_km: float = Field(0.18, gt=0)
    dbscan_min_samples: int = Field(3, ge=2)

    @model_validator(mode="after")
    def _validate_bounds(self) -> "StaypointSettings":
        if self.max_radius_km < self.min_radius_km:
            raise ValueError("staypoints.max_radius_km must be >= staypoints.min_radius_km")
        if self.max_dwell_minutes < self.min_dwell_floor_minutes:
            raise ValueError("staypoints.max_dwell_minutes must be >= staypoints.min_dwell_floor_minutes")
        if self.rural_travel_km <= self.urban_travel_km:
            raise ValueError("staypoints.rural_travel_km must be > staypoints.urban_travel_km")
        return self


class PoiSettings(BaseModel):
    tourism_keywords: list[str] = Field(
        default_factory=lambda: [
            "tourism",
            "attraction",
            "beach",
            "museum",
            "national_park",
            "viewpoint",
            "hotel",
            "camp_site",
            "ski",
            "marina",
        ]
    )
    transport_keywords: list[str] = Field(
        default_factory=lambda: ["airport", "aerodrome", "railway_station", "train_station", "bus_station"]
    )
    residential_keywords: list[str] = Field(
        default_factory=lambda: ["residential", "apartments", "detached", "dwelling"]
    )
    lodging_keywords: list[str] = Field(
        default_factory=lambda: ["hotel", "guest_house", "hostel", "motel", "camp_site"]
    )


class TransportSettings(BaseModel):
    min_leg_minutes: float = Field(5, gt=0)
    min_leg_km: float = Field(10, ge=0)
    high_speed_kmh: float = Field(100, gt=0)
    long_travel_km: float = Field(150, gt=0)
    transit_ratio_threshold: float = Field(0.6, ge=0, le=1)
    transit_speed_kmh: float = Field(90, gt=0)
    max_extension_days: int = Field(1, ge=0)


class RunSettings(BaseModel):
    max_bridge_days: int = Field(2, ge=0)
    min_run_days: int = Field(1, ge=1)
    lodging_signal: bool = True


class ScoreWeights(BaseModel):
    away_day: float = Field(1.6, ge=0)
    distance: float = Field(1.2, ge=0)
    country: float = Field(2.5, ge=0)
    timezone: float = Field(2.0, ge=0)
    tourism: float = Field(1.5, ge=0)
    move_day: float = Field(0.8, ge=0)
    airport: float = Field(1.0, ge=0)
    density: float = Field(0.6, ge=0)
    multi_spot_day: float = Field(0.9, ge=0)
    spot_dwell_hour: float = Field(0.3, ge=0)
    weekend_holiday_day: float = Field(0.35, ge=0)
    cohort: float = Field(1.0, ge=0)
    work_day_penalty: float = Field(0.4, ge=0)


class ScoreCaps(BaseModel):
    away_days: int = Field(10, ge=1)
    countries: int = Field(3, ge=1)
    timezones: int = Field(3, ge=1)
    move_days: int = Field(5, ge=1)
    density_z: float = Field(3.0, gt=0)
    multi_spot_bonus: float = Field(3.0, ge=0)
    spot_dwell_bonus: float = Field(1.5, ge=0)
    weekend_holiday_bonus: float = Field(2.0, ge=0)


class ScoringSettings(BaseModel):
    weights: ScoreWeights = Field(default_factory=ScoreWeights)
    caps: ScoreCaps = Field(default_factory=ScoreCaps)
    distance_scale_km: float = Field(10.0, gt=0)
    long_distance_km: float = Field(1500.0, gt=0)
    work_day_tourism_ratio: float = Field(0.2, ge=0, le=1)
    thresholds: dict[TripClass, float] = Field(
        default_factory=lambda: {"day_trip": 4.0, "short_trip": 6.0, "vacation": 8.0}
    )
    locale: str = "de"
    labels: dict[str, dict[TripClass, str]] = Field(
        default_factory=lambda: {
            "de": {"day_trip": "Tagesausflug", "short_trip": "Kurztrip", "vacation": "Urlaub"},
            "en": {"day_trip": "Day trip", "short_trip": "Short trip", "vacation": "Vacation"},
        }
    )
    member_floor_ratio: float = Field(0.5, ge=0, le=1)

    @model_validator(mode="after")
    def _validate_tables(self) -> "ScoringSettings":
        missing = {"day_trip", "short_trip", "vacation"} - set(self.thresholds)
        if missing:
            raise ValueError(f"scoring.thresholds is missing {sorted(missing)}")
        if self.locale not in self.labels:
            raise ValueError(f"scoring.labels has no entry for locale '{self.locale}'")
        return self


class CohortSettings(BaseModel):
    persons: list[str] = Field(default_factory=list)
    aliases: dict[str, str] = Field(default_factory=dict)


class HolidaySettings(BaseModel):
    dates: list[date] = Field(default_factory=list)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    home: HomeSettings = Field(default_factory=HomeSettings)
    days: DaySettings = Field(default_factory=DaySettings)
    staypoints: StaypointSettings = Field(default_factory=StaypointSettings)
    poi: PoiSettings = Field(default_factory=PoiSettings)
    transport: TransportSettings = Field(default_factory=TransportSettings)
    runs: RunSettings = Field(default_factory=RunSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    cohort: CohortSettings = Field(default_factory=CohortSettings)
    holidays: HolidaySettings = Field(default_factory=HolidaySettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small; everything else belongs in YAML.
    """
    load_dotenv_if_present()
    data = dict(data)
    log_level = os.getenv("TRIPMEMORIES_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    timezone = os.getenv("TRIPMEMORIES_TIMEZONE")
    if timezone:
        data.setdefault("app", {})["timezone"] = timezone

    for env_name, key in [
        ("TRIPMEMORIES_HOME_LAT", "lat"),
        ("TRIPMEMORIES_HOME_LON", "lon"),
        ("TRIPMEMORIES_HOME_RADIUS_KM", "radius_km"),
    ]:
        value = os.getenv(env_name)
        if value:
            data.setdefault("home", {})[key] = float(value)

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("TRIPMEMORIES_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
