"""
Day summary builder: runs the ordered stage pipeline over a photo corpus.

The pipeline is explicit data: a list of stage objects, each declaring the
`DaySummary` fields it reads and writes. Construction fails when a stage reads
a field no earlier stage produces, so reordering mistakes surface immediately.
"""

from __future__ import annotations

import logging
from typing import Sequence

from tripmemories.config.settings import Settings
from tripmemories.core.time import TimezoneResolver
from tripmemories.domain.models import Home, Photo
from tripmemories.vacation.dbscan import GeoDbscanHelper
from tripmemories.vacation.days.away_flag import AwayFlagStage
from tripmemories.vacation.days.base import DayContext, Days, DayStage
from tripmemories.vacation.days.cohort import CohortPresenceStage
from tripmemories.vacation.days.density import DensityStage
from tripmemories.vacation.days.gps_metrics import GpsMetricsStage
from tripmemories.vacation.days.initialization import InitializationStage
from tripmemories.vacation.days.record import FIELD_NAMES, SEED_FIELDS
from tripmemories.vacation.days.staypoint_profile import StaypointProfileStage
from tripmemories.vacation.days.transport_speed import TransportSpeedStage
from tripmemories.vacation.staypoints import StaypointDetector

logger = logging.getLogger(__name__)


def default_stages(settings: Settings, dbscan: GeoDbscanHelper | None = None) -> list[DayStage]:
    """Initialization, GPS metrics, transport speed, staypoint profile, density, cohort, away flag."""
    dbscan = dbscan or GeoDbscanHelper()
    detector = StaypointDetector(settings.staypoints, dbscan)
    return [
        InitializationStage(settings.poi),
        GpsMetricsStage(settings.days, detector, dbscan),
        TransportSpeedStage(settings.transport),
        StaypointProfileStage(),
        DensityStage(settings.days),
        CohortPresenceStage(settings.cohort),
        AwayFlagStage(settings.days, settings.poi),
    ]


def validate_stage_order(stages: Sequence[DayStage]) -> None:
    available = set(SEED_FIELDS)
    for stage in stages:
        unknown = (stage.reads | stage.writes) - FIELD_NAMES
        if unknown:
            raise ValueError(f"stage '{stage.name}' declares unknown fields: {sorted(unknown)}")
        missing = stage.reads - available
        if missing:
            raise ValueError(f"stage '{stage.name}' reads fields no earlier stage writes: {sorted(missing)}")
        available |= stage.writes


class DaySummaryBuilder:
    def __init__(self, settings: Settings, stages: Sequence[DayStage] | None = None, resolver: TimezoneResolver | None = None):
        self._settings = settings
        self._stages = list(stages) if stages is not None else default_stages(settings)
        validate_stage_order(self._stages)
        self._resolver = resolver or TimezoneResolver(settings.app.timezone)

    @property
    def stage_names(self) -> list[str]:
        return [s.name for s in self._stages]

    def build(self, photos: Sequence[Photo], home: Home) -> Days:
        """Fold chronologically sorted, timestamped photos into per-day summaries."""
        ctx = DayContext(photos=tuple(photos), home=home, settings=self._settings, resolver=self._resolver)
        days: Days = {}
        for stage in self._stages:
            days = stage.apply(days, ctx)
        logger.debug("Built %d day summaries from %d photos", len(days), len(photos))
        return days
