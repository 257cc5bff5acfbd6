"""
Transport speed stage: leg speeds between consecutive GPS samples.

Short hops are ignored (GPS jitter over a few minutes produces absurd speeds);
a day with a fast leg or a very long travel distance gets the high-speed flag
that lets arrival/departure days join a trip.
"""

from __future__ import annotations

from tripmemories.config.settings import TransportSettings
from tripmemories.core.geo import haversine_km
from tripmemories.vacation.days.base import DayContext, Days


class TransportSpeedStage:
    name = "transport_speed"
    reads = frozenset({"gps_members", "travel_km"})
    writes = frozenset({"avg_speed_kmh", "max_speed_kmh", "has_high_speed_transit"})

    def __init__(self, settings: TransportSettings):
        self._settings = settings

    def apply(self, days: Days, ctx: DayContext) -> Days:
        s = self._settings
        for day in days.values():
            total_km = 0.0
            total_hours = 0.0
            max_speed = 0.0
            for a, b in zip(day.gps_members, day.gps_members[1:]):
                minutes = (b.taken_at - a.taken_at).total_seconds() / 60  # type: ignore[operator]
                km = haversine_km(a.point(), b.point())
                if minutes < s.min_leg_minutes or km < s.min_leg_km:
                    continue
                hours = minutes / 60
                total_km += km
                total_hours += hours
                max_speed = max(max_speed, km / hours)

            day.avg_speed_kmh = total_km / total_hours if total_hours > 0 else 0.0
            day.max_speed_kmh = max_speed
            day.has_high_speed_transit = max_speed >= s.high_speed_kmh or day.travel_km > s.long_travel_km
        return days
