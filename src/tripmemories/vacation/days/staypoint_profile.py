"""
Staypoint profile stage: how much of the day was spent dwelling vs. moving.
"""

from __future__ import annotations

from tripmemories.vacation.days.base import DayContext, Days

DOMINANT_STAYPOINT_LIMIT = 3


class StaypointProfileStage:
    name = "staypoint_profile"
    reads = frozenset({"staypoints", "gps_members", "poi_samples", "photo_count"})
    writes = frozenset({"staypoint_dwell_seconds", "dominant_staypoints", "transit_ratio", "poi_density"})

    def apply(self, days: Days, ctx: DayContext) -> Days:
        for day in days.values():
            dwell = sum(sp.dwell_seconds for sp in day.staypoints)
            span = 0
            if len(day.gps_members) >= 2:
                first = day.gps_members[0].taken_at
                last = day.gps_members[-1].taken_at
                span = int((last - first).total_seconds())  # type: ignore[operator]

            day.staypoint_dwell_seconds = dwell
            day.dominant_staypoints = sorted(
                day.staypoints,
                key=lambda sp: (-sp.dwell_seconds, -len(sp.member_ids), sp.start),
            )[:DOMINANT_STAYPOINT_LIMIT]
            day.transit_ratio = max(0.0, (span - min(dwell, span)) / span) if span > 0 else 0.0
            day.poi_density = day.poi_samples / day.photo_count if day.photo_count else 0.0
        return days
