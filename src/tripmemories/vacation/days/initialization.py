"""
Initialization stage: bucket photos into local calendar days.

Every photo gets its own timezone (see `TimezoneResolver`), so a day abroad is
keyed by the traveller's local date and a DST switch does not split a day.
Calendar gaps between the first and last day are filled with synthetic days.
"""

from __future__ import annotations

from collections import Counter
from datetime import date, timedelta

from tripmemories.config.settings import PoiSettings
from tripmemories.vacation.days.base import DayContext, Days
from tripmemories.vacation.days.record import DaySummary
from tripmemories.vacation.home import majority
from tripmemories.vacation.poi import PoiClassifier


class InitializationStage:
    name = "initialization"
    reads: frozenset[str] = frozenset()
    writes = frozenset(
        {
            "members",
            "photo_count",
            "local_timezone_identifier",
            "local_timezone_offset",
            "timezone_offsets",
            "timezone_votes",
            "country_codes",
            "tourism_hits",
            "poi_samples",
            "tourism_ratio",
            "has_airport_poi",
            "has_lodging_poi",
        }
    )

    def __init__(self, settings: PoiSettings):
        self._classifier = PoiClassifier(settings)

    def apply(self, days: Days, ctx: DayContext) -> Days:
        buckets: dict[str, DaySummary] = {}
        offsets: dict[str, Counter[int]] = {}
        votes: dict[str, Counter[str]] = {}
        countries: dict[str, Counter[str]] = {}

        for photo in ctx.photos:
            zone = ctx.resolver.resolve(photo, ctx.home)
            key = zone.date_key
            day = buckets.get(key)
            if day is None:
                day = DaySummary(date=key, weekday=zone.local.isoweekday())
                buckets[key] = day
                offsets[key] = Counter()
                votes[key] = Counter()
                countries[key] = Counter()

            day.members.append(photo)
            offsets[key][zone.offset_min] += 1
            votes[key][zone.identifier] += 1
            if photo.place is not None and photo.place.country_code:
                countries[key][photo.place.country_code] += 1

            flags = self._classifier.classify(photo.place)
            if flags.poi_sample:
                day.poi_samples += 1
            if flags.tourism:
                day.tourism_hits += 1
            if flags.transport:
                day.has_airport_poi = True
            if flags.lodging:
                day.has_lodging_poi = True

        for key, day in buckets.items():
            day.photo_count = len(day.members)
            day.timezone_offsets = dict(offsets[key])
            day.timezone_votes = dict(votes[key])
            day.country_codes = dict(countries[key])
            day.tourism_ratio = day.tourism_hits / day.poi_samples if day.poi_samples else 0.0
            day.local_timezone_identifier = majority(votes[key].elements())
            day.local_timezone_offset = majority(offsets[key].elements())
            if day.local_timezone_identifier is None or day.local_timezone_offset is None:
                raise RuntimeError(f"day {key} has members but no resolvable timezone")

        return self._fill_gaps(buckets, ctx)

    @staticmethod
    def _fill_gaps(buckets: Days, ctx: DayContext) -> Days:
        if not buckets:
            return {}
        keys = sorted(buckets)
        first = date.fromisoformat(keys[0])
        last = date.fromisoformat(keys[-1])
        out: Days = {}
        current = first
        while current <= last:
            key = current.isoformat()
            day = buckets.get(key)
            if day is None:
                day = DaySummary(
                    date=key,
                    weekday=current.isoweekday(),
                    is_synthetic=True,
                    local_timezone_identifier=ctx.resolver.default_timezone,
                )
            out[key] = day
            current += timedelta(days=1)
        return out
