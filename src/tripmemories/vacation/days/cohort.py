"""
Cohort presence stage: which of the configured people appear on a day.
"""

from __future__ import annotations

from collections import Counter

from tripmemories.config.settings import CohortSettings
from tripmemories.vacation.days.base import DayContext, Days


class CohortPresenceStage:
    name = "cohort_presence"
    reads = frozenset({"members"})
    writes = frozenset({"cohort_presence_ratio", "cohort_members"})

    def __init__(self, settings: CohortSettings):
        self._aliases = dict(settings.aliases)
        self._persons = frozenset(self._canonical(p) for p in settings.persons)

    def _canonical(self, person: str) -> str:
        return self._aliases.get(person, person)

    def apply(self, days: Days, ctx: DayContext) -> Days:
        if not self._persons:
            return days
        for day in days.values():
            counts: Counter[str] = Counter()
            for photo in day.members:
                for person in {self._canonical(p) for p in photo.persons}:
                    if person in self._persons:
                        counts[person] += 1
            day.cohort_members = dict(sorted(counts.items()))
            day.cohort_presence_ratio = len(counts) / len(self._persons)
        return days
