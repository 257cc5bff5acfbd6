"""
Place/POI classification.

Turns the free-form category/type/tag soup of a `Place` into a few semantic
flags used by the day summaries and the run detector.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from tripmemories.config.settings import PoiSettings
from tripmemories.domain.models import Place


@dataclass(frozen=True)
class PoiFlags:
    tourism: bool = False
    transport: bool = False
    residential: bool = False
    lodging: bool = False
    poi_sample: bool = False


NO_FLAGS = PoiFlags()


def _normalize(value: str) -> str:
    return value.strip().lower().replace(" ", "_")


def _matches(values: Iterable[str], keywords: tuple[str, ...]) -> bool:
    for value in values:
        for keyword in keywords:
            if value == keyword or keyword in value:
                return True
    return False


class PoiClassifier:
    def __init__(self, settings: PoiSettings):
        self._tourism = tuple(_normalize(k) for k in settings.tourism_keywords)
        self._transport = tuple(_normalize(k) for k in settings.transport_keywords)
        self._residential = tuple(_normalize(k) for k in settings.residential_keywords)
        self._lodging = tuple(_normalize(k) for k in settings.lodging_keywords)

    @staticmethod
    def _values(place: Place) -> list[str]:
        values: list[str] = []
        for raw in (place.category, place.type):
            if raw:
                values.append(_normalize(raw))
        for poi in place.pois:
            for raw in (poi.category_key, poi.category_value):
                if raw:
                    values.append(_normalize(raw))
            for key, value in poi.tags.items():
                # Identifier tags (timezone, name, ...) carry no category meaning.
                if key in {"name", "timezone", "opening_hours:timezone", "tz"}:
                    continue
                values.append(_normalize(key))
                if value:
                    values.append(_normalize(value))
        return [v for v in values if v]

    @staticmethod
    def is_poi_sample(place: Place | None) -> bool:
        if place is None:
            return False
        if place.category or place.type:
            return True
        return any(poi.category_key or poi.category_value or poi.tags for poi in place.pois)

    def classify(self, place: Place | None) -> PoiFlags:
        if place is None:
            return NO_FLAGS
        values = self._values(place)
        if not values:
            return NO_FLAGS
        return PoiFlags(
            tourism=_matches(values, self._tourism),
            transport=_matches(values, self._transport),
            residential=_matches(values, self._residential),
            lodging=_matches(values, self._lodging),
            poi_sample=self.is_poi_sample(place),
        )

    def is_hotel(self, place: Place | None) -> bool:
        return self.classify(place).lodging
