"""
Shared scoring utilities.

This module contains small, reusable helpers used by the day metrics and the
vacation score:
- `clamp01`: keep mixing factors within 0..1
- `ScoreBook`: accumulate weighted, explainable score terms into one total
"""

from __future__ import annotations

from dataclasses import dataclass, field

from tripmemories.domain.models import ScoreTerm


def clamp01(x: float) -> float:
    """Clamp a number into the [0.0, 1.0] range."""
    return max(0.0, min(1.0, float(x)))


def capped(value: float, cap: float) -> float:
    """Clamp a non-negative quantity into [0, cap]."""
    return max(0.0, min(float(cap), float(value)))


@dataclass
class ScoreBook:
    """Weighted sum with a per-term breakdown (bonuses add, penalties subtract)."""

    terms: list[ScoreTerm] = field(default_factory=list)

    def bonus(self, name: str, value: float, weight: float) -> float:
        contribution = float(weight) * float(value)
        self.terms.append(ScoreTerm(name=name, value=float(value), weight=float(weight), contribution=contribution))
        return contribution

    def penalty(self, name: str, value: float, weight: float) -> float:
        contribution = float(weight) * float(value)
        self.terms.append(ScoreTerm(name=name, value=float(value), weight=float(weight), contribution=-contribution))
        return contribution

    @property
    def total(self) -> float:
        return sum(t.contribution for t in self.terms)
