"""Skill level scale and perceived-level arithmetic.

Averaging works on LEVEL_WEIGHTS, never on enum declaration order, so the
scale can be reordered or extended without silently changing stored ratings.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable


class Level(str, enum.Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    PROFESSIONAL = "professional"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


LEVEL_WEIGHTS: dict[Level, int] = {
    Level.BEGINNER: 0,
    Level.INTERMEDIATE: 1,
    Level.ADVANCED: 2,
    Level.PROFESSIONAL: 3,
}

_LEVELS_BY_WEIGHT: dict[int, Level] = {weight: level for level, weight in LEVEL_WEIGHTS.items()}


def level_weight(level: Level) -> int:
    """Numeric weight of a level (Beginner=0 ... Professional=3)."""
    return LEVEL_WEIGHTS[level]


def level_for_weight(weight: int) -> Level:
    """Inverse of level_weight. Raises ValueError for weights off the scale."""
    try:
        return _LEVELS_BY_WEIGHT[weight]
    except KeyError:
        raise ValueError(f"No level has weight {weight}") from None


def round_half_up_mean(weights: Iterable[int]) -> int:
    """Mean of integer weights rounded half up (2.5 -> 3, 0.667 -> 1).

    Computed as floor(sum / n + 1/2) in integer arithmetic so .5 ties are exact.
    """
    values = list(weights)
    if not values:
        raise ValueError("Cannot average an empty set of weights")
    total = sum(values)
    count = len(values)
    return (2 * total + count) // (2 * count)


def perceived_level_from(levels: Iterable[Level]) -> Level | None:
    """Level at the rounded mean weight of the given ratings, None when there are none."""
    weights = [level_weight(level) for level in levels]
    if not weights:
        return None
    return level_for_weight(round_half_up_mean(weights))
