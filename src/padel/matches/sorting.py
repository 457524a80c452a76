"""Match list orderings: by date, by popularity, by level."""

from __future__ import annotations

import enum
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import Any

from padel.db.models import Match
from padel.levels import level_weight


class MatchSort(str, enum.Enum):
    BY_DATE = "by_date"
    BY_POPULARITY = "by_popularity"
    BY_LEVEL = "by_level"


def _utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _by_date(match: Match) -> tuple[Any, ...]:
    return (_utc(match.scheduled_at), match.id)


def _by_popularity(match: Match) -> tuple[Any, ...]:
    return (-match.joined_count, _utc(match.scheduled_at), match.id)


def _by_level(match: Match) -> tuple[Any, ...]:
    return (level_weight(match.required_level), _utc(match.scheduled_at), match.id)


SORT_KEYS: dict[MatchSort, Callable[[Match], tuple[Any, ...]]] = {
    MatchSort.BY_DATE: _by_date,
    MatchSort.BY_POPULARITY: _by_popularity,
    MatchSort.BY_LEVEL: _by_level,
}


def sort_matches(matches: Iterable[Match], sort: MatchSort = MatchSort.BY_DATE) -> list[Match]:
    """Return a new list ordered by the selected key. The input is not modified."""
    return sorted(matches, key=SORT_KEYS[sort])
