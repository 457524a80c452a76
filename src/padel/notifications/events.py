"""Lifecycle events emitted by match transitions.

Services return these alongside their results instead of dispatching them;
the caller publishes them only after the owning transaction has committed.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from padel.db.models import MAX_PLAYERS, Match


class MatchEventKind(str, enum.Enum):
    CONFIRMED = "confirmed"
    FINISHED = "finished"


@dataclass(frozen=True)
class MatchEvent:
    kind: MatchEventKind
    match_id: int
    location: str
    scheduled_at: datetime
    player_count: int
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def for_match(cls, kind: MatchEventKind, match: Match) -> MatchEvent:
        return cls(
            kind=kind,
            match_id=match.id,
            location=match.location,
            scheduled_at=match.scheduled_at,
            player_count=match.joined_count,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "event": f"match_{self.kind.value}",
            "data": {
                "match_id": self.match_id,
                "location": self.location,
                "scheduled_at": self.scheduled_at.isoformat(),
                "player_count": self.player_count,
                "message": format_message(self),
                "timestamp": self.occurred_at.isoformat(),
            },
        }


def format_message(event: MatchEvent) -> str:
    """Human readable notification text for an event."""
    when = event.occurred_at.strftime("%d/%m/%Y %H:%M")
    if event.kind is MatchEventKind.CONFIRMED:
        return (
            f"Match CONFIRMED! Location: {event.location} - "
            f"Players: {event.player_count}/{MAX_PLAYERS} - {when}"
        )
    return f"Match FINISHED! Location: {event.location} - Leave your feedback! - {when}"
