"""ORM models for users, matches, registrations and feedback.

The schema itself is created by the Alembic baseline migration; these models
mirror it one to one.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from padel.db.base import Base
from padel.levels import Level

MAX_PLAYERS = 4


class MatchType(str, enum.Enum):
    FIXED = "fixed"
    PROPOSED = "proposed"


class MatchStatus(str, enum.Enum):
    WAITING = "waiting"
    CONFIRMED = "confirmed"
    FINISHED = "finished"
    # Modeled for completeness; no transition reaches it.
    CANCELLED = "cancelled"


class RegistrationStatus(str, enum.Enum):
    JOINED = "joined"
    CANCELLED = "cancelled"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


def _string_enum(enum_cls: type[enum.Enum], name: str) -> Enum:
    """Store an enum by value in a VARCHAR column."""
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        create_constraint=False,
        length=16,
        values_callable=_enum_values,
        validate_strings=True,
    )


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Maps to the 'users' table."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(64), nullable=False)
    last_name: Mapped[str] = mapped_column(String(64), nullable=False)
    declared_level: Mapped[Level] = mapped_column(_string_enum(Level, "level"), nullable=False)
    # Written only by the feedback aggregator
    perceived_level: Mapped[Level | None] = mapped_column(_string_enum(Level, "level"), nullable=True)
    matches_played: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Matches
# ---------------------------------------------------------------------------


class Match(Base):
    """A scheduled padel match with room for four players."""

    __tablename__ = "matches"
    __table_args__ = (
        CheckConstraint(f"joined_count >= 0 AND joined_count <= {MAX_PLAYERS}", name="ck_matches_joined_count_capacity"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[MatchType] = mapped_column(_string_enum(MatchType, "match_type"), nullable=False)
    status: Mapped[MatchStatus] = mapped_column(
        _string_enum(MatchStatus, "match_status"), nullable=False, default=MatchStatus.WAITING
    )
    required_level: Mapped[Level] = mapped_column(_string_enum(Level, "level"), nullable=False)
    scheduled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    location: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Fixed-schedule slots have no creator
    creator_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    # Number of registrations in status 'joined'; only ever changed by conditional UPDATEs
    joined_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class Registration(Base):
    """A user's sign-up for a match. One row per (user, match), whatever its status."""

    __tablename__ = "registrations"
    __table_args__ = (
        UniqueConstraint("user_id", "match_id", name="uq_registrations_user_match"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    match_id: Mapped[int] = mapped_column(Integer, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False)
    status: Mapped[RegistrationStatus] = mapped_column(
        _string_enum(RegistrationStatus, "registration_status"),
        nullable=False,
        default=RegistrationStatus.JOINED,
    )
    registered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    user: Mapped[User] = relationship("User", lazy="raise")


# ---------------------------------------------------------------------------
# Feedback
# ---------------------------------------------------------------------------


class Feedback(Base):
    """A peer rating left by one player for another after a match."""

    __tablename__ = "feedback"
    __table_args__ = (
        UniqueConstraint("author_id", "target_user_id", "match_id", name="uq_feedback_author_target_match"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    author_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    target_user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    match_id: Mapped[int] = mapped_column(Integer, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False)
    suggested_level: Mapped[Level] = mapped_column(_string_enum(Level, "level"), nullable=False)
    comment: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
