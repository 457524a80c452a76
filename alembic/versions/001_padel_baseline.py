"""Baseline: users, matches, registrations and feedback.

Revision ID: 001_padel_baseline
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_padel_baseline"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id SERIAL PRIMARY KEY,
            username VARCHAR(64) UNIQUE NOT NULL,
            email VARCHAR(320) UNIQUE NOT NULL,
            first_name VARCHAR(64) NOT NULL,
            last_name VARCHAR(64) NOT NULL,
            declared_level VARCHAR(16) NOT NULL,
            perceived_level VARCHAR(16),
            matches_played INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)

    # --- Matches ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS matches (
            id SERIAL PRIMARY KEY,
            type VARCHAR(16) NOT NULL,
            status VARCHAR(16) NOT NULL DEFAULT 'waiting',
            required_level VARCHAR(16) NOT NULL,
            scheduled_at TIMESTAMPTZ NOT NULL,
            location VARCHAR(128) NOT NULL,
            description TEXT,
            creator_id INTEGER REFERENCES users(id) ON DELETE SET NULL,
            joined_count INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_matches_joined_count_capacity CHECK (joined_count >= 0 AND joined_count <= 4)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_matches_status_scheduled
        ON matches(status, scheduled_at)
    """)

    # --- Registrations ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS registrations (
            id SERIAL PRIMARY KEY,
            user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            match_id INTEGER NOT NULL REFERENCES matches(id) ON DELETE CASCADE,
            status VARCHAR(16) NOT NULL DEFAULT 'joined',
            registered_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_registrations_user_match UNIQUE (user_id, match_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_registrations_match
        ON registrations(match_id, status)
    """)

    # --- Feedback ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS feedback (
            id SERIAL PRIMARY KEY,
            author_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            target_user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            match_id INTEGER NOT NULL REFERENCES matches(id) ON DELETE CASCADE,
            suggested_level VARCHAR(16) NOT NULL,
            comment VARCHAR(1000),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_feedback_author_target_match UNIQUE (author_id, target_user_id, match_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_feedback_target
        ON feedback(target_user_id)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS feedback")
    op.execute("DROP TABLE IF EXISTS registrations")
    op.execute("DROP TABLE IF EXISTS matches")
    op.execute("DROP TABLE IF EXISTS users")
