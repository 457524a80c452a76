"""Integration tests: peer feedback and perceived level aggregation."""

from __future__ import annotations

import pytest

from padel.errors import DuplicateFeedbackError, NotFoundError
from padel.feedback.aggregation import recompute_perceived_level
from padel.feedback.service import (
    create_feedback,
    list_feedback_by_author,
    list_feedback_for_match,
    list_feedback_for_user,
)
from padel.levels import Level
from padel.users.service import get_user


class TestCreateFeedback:

    @pytest.mark.asyncio
    async def test_feedback_sets_perceived_level(self, db_session, make_user, make_match):
        author = await make_user("alice")
        target = await make_user("bob", level=Level.BEGINNER)
        match = await make_match(author)

        feedback = await create_feedback(db_session, author.id, target.id, match.id, Level.ADVANCED, "Great net play")
        await db_session.commit()

        assert feedback.comment == "Great net play"
        target = await get_user(db_session, target.id)
        assert target.perceived_level == Level.ADVANCED
        assert target.declared_level == Level.BEGINNER

    @pytest.mark.asyncio
    async def test_mean_rounds_to_nearest(self, db_session, make_user, make_match):
        """Beginner, Intermediate, Intermediate -> 0.667 -> Intermediate."""
        target = await make_user("bob")
        authors = [await make_user(name) for name in ("alice", "carla", "dan")]
        match = await make_match(authors[0])

        for author, level in zip(authors, [Level.BEGINNER, Level.INTERMEDIATE, Level.INTERMEDIATE]):
            await create_feedback(db_session, author.id, target.id, match.id, level)
        await db_session.commit()

        assert (await get_user(db_session, target.id)).perceived_level == Level.INTERMEDIATE

    @pytest.mark.asyncio
    async def test_half_rounds_up(self, db_session, make_user, make_match):
        """Advanced, Professional -> 2.5 -> Professional."""
        target = await make_user("bob")
        alice = await make_user("alice")
        carla = await make_user("carla")
        match = await make_match(alice)

        await create_feedback(db_session, alice.id, target.id, match.id, Level.ADVANCED)
        await create_feedback(db_session, carla.id, target.id, match.id, Level.PROFESSIONAL)
        await db_session.commit()

        assert (await get_user(db_session, target.id)).perceived_level == Level.PROFESSIONAL

    @pytest.mark.asyncio
    async def test_aggregates_across_matches(self, db_session, make_user, make_match):
        target = await make_user("bob")
        alice = await make_user("alice")
        first = await make_match(alice, location="Court 1")
        second = await make_match(alice, location="Court 2")

        await create_feedback(db_session, alice.id, target.id, first.id, Level.BEGINNER)
        await create_feedback(db_session, alice.id, target.id, second.id, Level.BEGINNER)
        await db_session.commit()

        assert (await get_user(db_session, target.id)).perceived_level == Level.BEGINNER
        assert len(await list_feedback_for_user(db_session, target.id)) == 2

    @pytest.mark.asyncio
    async def test_duplicate_rejected_and_level_unchanged(self, db_session, make_user, make_match):
        author = await make_user("alice")
        target = await make_user("bob")
        match = await make_match(author)
        author_id, target_id, match_id = author.id, target.id, match.id
        await create_feedback(db_session, author_id, target_id, match_id, Level.ADVANCED)
        await db_session.commit()

        with pytest.raises(DuplicateFeedbackError):
            await create_feedback(db_session, author_id, target_id, match_id, Level.BEGINNER)
        await db_session.rollback()

        assert (await get_user(db_session, target_id)).perceived_level == Level.ADVANCED
        assert len(await list_feedback_for_user(db_session, target_id)) == 1

    @pytest.mark.asyncio
    async def test_same_author_may_rate_other_players(self, db_session, make_user, make_match):
        author = await make_user("alice")
        bob = await make_user("bob")
        dan = await make_user("dan")
        match = await make_match(author)

        await create_feedback(db_session, author.id, bob.id, match.id, Level.ADVANCED)
        await create_feedback(db_session, author.id, dan.id, match.id, Level.BEGINNER)
        await db_session.commit()

        assert len(await list_feedback_by_author(db_session, author.id)) == 2
        assert len(await list_feedback_for_match(db_session, match.id)) == 2

    @pytest.mark.asyncio
    async def test_unknown_target_rejected(self, db_session, make_user, make_match):
        author = await make_user("alice")
        match = await make_match(author)
        with pytest.raises(NotFoundError):
            await create_feedback(db_session, author.id, 9999, match.id, Level.ADVANCED)

    @pytest.mark.asyncio
    async def test_unknown_match_rejected(self, db_session, make_user):
        author = await make_user("alice")
        target = await make_user("bob")
        with pytest.raises(NotFoundError):
            await create_feedback(db_session, author.id, target.id, 9999, Level.ADVANCED)


class TestRecompute:

    @pytest.mark.asyncio
    async def test_no_feedback_keeps_null(self, db_session, make_user):
        user = await make_user("bob")
        assert await recompute_perceived_level(db_session, user.id) is None
        assert (await get_user(db_session, user.id)).perceived_level is None

    @pytest.mark.asyncio
    async def test_stale_level_cleared_without_feedback(self, db_session, make_user):
        user = await make_user("bob")
        user_id = user.id
        user.perceived_level = Level.PROFESSIONAL
        await db_session.commit()

        assert await recompute_perceived_level(db_session, user_id) is None
        await db_session.commit()
        assert (await get_user(db_session, user_id)).perceived_level is None

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session):
        with pytest.raises(NotFoundError):
            await recompute_perceived_level(db_session, 9999)
