"""Integration tests: capacity, uniqueness and leave rules of match registration."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select

from padel.db.models import MatchStatus, Registration, RegistrationStatus
from padel.errors import (
    AlreadyLeftError,
    AlreadyRegisteredError,
    MatchFullError,
    NotFoundError,
    NotRegisteredError,
)
from padel.feedback.service import create_feedback, list_feedback_for_match
from padel.levels import Level
from padel.matches.match_service import get_match
from padel.matches.registration_service import (
    count_all,
    count_joined,
    get_registration,
    is_registered,
    join_match,
    leave_match,
)
from padel.notifications.events import MatchEventKind
from padel.users.service import get_user


async def _join_committed(db, user_id: int, match_id: int):
    registration, events = await join_match(db, user_id, match_id)
    await db.commit()
    return registration, events


class TestJoin:

    @pytest.mark.asyncio
    async def test_first_join(self, db_session, make_user, make_match):
        creator = await make_user("carla")
        alice = await make_user("alice")
        match = await make_match(creator)

        registration, events = await _join_committed(db_session, alice.id, match.id)

        assert registration.status == RegistrationStatus.JOINED
        assert events == []
        assert await is_registered(db_session, alice.id, match.id)
        match = await get_match(db_session, match.id)
        assert match.joined_count == 1
        assert match.status == MatchStatus.WAITING

    @pytest.mark.asyncio
    async def test_fourth_join_confirms_once(self, db_session, make_user, make_match):
        creator = await make_user("carla")
        players = [await make_user(name) for name in ("alice", "bob", "dan", "eve")]
        match = await make_match(creator)

        all_events = []
        for player in players:
            _registration, events = await _join_committed(db_session, player.id, match.id)
            all_events.extend(events)

        assert len(all_events) == 1
        assert all_events[0].kind is MatchEventKind.CONFIRMED
        assert all_events[0].match_id == match.id
        assert all_events[0].player_count == 4
        match = await get_match(db_session, match.id)
        assert match.status == MatchStatus.CONFIRMED
        assert await count_joined(db_session, match.id) == 4

    @pytest.mark.asyncio
    async def test_fifth_join_rejected(self, db_session, make_user, make_match):
        creator = await make_user("carla")
        players = [await make_user(name) for name in ("alice", "bob", "dan", "eve")]
        late = await make_user("frank")
        match = await make_match(creator)
        match_id, late_id = match.id, late.id
        for player in players:
            await _join_committed(db_session, player.id, match.id)

        with pytest.raises(MatchFullError):
            await join_match(db_session, late_id, match_id)
        await db_session.rollback()

        assert await count_joined(db_session, match_id) == 4
        assert await get_registration(db_session, late_id, match_id) is None

    @pytest.mark.asyncio
    async def test_join_twice_rejected(self, db_session, make_user, make_match):
        creator = await make_user("carla")
        alice = await make_user("alice")
        match = await make_match(creator)
        match_id = match.id
        await _join_committed(db_session, alice.id, match_id)

        with pytest.raises(AlreadyRegisteredError):
            await join_match(db_session, alice.id, match_id)
        await db_session.rollback()

        assert await count_all(db_session, match_id) == 1
        assert (await get_match(db_session, match_id)).joined_count == 1

    @pytest.mark.asyncio
    async def test_join_unknown_match(self, db_session, make_user):
        alice = await make_user("alice")
        with pytest.raises(NotFoundError):
            await join_match(db_session, alice.id, 9999)

    @pytest.mark.asyncio
    async def test_join_unknown_user(self, db_session, make_user, make_match):
        match = await make_match(await make_user("carla"))
        with pytest.raises(NotFoundError):
            await join_match(db_session, 9999, match.id)

    @pytest.mark.asyncio
    async def test_creator_can_take_a_slot(self, db_session, make_user, make_match):
        creator = await make_user("carla")
        match = await make_match(creator)
        await _join_committed(db_session, creator.id, match.id)
        assert await is_registered(db_session, creator.id, match.id)


class TestLeave:

    @pytest.mark.asyncio
    async def test_leave_flips_only_own_registration(self, db_session, make_user, make_match):
        creator = await make_user("carla")
        alice = await make_user("alice")
        bob = await make_user("bob")
        match = await make_match(creator)
        await _join_committed(db_session, alice.id, match.id)
        await _join_committed(db_session, bob.id, match.id)

        await leave_match(db_session, alice.id, match.id)
        await db_session.commit()

        assert (await get_registration(db_session, alice.id, match.id)).status == RegistrationStatus.CANCELLED
        assert (await get_registration(db_session, bob.id, match.id)).status == RegistrationStatus.JOINED
        match = await get_match(db_session, match.id)
        assert match.joined_count == 1
        assert match.status == MatchStatus.WAITING
        assert await count_joined(db_session, match.id) == 1

    @pytest.mark.asyncio
    async def test_confirmed_match_stays_confirmed_after_leave(self, db_session, make_user, make_match):
        creator = await make_user("carla")
        players = [await make_user(name) for name in ("alice", "bob", "dan", "eve")]
        match = await make_match(creator)
        for player in players:
            await _join_committed(db_session, player.id, match.id)

        await leave_match(db_session, players[0].id, match.id)
        await db_session.commit()

        match = await get_match(db_session, match.id)
        assert match.status == MatchStatus.CONFIRMED
        assert match.joined_count == 3

    @pytest.mark.asyncio
    async def test_rejoin_reuses_registration_row(self, db_session, make_user, make_match):
        creator = await make_user("carla")
        alice = await make_user("alice")
        match = await make_match(creator)
        first, _ = await _join_committed(db_session, alice.id, match.id)
        await leave_match(db_session, alice.id, match.id)
        await db_session.commit()

        again, _ = await _join_committed(db_session, alice.id, match.id)

        assert again.id == first.id
        assert again.status == RegistrationStatus.JOINED
        assert await count_all(db_session, match.id) == 1
        assert (await get_match(db_session, match.id)).joined_count == 1

    @pytest.mark.asyncio
    async def test_rejoin_into_full_match_rejected(self, db_session, make_user, make_match):
        creator = await make_user("carla")
        players = [await make_user(name) for name in ("alice", "bob", "dan", "eve")]
        frank = await make_user("frank")
        match = await make_match(creator)
        for player in players[:3]:
            await _join_committed(db_session, player.id, match.id)
        await leave_match(db_session, players[0].id, match.id)
        await db_session.commit()
        await _join_committed(db_session, players[3].id, match.id)
        await _join_committed(db_session, frank.id, match.id)

        match_id, alice_id = match.id, players[0].id
        with pytest.raises(MatchFullError):
            await join_match(db_session, alice_id, match_id)
        await db_session.rollback()

        cancelled = await get_registration(db_session, alice_id, match_id)
        assert cancelled.status == RegistrationStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_leave_without_registration(self, db_session, make_user, make_match):
        match = await make_match(await make_user("carla"))
        alice = await make_user("alice")
        with pytest.raises(NotRegisteredError):
            await leave_match(db_session, alice.id, match.id)

    @pytest.mark.asyncio
    async def test_leave_twice(self, db_session, make_user, make_match):
        match = await make_match(await make_user("carla"))
        alice = await make_user("alice")
        await _join_committed(db_session, alice.id, match.id)
        await leave_match(db_session, alice.id, match.id)
        await db_session.commit()

        match_id = match.id
        with pytest.raises(AlreadyLeftError):
            await leave_match(db_session, alice.id, match_id)
        await db_session.rollback()
        assert (await get_match(db_session, match_id)).joined_count == 0

    @pytest.mark.asyncio
    async def test_leave_unknown_match(self, db_session, make_user):
        alice = await make_user("alice")
        with pytest.raises(NotFoundError):
            await leave_match(db_session, alice.id, 9999)

    @pytest.mark.asyncio
    async def test_creator_leave_deletes_match_registrations_and_feedback(self, db_session, make_user, make_match):
        creator = await make_user("carla")
        alice = await make_user("alice")
        match = await make_match(creator)
        match_id = match.id
        await _join_committed(db_session, creator.id, match_id)
        await _join_committed(db_session, alice.id, match_id)
        await create_feedback(db_session, alice.id, creator.id, match_id, Level.ADVANCED)
        await create_feedback(db_session, creator.id, alice.id, match_id, Level.BEGINNER)
        await db_session.commit()

        await leave_match(db_session, creator.id, match_id)
        await db_session.commit()

        with pytest.raises(NotFoundError):
            await get_match(db_session, match_id)
        remaining = await db_session.execute(
            select(func.count(Registration.id)).where(Registration.match_id == match_id)
        )
        assert remaining.scalar_one() == 0
        assert await list_feedback_for_match(db_session, match_id) == []

    @pytest.mark.asyncio
    async def test_creator_without_registration_can_delete(self, db_session, make_user, make_match):
        creator = await make_user("carla")
        match = await make_match(creator)
        match_id = match.id

        await leave_match(db_session, creator.id, match_id)
        await db_session.commit()

        with pytest.raises(NotFoundError):
            await get_match(db_session, match_id)

    @pytest.mark.asyncio
    async def test_creator_leave_clears_levels_rated_only_there(self, db_session, make_user, make_match):
        creator = await make_user("carla")
        bob = await make_user("bob")
        match = await make_match(creator)
        match_id, creator_id, bob_id = match.id, creator.id, bob.id
        await _join_committed(db_session, creator_id, match_id)
        await _join_committed(db_session, bob_id, match_id)
        await create_feedback(db_session, creator_id, bob_id, match_id, Level.PROFESSIONAL)
        await db_session.commit()
        assert (await get_user(db_session, bob_id)).perceived_level == Level.PROFESSIONAL

        await leave_match(db_session, creator_id, match_id)
        await db_session.commit()

        assert (await get_user(db_session, bob_id)).perceived_level is None

    @pytest.mark.asyncio
    async def test_creator_leave_keeps_feedback_from_other_matches(self, db_session, make_user, make_match):
        creator = await make_user("carla")
        alice = await make_user("alice")
        bob = await make_user("bob")
        deleted = await make_match(creator)
        kept = await make_match(alice)
        deleted_id, kept_id = deleted.id, kept.id
        creator_id, alice_id, bob_id = creator.id, alice.id, bob.id
        await _join_committed(db_session, creator_id, deleted_id)
        await create_feedback(db_session, creator_id, bob_id, deleted_id, Level.PROFESSIONAL)
        await create_feedback(db_session, alice_id, bob_id, kept_id, Level.BEGINNER)
        await db_session.commit()
        assert (await get_user(db_session, bob_id)).perceived_level == Level.ADVANCED

        await leave_match(db_session, creator_id, deleted_id)
        await db_session.commit()

        assert (await get_user(db_session, bob_id)).perceived_level == Level.BEGINNER
        assert len(await list_feedback_for_match(db_session, kept_id)) == 1
