import asyncio

import pytest

from tests.helpers import make_user
from walky.models.friendship import FriendshipStatus
from walky.services.core.repositories import (
    CallRepository,
    ChannelRepository,
    FriendshipRepository,
    UserRepository,
)
from walky.services.exceptions import RequestAlreadySentError, UsernameTakenError
from walky.services.location.geo import haversine_km


@pytest.mark.asyncio
async def test_usernames_are_case_insensitive(async_db):
    await make_user(async_db, "Alice")
    async with async_db() as db:
        users = UserRepository(db)
        assert (await users.get_user_by_username("ALICE")).username == "alice"
        with pytest.raises(UsernameTakenError):
            await users.create_user("aLiCe", "other-device")


@pytest.mark.asyncio
async def test_search_excludes_caller(async_db):
    alice = await make_user(async_db, "alice")
    await make_user(async_db, "alicia")
    await make_user(async_db, "bob")
    async with async_db() as db:
        found = await UserRepository(db).search_users_by_username_substring("ALI", exclude_user_id=alice.id)
    assert [u.username for u in found] == ["alicia"]


@pytest.mark.asyncio
async def test_friendship_lookup_is_direction_independent(async_db):
    a = await make_user(async_db, "a")
    b = await make_user(async_db, "b")
    async with async_db() as db:
        repo = FriendshipRepository(db)
        request = await repo.create_friend_request(a.id, b.id)

        ab = await repo.get_friendship_between(a.id, b.id)
        ba = await repo.get_friendship_between(b.id, a.id)
        assert ab.id == ba.id == request.id

        assert [f.id for f, _ in await repo.get_friend_requests_to(b.id)] == [request.id]
        assert await repo.get_friend_requests_to(a.id) == []
        assert await repo.get_friends_of(a.id) == []

        assert await repo.accept_friend_request(request.id)
        assert [u.id for u in await repo.get_friends_of(a.id)] == [b.id]
        assert [u.id for u in await repo.get_friends_of(b.id)] == [a.id]
        assert (await repo.get_friendship_between(b.id, a.id)).status == FriendshipStatus.ACCEPTED

        assert await repo.remove_friendship(b.id, a.id)
        assert await repo.get_friendship_between(a.id, b.id) is None


@pytest.mark.asyncio
async def test_duplicate_request_same_direction_conflicts(async_db):
    a = await make_user(async_db, "a")
    b = await make_user(async_db, "b")
    async with async_db() as db:
        repo = FriendshipRepository(db)
        await repo.create_friend_request(a.id, b.id)
        with pytest.raises(RequestAlreadySentError):
            await repo.create_friend_request(a.id, b.id)


@pytest.mark.asyncio
async def test_join_is_idempotent_and_refreshes_joined_at(async_db):
    user = await make_user(async_db)
    async with async_db() as db:
        channels = ChannelRepository(db)
        channel = await channels.create_location_channel("Cafe", 40.0, -73.0, 0.5)

        first = await channels.join_channel(channel.id, user.id)
        first_joined_at = first.joined_at
        await asyncio.sleep(0.01)
        await channels.join_channel(channel.id, user.id)

        participants = await channels.get_channel_participants(channel.id)
        assert len(participants) == 1
        assert participants[0][1] > first_joined_at

        assert await channels.leave_channel(channel.id, user.id)
        assert not await channels.leave_channel(channel.id, user.id)
        assert await channels.get_channel_participants(channel.id) == []


@pytest.mark.asyncio
async def test_nearby_channels_sorted_by_distance(async_db):
    async with async_db() as db:
        channels = ChannelRepository(db)
        far = await channels.create_location_channel("Far", 40.008, -73.0, 1.0)
        near = await channels.create_location_channel("Near", 40.001, -73.0, 1.0)
        await channels.create_location_channel("Elsewhere", 41.0, -73.0, 1.0)

        nearby = await channels.nearby_channels(40.0, -73.0, 1.0)
    assert [c.id for c, _ in nearby] == [near.id, far.id]
    assert nearby[0][1] < nearby[1][1]


@pytest.mark.asyncio
async def test_active_group_call_is_most_recent(async_db):
    user = await make_user(async_db)
    async with async_db() as db:
        channel = await ChannelRepository(db).create_location_channel("Square", 40.0, -73.0, 1.0)
        calls = CallRepository(db)
        assert await calls.get_active_group_call(channel.id) is None

        await calls.create_group_call(f"group_{channel.id}_1", channel.id, user.id)
        await asyncio.sleep(0.01)
        await calls.create_group_call(f"group_{channel.id}_2", channel.id, user.id)

        active = await calls.get_active_group_call(channel.id)
    assert active.id == f"group_{channel.id}_2"
    assert active.is_group


@pytest.mark.asyncio
async def test_channel_exactly_on_radius_due_north_is_nearby(async_db):
    async with async_db() as db:
        channels = ChannelRepository(db)
        edge = await channels.create_location_channel("Edge", 40.009, -73.0, 1.0)
        radius = haversine_km(40.0, -73.0, 40.009, -73.0)

        nearby = await channels.nearby_channels(40.0, -73.0, radius)
    assert [c.id for c, _ in nearby] == [edge.id]
    assert nearby[0][1] == radius
