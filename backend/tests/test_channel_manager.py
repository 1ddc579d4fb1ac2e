import pytest
from sqlalchemy.exc import OperationalError

from tests.helpers import connect, make_user
from walky.services.core.repositories import ChannelRepository, UserRepository, store_operation


def _failing_for(monkeypatch, method_name, broken_channel_id):
    """Make one repository method fail with a driver error for a single channel."""
    original = getattr(ChannelRepository, method_name)

    @store_operation
    async def flaky(self, channel_id, user_id):
        if channel_id == broken_channel_id:
            raise OperationalError("INSERT INTO channel_participants", {}, Exception("disk I/O error"))
        return await original(self, channel_id, user_id)

    monkeypatch.setattr(ChannelRepository, method_name, flaky)


@pytest.mark.asyncio
async def test_failed_auto_join_does_not_stop_other_channels(hub, async_db, monkeypatch):
    owner = await make_user(async_db, "owner")
    walker = await make_user(async_db, "walker")
    async with async_db() as db:
        channels = ChannelRepository(db)
        broken = await channels.create_location_channel("Broken", 40.0, -73.0, 1.0, created_by=owner.id)
        working = await channels.create_location_channel("Working", 40.001, -73.0, 1.0, created_by=owner.id)
        await channels.join_channel(working.id, owner.id)
    _, owner_ws = await connect(hub.registry, owner.id)

    _failing_for(monkeypatch, "join_channel", broken.id)

    async with async_db() as db:
        # Loaded in the same session the rollback expires, as on the REST path
        user = await UserRepository(db).get_user_by_id(walker.id)
        result = await hub.channels.update_location(db, user, 40.0, -73.0)

    assert [c.id for c in result.joined] == [working.id]
    assert [c.name for c in result.joined] == ["Working"]
    assert result.left == []
    assert owner_ws.of_type("user-joined-channel") == [{
        "type": "user-joined-channel",
        "userId": walker.id,
        "username": "walker",
        "channelId": working.id,
    }]

    async with async_db() as db:
        assert await ChannelRepository(db).get_channel_participant_ids(broken.id) == []


@pytest.mark.asyncio
async def test_failed_auto_leave_does_not_stop_other_channels(hub, async_db, monkeypatch):
    walker = await make_user(async_db, "walker")
    async with async_db() as db:
        channels = ChannelRepository(db)
        stuck = await channels.create_location_channel("Stuck", 40.0, -73.0, 1.0)
        other = await channels.create_location_channel("Other", 40.001, -73.0, 1.0)
        await channels.join_channel(stuck.id, walker.id)
        await channels.join_channel(other.id, walker.id)

    _failing_for(monkeypatch, "leave_channel", stuck.id)

    async with async_db() as db:
        user = await UserRepository(db).get_user_by_id(walker.id)
        result = await hub.channels.update_location(db, user, 41.0, -73.0)

    assert [c.id for c in result.left] == [other.id]
    assert result.joined == []
    async with async_db() as db:
        remaining = await ChannelRepository(db).get_user_channels(walker.id)
    assert [c.id for c, _ in remaining] == [stuck.id]
