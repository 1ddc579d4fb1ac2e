import pytest

from tests.helpers import connect, make_user
from walky.services.core.repositories import ChannelRepository, FriendshipRepository


async def _friends(session_factory, a, b):
    async with session_factory() as db:
        repo = FriendshipRepository(db)
        friendship = await repo.create_friend_request(a.id, b.id)
        await repo.accept_friend_request(friendship.id)


@pytest.mark.asyncio
async def test_register_route_and_multi_device(hub, async_db):
    alice = await make_user(async_db, "alice")
    registry = hub.registry

    assert registry.route(alice.id) == set()

    phone, _ = await connect(registry, alice.id)
    laptop, _ = await connect(registry, alice.id)

    assert registry.route(alice.id) == {phone, laptop}
    assert registry.is_online(alice.id)
    assert registry.get_total_connections() == 2

    assert await registry.unregister(phone) is False
    assert registry.is_online(alice.id)
    assert await registry.unregister(laptop) is True
    assert not registry.is_online(alice.id)


@pytest.mark.asyncio
async def test_presence_broadcast_to_friends_only_on_first_and_last(hub, async_db):
    alice = await make_user(async_db, "alice")
    bob = await make_user(async_db, "bob")
    carol = await make_user(async_db, "carol")
    await _friends(async_db, alice, bob)
    registry = hub.registry

    _, bob_ws = await connect(registry, bob.id)
    _, carol_ws = await connect(registry, carol.id)

    first, _ = await connect(registry, alice.id)
    second, _ = await connect(registry, alice.id)
    assert bob_ws.of_type("user-online") == [{"type": "user-online", "userId": alice.id}]
    assert carol_ws.of_type("user-online") == []

    await registry.unregister(first)
    assert bob_ws.of_type("user-offline") == []
    await registry.unregister(second)
    assert bob_ws.of_type("user-offline") == [{"type": "user-offline", "userId": alice.id}]


@pytest.mark.asyncio
async def test_unregister_is_safe_twice_and_when_never_registered(hub, async_db):
    alice = await make_user(async_db, "alice")
    registry = hub.registry
    conn, _ = await connect(registry, alice.id)

    assert await registry.unregister(conn) is True
    assert await registry.unregister(conn) is False

    from walky.services.connection import LiveConnection
    from tests.helpers import FakeWebSocket
    assert await registry.unregister(LiveConnection(FakeWebSocket())) is False


@pytest.mark.asyncio
async def test_reregister_same_connection_is_idempotent(hub, async_db):
    alice = await make_user(async_db, "alice")
    registry = hub.registry
    conn, _ = await connect(registry, alice.id)

    assert await registry.register(conn, alice.id) is False
    assert registry.get_total_connections() == 1


@pytest.mark.asyncio
async def test_emit_to_offline_user_is_silent(hub):
    await hub.registry.emit("nobody", "incoming-call", {"callId": "c1"})


@pytest.mark.asyncio
async def test_failing_connection_does_not_break_emit(hub, async_db):
    alice = await make_user(async_db, "alice")
    registry = hub.registry
    _, broken = await connect(registry, alice.id, fail=True)
    _, healthy = await connect(registry, alice.id)

    await registry.emit(alice.id, "call-ended", {"callId": "c1"})
    assert healthy.of_type("call-ended") == [{"type": "call-ended", "callId": "c1"}]


@pytest.mark.asyncio
async def test_emit_to_channel_excludes_actor_and_routes_members(hub, async_db):
    alice = await make_user(async_db, "alice")
    bob = await make_user(async_db, "bob")
    outsider = await make_user(async_db, "outsider")
    async with async_db() as db:
        channels = ChannelRepository(db)
        channel = await channels.create_location_channel("Park", 40.0, -73.0, 1.0)
        await channels.join_channel(channel.id, alice.id)
        await channels.join_channel(channel.id, bob.id)

    registry = hub.registry
    alice_conn, alice_ws = await connect(registry, alice.id)
    bob_conn, bob_ws = await connect(registry, bob.id)
    _, outsider_ws = await connect(registry, outsider.id)

    assert await registry.route_to_channel(channel.id) == {alice_conn, bob_conn}

    await registry.emit_to_channel(channel.id, "user-joined-channel", {"userId": alice.id}, exclude_user_id=alice.id)
    assert alice_ws.of_type("user-joined-channel") == []
    assert len(bob_ws.of_type("user-joined-channel")) == 1
    assert outsider_ws.of_type("user-joined-channel") == []
