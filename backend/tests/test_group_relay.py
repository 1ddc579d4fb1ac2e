import pytest

from tests.helpers import connect, make_user
from walky.services.audio import LegacyBlobFrame, PcmFrame
from walky.services.call import GROUP_CALL_ALREADY_ACTIVE, GROUP_CALL_STARTED
from walky.services.core.repositories import CallRepository, ChannelRepository
from walky.services.exceptions import CallNotFoundError, NotChannelParticipantError

FRAME = PcmFrame(samples="AAD/fw==", sample_rate=16000, channel_count=1)


async def _channel_with(async_db, owner, *members):
    async with async_db() as db:
        repo = ChannelRepository(db)
        channel = await repo.create_location_channel("Square", 40.0, -73.0, 1.0, created_by=owner.id)
        for user in (owner, *members):
            await repo.join_channel(channel.id, user.id)
    return channel


@pytest.mark.asyncio
async def test_group_frames_reach_every_other_member(hub, async_db):
    x = await make_user(async_db, "xavier")
    y = await make_user(async_db, "yara")
    z = await make_user(async_db, "zoe")
    channel = await _channel_with(async_db, x, y, z)

    _, x_ws = await connect(hub.registry, x.id)
    _, y_ws = await connect(hub.registry, y.id)
    _, z_ws = await connect(hub.registry, z.id)

    async with async_db() as db:
        call_id, status = await hub.calls.start_group_call(db, x, channel.id)
    assert status == GROUP_CALL_STARTED
    # Every current participant is told, the starter included
    for ws in (x_ws, y_ws, z_ws):
        started = ws.of_type("group-call-started")
        assert [m["callId"] for m in started] == [call_id]
        assert started[0]["startedBy"] == x.id

    async with async_db() as db:
        reached = await hub.audio.relay(db, call_id, x.id, FRAME, speaker_name=x.username)
    assert reached == 2

    expected = {
        "type": "audio-data",
        "callId": call_id,
        "fromUserId": x.id,
        "speakerName": "xavier",
        "audioData": "AAD/fw==",
        "sampleRate": 16000,
        "channelCount": 1,
    }
    assert y_ws.of_type("audio-data") == [expected]
    assert z_ws.of_type("audio-data") == [expected]
    assert x_ws.of_type("audio-data") == []


@pytest.mark.asyncio
async def test_late_joiner_receives_later_frames(hub, async_db):
    x = await make_user(async_db, "xavier")
    w = await make_user(async_db, "wendy")
    channel = await _channel_with(async_db, x)
    _, w_ws = await connect(hub.registry, w.id)

    async with async_db() as db:
        call_id, _ = await hub.calls.start_group_call(db, x, channel.id)
        assert await hub.audio.relay(db, call_id, x.id, FRAME) == 0

    async with async_db() as db:
        await hub.channels.join(db, w, channel.id)
        ack = await hub.calls.join_group_call(db, w, call_id)
    assert ack == {"callId": call_id, "channelId": channel.id}

    async with async_db() as db:
        assert await hub.audio.relay(db, call_id, x.id, LegacyBlobFrame(blob="b64blob")) == 1
    frames = w_ws.of_type("audio-data")
    assert len(frames) == 1
    assert frames[0]["audioBlob"] == "b64blob"
    assert frames[0]["speakerName"] == "xavier"


@pytest.mark.asyncio
async def test_frames_from_non_members_and_missing_calls_are_dropped(hub, async_db):
    x = await make_user(async_db, "xavier")
    y = await make_user(async_db, "yara")
    outsider = await make_user(async_db, "olga")
    channel = await _channel_with(async_db, x, y)
    _, y_ws = await connect(hub.registry, y.id)

    async with async_db() as db:
        call_id, _ = await hub.calls.start_group_call(db, x, channel.id)
        assert await hub.audio.relay(db, call_id, outsider.id, FRAME) == 0
        assert await hub.audio.relay(db, "group_missing_1", x.id, FRAME) == 0
    assert y_ws.of_type("audio-data") == []


@pytest.mark.asyncio
async def test_member_who_left_stops_receiving(hub, async_db):
    x = await make_user(async_db, "xavier")
    y = await make_user(async_db, "yara")
    channel = await _channel_with(async_db, x, y)
    _, y_ws = await connect(hub.registry, y.id)

    async with async_db() as db:
        call_id, _ = await hub.calls.start_group_call(db, x, channel.id)
        await hub.channels.leave(db, y, channel.id)
        assert await hub.audio.relay(db, call_id, x.id, FRAME) == 0
    assert y_ws.of_type("audio-data") == []


@pytest.mark.asyncio
async def test_start_is_idempotent_per_channel(hub, async_db):
    x = await make_user(async_db, "xavier")
    y = await make_user(async_db, "yara")
    outsider = await make_user(async_db, "olga")
    channel = await _channel_with(async_db, x, y)

    async with async_db() as db:
        first, status = await hub.calls.start_group_call(db, x, channel.id)
        second, again = await hub.calls.start_group_call(db, y, channel.id)
        assert status == GROUP_CALL_STARTED
        assert again == GROUP_CALL_ALREADY_ACTIVE
        assert first == second
        assert first.startswith(f"group_{channel.id}_")

        with pytest.raises(NotChannelParticipantError):
            await hub.calls.start_group_call(db, outsider, channel.id)
        with pytest.raises(CallNotFoundError):
            await hub.calls.join_group_call(db, x, "group_missing_1")


@pytest.mark.asyncio
async def test_ending_group_call_notifies_other_members(hub, async_db):
    x = await make_user(async_db, "xavier")
    y = await make_user(async_db, "yara")
    z = await make_user(async_db, "zoe")
    channel = await _channel_with(async_db, x, y, z)
    _, x_ws = await connect(hub.registry, x.id)
    _, y_ws = await connect(hub.registry, y.id)
    _, z_ws = await connect(hub.registry, z.id)

    async with async_db() as db:
        call_id, _ = await hub.calls.start_group_call(db, x, channel.id)
        assert await hub.calls.end(db, y, call_id) is True
        assert await CallRepository(db).get_call(call_id) is None

    ended = {"type": "call-ended", "callId": call_id, "endedBy": y.id, "endedByUsername": "yara"}
    assert x_ws.of_type("call-ended") == [ended]
    assert z_ws.of_type("call-ended") == [ended]
    assert y_ws.of_type("call-ended") == []

    async with async_db() as db:
        assert await hub.audio.relay(db, call_id, x.id, FRAME) == 0
        assert await hub.calls.end(db, y, call_id, strict=False) is False
