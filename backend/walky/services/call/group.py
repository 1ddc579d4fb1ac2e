"""
Group Calls

A group call's roster is exactly the live membership of its location
channel; no per-call participant rows exist.

The "is there already a call" check and the insert are separate store
round-trips. Two near-simultaneous starts for one channel can therefore both
insert; reads then resolve to the most recent row.
"""
from typing import TYPE_CHECKING, Dict, Tuple
import logging
import time

from sqlalchemy.ext.asyncio import AsyncSession

from walky.models.user import User
from walky.services.core.repositories import CallRepository, ChannelRepository
from walky.services.exceptions import (
    CallNotFoundError,
    ChannelNotFoundError,
    NotChannelParticipantError,
)

if TYPE_CHECKING:
    from walky.services.connection import PresenceRegistry

logger = logging.getLogger(__name__)

GROUP_CALL_STARTED = "group-call-started"
GROUP_CALL_ALREADY_ACTIVE = "already-active"


def make_group_call_id(channel_id: str) -> str:
    return f"group_{channel_id}_{int(time.time() * 1000)}"


async def start_group_call(
    db: AsyncSession,
    registry: "PresenceRegistry",
    user: User,
    channel_id: str
) -> Tuple[str, str]:
    """
    Start (or find) the group call of a channel.

    Returns:
        (call_id, status) with status GROUP_CALL_STARTED or GROUP_CALL_ALREADY_ACTIVE

    Raises:
        ChannelNotFoundError, NotChannelParticipantError
    """
    channels = ChannelRepository(db)
    if not await channels.get_channel(channel_id):
        raise ChannelNotFoundError("Channel not found")
    if not await channels.is_participant(channel_id, user.id):
        raise NotChannelParticipantError("Not a participant of this channel")

    calls = CallRepository(db)
    existing = await calls.get_active_group_call(channel_id)
    if existing:
        logger.info(f"[GroupCall] Channel {channel_id} already has group call {existing.id}")
        return existing.id, GROUP_CALL_ALREADY_ACTIVE

    call = await calls.create_group_call(make_group_call_id(channel_id), channel_id, user.id)
    logger.info(f"[GroupCall] {user.username} started group call {call.id} in channel {channel_id}")

    await registry.emit_to_channel(channel_id, "group-call-started", {
        "callId": call.id,
        "channelId": channel_id,
        "startedBy": user.id,
        "startedByUsername": user.username,
    })
    return call.id, GROUP_CALL_STARTED


async def join_group_call(db: AsyncSession, user: User, call_id: str) -> Dict[str, str]:
    """
    Acknowledge a join. Membership is implied by the channel, nothing is written.

    Raises:
        CallNotFoundError if the call is missing or not a group call
    """
    call = await CallRepository(db).get_call(call_id)
    if not call or not call.is_group:
        raise CallNotFoundError("Group call not found")

    logger.info(f"[GroupCall] {user.username} joined group call {call_id}")
    return {"callId": call.id, "channelId": call.channel_id}
