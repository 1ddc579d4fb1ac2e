"""
Call Addressing

Who "the other side" of a call is for a given acting user:
- 1:1 call: the other party (caller <-> callee)
- Group call: every current participant of the call's channel except the actor

Group recipients are always recomputed from channel membership, never cached
on the call row, so late joiners receive subsequent events.
"""
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from walky.models.call import Call
from walky.services.core.repositories import ChannelRepository


def other_party(call: Call, actor_id: str) -> Optional[str]:
    """Other participant of a 1:1 call, or None if actor is not a participant."""
    if actor_id == call.callee_id:
        return call.caller_id
    if actor_id == call.caller_id:
        return call.callee_id
    return None


async def can_act_on(db: AsyncSession, call: Call, actor_id: str) -> bool:
    """
    True if actor may act on the call.

    Group calls accept the starter and any current channel participant.
    """
    if not call.is_group:
        return call.is_participant(actor_id)
    if actor_id == call.caller_id:
        return True
    return await ChannelRepository(db).is_participant(call.channel_id, actor_id)


async def recipients_for(db: AsyncSession, call: Call, actor_id: str) -> List[str]:
    """User ids that should receive an event the actor causes on this call."""
    if not call.is_group:
        target = other_party(call, actor_id)
        return [target] if target else []

    participant_ids = await ChannelRepository(db).get_channel_participant_ids(call.channel_id)
    return [uid for uid in participant_ids if uid != actor_id]
