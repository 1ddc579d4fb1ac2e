"""
Connection Notifications

Fire-and-forget fan-out of server events to users' live connections:
- Single user / many users
- Every participant of a location channel
- Presence changes to accepted friends

Nothing here raises. A user with no live connections silently receives
nothing; lookup failures are logged and the event is dropped.
"""
from typing import Awaitable, Callable, Dict, Iterable, Optional, Set, Any, TYPE_CHECKING
import logging

from walky.services.core.repositories import ChannelRepository, FriendshipRepository
from walky.services.metrics import events_emitted

if TYPE_CHECKING:
    from .models import LiveConnection

logger = logging.getLogger(__name__)


def build_message(event: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": event, **payload}


async def emit(
    connections: Dict[str, Set["LiveConnection"]],
    user_id: str,
    event: str,
    payload: Dict[str, Any]
) -> None:
    """
    Write an event to every live connection of one user.

    Args:
        connections: user_id -> live connections
        user_id: Recipient
        event: Event name (becomes the message "type")
        payload: Event body
    """
    targets = list(connections.get(user_id, ()))
    if not targets:
        logger.debug(f"[Notify] {event} to {user_id} dropped: no live connections")
        return

    message = build_message(event, payload)
    for conn in targets:
        try:
            if await conn.send_json(message):
                events_emitted.labels(event=event).inc()
        except Exception as e:
            logger.error(f"[Notify] Error sending {event} to {user_id}: {e}")


async def emit_to_users(
    connections: Dict[str, Set["LiveConnection"]],
    user_ids: Iterable[str],
    event: str,
    payload: Dict[str, Any]
) -> None:
    """Emit the same event to several users, each once."""
    seen = set()
    for user_id in user_ids:
        if user_id in seen:
            continue
        seen.add(user_id)
        await emit(connections, user_id, event, payload)


async def emit_to_channel(
    connections: Dict[str, Set["LiveConnection"]],
    session_factory: Callable,
    channel_id: str,
    event: str,
    payload: Dict[str, Any],
    exclude_user_id: Optional[str] = None
) -> None:
    """
    Emit an event to every current participant of a channel.

    Membership is read from the store at call time, so late joiners are
    always included.
    """
    try:
        async with session_factory() as db:
            participant_ids = await ChannelRepository(db).get_channel_participant_ids(channel_id)
    except Exception as e:
        logger.error(f"[Notify] Could not resolve participants of channel {channel_id} for {event}: {e}")
        return

    recipients = [uid for uid in participant_ids if uid != exclude_user_id]
    await emit_to_users(connections, recipients, event, payload)


async def broadcast_presence(
    connections: Dict[str, Set["LiveConnection"]],
    session_factory: Callable,
    user_id: str,
    is_online: bool
) -> None:
    """
    Tell every accepted friend that user_id came online / went offline.
    """
    event = "user-online" if is_online else "user-offline"
    try:
        async with session_factory() as db:
            friends = await FriendshipRepository(db).get_friends_of(user_id)
    except Exception as e:
        logger.error(f"[Notify] Error loading friends of {user_id} for {event}: {e}")
        return

    await emit_to_users(connections, [friend.id for friend in friends], event, {"userId": user_id})
    logger.debug(f"[Notify] {event} for {user_id} sent to {len(friends)} friends")
