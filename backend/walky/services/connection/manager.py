"""
Presence & Session Registry

In-memory map of user id -> live connections. This is the only place that
knows whether a user is currently reachable; it is never persisted and is
rebuilt from connection events after a restart.

Mutations are plain dict operations with no await in between, so concurrent
disconnects cannot observe a half-updated map. Presence broadcasts and the
Redis mirror happen after the map is updated.
"""
from typing import Callable, Dict, List, Optional, Set, Any, TYPE_CHECKING
import logging

from walky.models import database
from walky.services.core.repositories import ChannelRepository
from walky.services.metrics import live_connections_gauge, online_users_gauge

from .models import LiveConnection
from .notifications import (
    emit as _emit,
    emit_to_users as _emit_to_users,
    emit_to_channel as _emit_to_channel,
    broadcast_presence as _broadcast_presence,
)

if TYPE_CHECKING:
    from walky.services.status_service import StatusService

logger = logging.getLogger(__name__)


class PresenceRegistry:
    """
    Tracks live connections per user and addresses events to them.

    One instance is created at application start and handed to every
    component that needs to reach users.
    """

    def __init__(
        self,
        session_factory: Optional[Callable] = None,
        status_service: Optional["StatusService"] = None
    ):
        # user_id -> live connections (one per device)
        self._connections: Dict[str, Set[LiveConnection]] = {}
        self._session_factory = session_factory
        self.status_service = status_service

    @property
    def session_factory(self) -> Callable:
        return self._session_factory or database.AsyncSessionLocal

    # === Core Connection Methods ===

    async def register(self, connection: LiveConnection, user_id: str) -> bool:
        """
        Associate a live connection with a user.

        Re-registering the same connection under the same user is a no-op
        refresh; registering it under a different user moves it.

        Returns:
            True if this made the user reachable (first live connection)
        """
        if connection.user_id and connection.user_id != user_id:
            await self.unregister(connection)

        user_connections = self._connections.setdefault(user_id, set())
        came_online = not user_connections
        user_connections.add(connection)
        connection.user_id = user_id
        self._update_gauges()

        logger.info(f"[Presence] User {user_id} registered ({len(user_connections)} live connection(s))")

        if came_online:
            await self._mark_status(user_id, True)
            await self.broadcast_presence(user_id, True)
        return came_online

    async def unregister(self, connection: LiveConnection) -> bool:
        """
        Drop a connection (called on disconnect).

        Returns:
            True if the user has no live connections left
        """
        user_id = connection.user_id
        if user_id is None:
            return False

        user_connections = self._connections.get(user_id)
        if user_connections is None or connection not in user_connections:
            return False

        user_connections.discard(connection)
        went_offline = not user_connections
        if went_offline:
            self._connections.pop(user_id, None)
        self._update_gauges()

        logger.info(f"[Presence] Connection {connection.connection_id[:8]} of user {user_id} unregistered")

        if went_offline:
            await self._mark_status(user_id, False)
            await self.broadcast_presence(user_id, False)
        return went_offline

    # === Routing ===

    def route(self, user_id: str) -> Set[LiveConnection]:
        """Live connections of a user. Empty set means unreachable."""
        return set(self._connections.get(user_id, ()))

    async def route_to_channel(self, channel_id: str) -> Set[LiveConnection]:
        """Live connections of every current participant of a channel."""
        async with self.session_factory() as db:
            participant_ids = await ChannelRepository(db).get_channel_participant_ids(channel_id)
        routed: Set[LiveConnection] = set()
        for user_id in participant_ids:
            routed |= self.route(user_id)
        return routed

    # === Notification Methods (delegates to notifications module) ===

    async def emit(self, user_id: str, event: str, payload: Dict[str, Any]) -> None:
        await _emit(self._connections, user_id, event, payload)

    async def emit_to_users(self, user_ids: List[str], event: str, payload: Dict[str, Any]) -> None:
        await _emit_to_users(self._connections, user_ids, event, payload)

    async def emit_to_channel(
        self,
        channel_id: str,
        event: str,
        payload: Dict[str, Any],
        exclude_user_id: Optional[str] = None
    ) -> None:
        await _emit_to_channel(
            self._connections, self.session_factory, channel_id, event, payload, exclude_user_id
        )

    async def broadcast_presence(self, user_id: str, is_online: bool) -> None:
        await _broadcast_presence(self._connections, self.session_factory, user_id, is_online)

    # === Query Methods ===

    def is_online(self, user_id: str) -> bool:
        return bool(self._connections.get(user_id))

    def online_user_ids(self) -> List[str]:
        return list(self._connections.keys())

    def get_online_user_count(self) -> int:
        return len(self._connections)

    def get_total_connections(self) -> int:
        return sum(len(conns) for conns in self._connections.values())

    async def close(self):
        """Forget every connection (shutdown). No presence broadcast is sent."""
        self._connections.clear()
        self._update_gauges()

    # === Internal ===

    async def _mark_status(self, user_id: str, is_online: bool):
        if self.status_service is None:
            return
        try:
            if is_online:
                await self.status_service.set_user_online(user_id)
            else:
                await self.status_service.set_user_offline(user_id)
        except Exception as e:
            logger.error(f"[Presence] Status mirror update failed for {user_id}: {e}")

    def _update_gauges(self):
        online_users_gauge.set(self.get_online_user_count())
        live_connections_gauge.set(self.get_total_connections())
