"""
Relay Hub

Builds the relay core around one PresenceRegistry. Created once per
application (see walky.main) and shared by the REST routes and every
WebSocket session; components receive the registry explicitly instead of
importing a module-level instance.
"""
from typing import Callable, Optional

from walky.services.audio.relay import AudioRelay
from walky.services.call.service import CallCoordinator
from walky.services.connection import PresenceRegistry
from walky.services.friend_service import FriendService
from walky.services.location.channel_manager import GeofenceChannelManager
from walky.services.status_service import StatusService


class RelayHub:
    def __init__(
        self,
        session_factory: Optional[Callable] = None,
        status_service: Optional[StatusService] = None
    ):
        self.status_service = status_service
        self.registry = PresenceRegistry(session_factory=session_factory, status_service=status_service)
        self.channels = GeofenceChannelManager(self.registry)
        self.calls = CallCoordinator(self.registry)
        self.audio = AudioRelay(self.registry)
        self.friends = FriendService(self.registry)

    @property
    def session_factory(self) -> Callable:
        return self.registry.session_factory

    async def close(self):
        await self.registry.close()
