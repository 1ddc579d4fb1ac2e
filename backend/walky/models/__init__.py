"""
Database Models Package

Tables:
1. users - Accounts, last known location, online mirror
2. friendships - Friend requests and accepted friendships
3. location_channels - Geofenced channels
4. channel_participants - Channel membership (also group-call membership)
5. active_calls - Live 1:1 and group calls
"""

from .database import (
    engine,
    AsyncSessionLocal,
    Base,
    init_db,
    reset_db,
    get_db,
)

from .user import User
from .friendship import Friendship, FriendshipStatus
from .location_channel import LocationChannel
from .channel_participant import ChannelParticipant
from .call import Call, CallStatus

__all__ = [
    # Database utilities
    "engine",
    "AsyncSessionLocal",
    "Base",
    "init_db",
    "reset_db",
    "get_db",

    # Models
    "User",
    "Friendship",
    "FriendshipStatus",
    "LocationChannel",
    "ChannelParticipant",
    "Call",
    "CallStatus",
]
