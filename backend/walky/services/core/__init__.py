"""
Core Infrastructure Module

Repositories over the persistent store shared by every service.

Usage:
    from walky.services.core import CallRepository, ChannelRepository
"""

from walky.services.core.repositories import (
    UserRepository,
    FriendshipRepository,
    ChannelRepository,
    CallRepository,
)

__all__ = [
    "UserRepository",
    "FriendshipRepository",
    "ChannelRepository",
    "CallRepository",
]
