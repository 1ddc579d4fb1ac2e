"""
Friend Service - Friend requests and friendships

Encapsulates logic for:
- Sending / accepting / rejecting friend requests
- Listing friends and pending requests
- Unfriending (either direction)

A pair of users has at most one friendship row, whichever side sent the
request, so every lookup goes through the direction-agnostic repository
queries. Notifications go out after the commit and are best-effort.
"""
from typing import List, Tuple, TYPE_CHECKING
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from walky.models.friendship import Friendship, FriendshipStatus
from walky.models.user import User
from walky.services.core.repositories import FriendshipRepository, UserRepository
from walky.services.exceptions import (
    AlreadyFriendsError,
    FriendRequestNotFoundError,
    InvalidArgumentError,
    RequestAlreadySentError,
    SelfFriendError,
    UserNotFoundError,
)

if TYPE_CHECKING:
    from walky.services.connection import PresenceRegistry

logger = logging.getLogger(__name__)


class FriendService:
    """Friend requests with live notifications."""

    def __init__(self, registry: "PresenceRegistry"):
        self.registry = registry

    async def send_friend_request(self, db: AsyncSession, requester: User, friend_username: str) -> Friendship:
        """
        Raises:
            InvalidArgumentError, UserNotFoundError, SelfFriendError,
            AlreadyFriendsError, RequestAlreadySentError
        """
        if not friend_username:
            raise InvalidArgumentError("Friend username required")

        friend = await UserRepository(db).get_user_by_username(friend_username)
        if not friend:
            raise UserNotFoundError("User not found")
        if friend.id == requester.id:
            raise SelfFriendError("Cannot add yourself as friend")

        friendships = FriendshipRepository(db)
        existing = await friendships.get_friendship_between(requester.id, friend.id)
        if existing:
            if existing.status == FriendshipStatus.ACCEPTED:
                raise AlreadyFriendsError("Already friends")
            raise RequestAlreadySentError("Friend request already sent")

        friendship = await friendships.create_friend_request(requester.id, friend.id)
        logger.info(f"[Friends] Request {requester.username} -> {friend.username} ({friendship.id})")

        await self.registry.emit(friend.id, "friend-request-received", {
            "friendshipId": friendship.id,
            "fromUser": {"id": requester.id, "username": requester.username},
        })
        return friendship

    async def _pending_request_to(self, db: AsyncSession, friendship_id: str, user: User) -> Friendship:
        friendship = await FriendshipRepository(db).get_friendship_by_id(friendship_id)
        if (
            not friendship
            or friendship.friend_id != user.id
            or friendship.status != FriendshipStatus.PENDING
        ):
            raise FriendRequestNotFoundError("Friend request not found")
        return friendship

    async def accept_request(self, db: AsyncSession, friendship_id: str, user: User) -> None:
        """Only the target of a pending request may accept it."""
        friendship = await self._pending_request_to(db, friendship_id, user)
        requester_id = friendship.user_id

        if not await FriendshipRepository(db).accept_friend_request(friendship_id):
            raise FriendRequestNotFoundError("Friend request not found")
        logger.info(f"[Friends] {user.username} accepted request {friendship_id}")

        requester = await UserRepository(db).get_user_by_id(requester_id)
        await self.registry.emit(requester_id, "friend-request-accepted", {
            "friendshipId": friendship_id,
            "accepter": {"id": user.id, "username": user.username},
        })
        if requester:
            await self.registry.emit(user.id, "friendship-updated", {
                "friendshipId": friendship_id,
                "friend": {"id": requester.id, "username": requester.username},
                "status": FriendshipStatus.ACCEPTED,
            })

    async def reject_request(self, db: AsyncSession, friendship_id: str, user: User) -> None:
        """Only the target of a pending request may reject it. The row is deleted."""
        friendship = await self._pending_request_to(db, friendship_id, user)
        requester_id = friendship.user_id

        if not await FriendshipRepository(db).reject_friend_request(friendship_id):
            raise FriendRequestNotFoundError("Friend request not found")
        logger.info(f"[Friends] {user.username} rejected request {friendship_id}")

        await self.registry.emit(requester_id, "friend-request-rejected", {"friendshipId": friendship_id})

    async def remove_friend(self, db: AsyncSession, user: User, friend_id: str) -> bool:
        """Unfriend, whichever side sent the original request."""
        removed = await FriendshipRepository(db).remove_friendship(user.id, friend_id)
        logger.info(f"[Friends] {user.username} removed {friend_id} (row deleted: {removed})")

        await self.registry.emit(friend_id, "friendship-updated", {
            "status": "removed",
            "userId": user.id,
        })
        return removed

    async def get_friends(self, db: AsyncSession, user: User) -> List[User]:
        return await FriendshipRepository(db).get_friends_of(user.id)

    async def get_requests(self, db: AsyncSession, user: User) -> List[Tuple[Friendship, User]]:
        return await FriendshipRepository(db).get_friend_requests_to(user.id)
