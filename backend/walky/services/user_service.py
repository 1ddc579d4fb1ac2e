"""
User Service - Registration, lookup and search
"""
from typing import List, Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from walky.config.constants import USERNAME_MAX_LENGTH, USERNAME_MIN_LENGTH, USER_SEARCH_LIMIT
from walky.models.user import User
from walky.services.core.repositories import UserRepository
from walky.services.exceptions import InvalidArgumentError, UserNotFoundError

logger = logging.getLogger(__name__)


class UserService:
    """Service for user operations."""

    @staticmethod
    async def register(db: AsyncSession, username: str, device_id: str) -> User:
        """
        Create a user. Usernames are unique case-insensitively.

        Raises:
            InvalidArgumentError, UsernameTakenError
        """
        username = (username or "").strip()
        if not username or not device_id:
            raise InvalidArgumentError("Username and deviceId required")
        if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
            raise InvalidArgumentError(
                f"Username must be {USERNAME_MIN_LENGTH}-{USERNAME_MAX_LENGTH} characters"
            )

        user = await UserRepository(db).create_user(username, device_id)
        logger.info(f"[Users] Registered {user.username} (ID: {user.id})")
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: str) -> Optional[User]:
        return await UserRepository(db).get_user_by_id(user_id)

    @staticmethod
    async def get_or_fail(db: AsyncSession, user_id: str) -> User:
        user = await UserRepository(db).get_user_by_id(user_id)
        if not user:
            raise UserNotFoundError("User not found")
        return user

    @staticmethod
    async def search(
        db: AsyncSession,
        query: str,
        exclude_user_id: Optional[str] = None,
        limit: int = USER_SEARCH_LIMIT
    ) -> List[User]:
        """Substring search on usernames, excluding the caller."""
        query = (query or "").strip()
        if not query:
            raise InvalidArgumentError("Username query required")
        return await UserRepository(db).search_users_by_username_substring(
            query, exclude_user_id=exclude_user_id, limit=limit
        )


# Singleton instance
user_service = UserService()
