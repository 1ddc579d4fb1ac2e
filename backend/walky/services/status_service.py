"""
Status Mirror Service - Online/Offline persistence

The in-memory PresenceRegistry decides who is reachable. This service only
mirrors that state so it can be read cheaply and survives in the database:
- Redis key `online:{user_id}` with a heartbeat TTL
- `users.is_online` / `users.last_seen` columns

How it works:
1. First live connection of a user -> set_user_online()
2. Client sends heartbeat every 30s -> heartbeat() refreshes the Redis TTL
3. Last connection closes -> set_user_offline()
4. If the process dies without a clean disconnect, the Redis key expires and
   the background cleanup task flips `users.is_online` back to False
"""
import asyncio
import logging
from typing import List, Optional

from sqlalchemy import select

from walky.config.constants import (
    PRESENCE_CLEANUP_INTERVAL_SEC,
    PRESENCE_HEARTBEAT_TTL_SEC,
    PRESENCE_KEY_PREFIX,
)
from walky.config.redis import get_redis
from walky.models import database
from walky.models.user import User
from walky.services.core.repositories import UserRepository

logger = logging.getLogger(__name__)


class StatusService:
    """Mirror of user presence into Redis and the users table."""

    HEARTBEAT_TTL = PRESENCE_HEARTBEAT_TTL_SEC
    CLEANUP_INTERVAL = PRESENCE_CLEANUP_INTERVAL_SEC

    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    @staticmethod
    def _key(user_id: str) -> str:
        return f"{PRESENCE_KEY_PREFIX}{user_id}"

    async def set_user_online(self, user_id: str):
        if not self.enabled:
            return
        redis = await get_redis()
        await redis.set(self._key(user_id), "1", ex=self.HEARTBEAT_TTL)

        async with database.AsyncSessionLocal() as db:
            await UserRepository(db).set_online(user_id, True)
        logger.info(f"[Status] User {user_id} marked online")

    async def set_user_offline(self, user_id: str):
        if not self.enabled:
            return
        redis = await get_redis()
        await redis.delete(self._key(user_id))

        async with database.AsyncSessionLocal() as db:
            await UserRepository(db).set_online(user_id, False)
        logger.info(f"[Status] User {user_id} marked offline")

    async def heartbeat(self, user_id: str):
        """Refresh the Redis TTL so the mirror keeps the user online."""
        if not self.enabled:
            return
        redis = await get_redis()
        refreshed = await redis.expire(self._key(user_id), self.HEARTBEAT_TTL)
        if not refreshed:
            # Key expired between heartbeats (e.g. Redis restart)
            await redis.set(self._key(user_id), "1", ex=self.HEARTBEAT_TTL)

    async def is_user_online(self, user_id: str) -> bool:
        redis = await get_redis()
        return bool(await redis.exists(self._key(user_id)))

    async def get_online_users(self) -> List[str]:
        redis = await get_redis()
        keys = await redis.keys(f"{PRESENCE_KEY_PREFIX}*")
        return [key[len(PRESENCE_KEY_PREFIX):] for key in keys]

    async def reconcile_once(self) -> int:
        """
        Mark users offline in the DB whose Redis key has expired.

        Returns:
            Number of users flipped to offline
        """
        redis = await get_redis()
        flipped = 0
        async with database.AsyncSessionLocal() as db:
            result = await db.execute(select(User).where(User.is_online == True))
            for user in result.scalars().all():
                if not await redis.exists(self._key(user.id)):
                    user.set_offline()
                    flipped += 1
                    logger.info(f"[Status] Cleanup: user {user.id} ({user.username}) marked offline")
            await db.commit()
        return flipped

    async def cleanup_offline_users(self, interval: Optional[float] = None):
        """Background loop around reconcile_once(); runs until cancelled."""
        logger.info("[Status] Starting status cleanup background task")
        while True:
            try:
                await self.reconcile_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"[Status] Cleanup error: {e}")
            await asyncio.sleep(interval or self.CLEANUP_INTERVAL)
