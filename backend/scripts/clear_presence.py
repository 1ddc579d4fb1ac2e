"""
Clear the Redis presence mirror and mark every user offline.

Use after a crash: live connections are gone, but `online:*` keys and
`users.is_online` may still say otherwise until the TTL runs out.
"""
import asyncio
import sys
import os

# Add backend to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import update

from walky.config.constants import PRESENCE_KEY_PREFIX
from walky.config.redis import get_redis, close_redis
from walky.models import AsyncSessionLocal, User


async def clear_presence():
    print("🧹 Clearing presence mirror...")
    redis = await get_redis()
    keys = await redis.keys(f"{PRESENCE_KEY_PREFIX}*")
    if keys:
        await redis.delete(*keys)
    print(f"✅ Removed {len(keys)} Redis key(s).")
    await close_redis()

    async with AsyncSessionLocal() as db:
        result = await db.execute(update(User).where(User.is_online == True).values(is_online=False))
        await db.commit()
    print(f"✅ Marked {result.rowcount} user(s) offline.")


if __name__ == "__main__":
    asyncio.run(clear_presence())
