"""
Cleanup script for stuck calls in the database.

Calls are never timed out by the server: a call that nobody ended stays
`pending`/`connected` (1:1) or active (group) forever. This deletes every
active call row so users can start fresh ones.
"""
import asyncio
import sys
from pathlib import Path

# Add backend to path
backend_path = Path(__file__).parent.parent / "backend"
sys.path.insert(0, str(backend_path))

from sqlalchemy import delete, select
from walky.models.database import AsyncSessionLocal
from walky.models.call import Call


async def cleanup_active_calls():
    """Delete all active call rows."""
    print("🔍 Searching for active calls...")

    async with AsyncSessionLocal() as db:
        result = await db.execute(select(Call))
        calls = result.scalars().all()

        if not calls:
            print("✅ No active calls found. Database is clean!")
            return

        print(f"📞 Found {len(calls)} call(s):")
        for call in calls:
            kind = f"group (channel {call.channel_id})" if call.is_group else "1:1"
            print(f"  - Call ID: {call.id}")
            print(f"    Kind: {kind}")
            print(f"    Status: {call.status}")
            print(f"    Created: {call.created_at}")

        await db.execute(delete(Call))
        await db.commit()
        print(f"✅ Deleted {len(calls)} call(s).")


if __name__ == "__main__":
    asyncio.run(cleanup_active_calls())
