import asyncio
import sys
import os

# Add backend to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from walky.models import init_db


async def create_tables():
    """Create all database tables"""
    print("Creating database tables...")
    print("Tables to create:")
    print("  - users")
    print("  - friendships")
    print("  - location_channels")
    print("  - channel_participants")
    print("  - active_calls")

    await init_db()

    print("✅ All tables created successfully!")


if __name__ == "__main__":
    asyncio.run(create_tables())
