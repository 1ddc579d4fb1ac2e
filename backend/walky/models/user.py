"""
User Model - Walkie-talkie accounts

Key Fields:
- `username`: stored lower-cased, so uniqueness and lookups are case-insensitive
- `device_id`: opaque client-supplied identifier, never verified
- `latitude` / `longitude`: last reported location (drives channel auto-join)
- `is_online`: mirrored from the live connection registry for status reads
"""
from sqlalchemy import Column, String, DateTime, Boolean, Float
from datetime import datetime
import uuid

from .database import Base


class User(Base):
    """Registered walkie-talkie user"""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    username = Column(String(64), unique=True, nullable=False, index=True)
    device_id = Column(String(255), nullable=False)

    # Last known location
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    location_updated_at = Column(DateTime, nullable=True)

    # Online status (mirror of live connections, not authoritative)
    is_online = Column(Boolean, default=False, index=True)
    last_seen = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def set_offline(self):
        """Mark user as offline"""
        self.is_online = False
        self.last_seen = datetime.utcnow()

    def __repr__(self):
        return f"<User {self.username}>"
