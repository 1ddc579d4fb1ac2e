"""
Friendship Model - Who may call whom

One row per unordered pair. `user_id` is the requester and `friend_id` the
target; lookups must check both directions.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint
from datetime import datetime
import uuid

from .database import Base


class FriendshipStatus:
    PENDING = "pending"
    ACCEPTED = "accepted"


class Friendship(Base):
    """Friend request / accepted friendship between two users"""
    __tablename__ = "friendships"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Requester
    user_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)

    # Target of the request
    friend_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)

    status = Column(String(20), default=FriendshipStatus.PENDING, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint('user_id', 'friend_id', name='uq_friendship_pair'),
    )
