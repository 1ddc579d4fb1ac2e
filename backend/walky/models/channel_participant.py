"""
ChannelParticipant Model - Location channel membership

Composite key (channel_id, user_id); re-joining refreshes `joined_at`.
Group-call membership is this relation, there is no separate roster.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey
from datetime import datetime

from .database import Base


class ChannelParticipant(Base):
    """Member of a location channel"""
    __tablename__ = "channel_participants"

    channel_id = Column(
        String(36), ForeignKey('location_channels.id', ondelete='CASCADE'), primary_key=True
    )
    user_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), primary_key=True, index=True)

    joined_at = Column(DateTime, default=datetime.utcnow, nullable=False)
