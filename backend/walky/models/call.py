"""
Call Model - Active call rows

One table, two shapes:
- 1:1 call: caller_id + callee_id, status pending -> connected, deleted on end
- Group call: channel_id + caller_id (starter), is_group=True,
  id = group_{channel_id}_{millis}

Rows exist only while the call is live.
"""
from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey
from datetime import datetime
import uuid

from .database import Base


class CallStatus:
    PENDING = "pending"
    CONNECTED = "connected"
    ACTIVE = "active"  # group calls


class Call(Base):
    """Active 1:1 or group call"""
    __tablename__ = "active_calls"

    id = Column(String(128), primary_key=True, default=lambda: str(uuid.uuid4()))

    caller_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    callee_id = Column(String(36), ForeignKey('users.id', ondelete='CASCADE'), nullable=True, index=True)

    # Group calls only
    channel_id = Column(
        String(36), ForeignKey('location_channels.id', ondelete='CASCADE'), nullable=True, index=True
    )
    is_group = Column(Boolean, default=False, nullable=False)

    status = Column(String(20), nullable=False, default=CallStatus.PENDING)

    # UI hint only, never used for admission
    audio_stream_active = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def is_participant(self, user_id: str) -> bool:
        """1:1 participation check. Group membership is resolved via the channel."""
        return user_id in (self.caller_id, self.callee_id)
