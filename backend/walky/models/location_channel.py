"""
LocationChannel Model - Geofenced push-to-talk channels

A named circle (centroid + radius in km). Immutable once created;
membership lives in `channel_participants`.
"""
from sqlalchemy import Column, String, DateTime, Float, ForeignKey, CheckConstraint
from datetime import datetime
import uuid

from .database import Base


class LocationChannel(Base):
    """Circular geofence channel"""
    __tablename__ = "location_channels"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)

    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    radius = Column(Float, nullable=False)  # km

    created_by = Column(String(36), ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("radius > 0 AND radius <= 10", name='ck_channel_radius'),
    )
