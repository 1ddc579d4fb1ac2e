"""
Geofence Channel Manager

Location-bound channel membership:
- Location updates auto-join channels within the default search radius and
  auto-leave member channels the user has moved out of
- Explicit create / join / leave
- Nearby channel browsing

Boundary rule: nearby inclusion is `distance <= radius`, auto-leave is
`distance > radius`. A user exactly on a channel's edge stays a member.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, List, Tuple
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from walky.config.constants import DEFAULT_NEARBY_RADIUS_KM, MAX_CHANNEL_RADIUS_KM
from walky.models.location_channel import LocationChannel
from walky.models.user import User
from walky.services.core.repositories import ChannelRepository, UserRepository
from walky.services.exceptions import (
    ChannelNotFoundError,
    InvalidArgumentError,
    InvalidCoordinatesError,
    InvalidRadiusError,
)

from .geo import coordinates_valid, haversine_km

if TYPE_CHECKING:
    from walky.services.connection import PresenceRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChannelRef:
    """Plain snapshot of a channel row, safe to read after a rollback."""
    id: str
    name: str
    latitude: float
    longitude: float
    radius: float

    @classmethod
    def of(cls, channel: LocationChannel) -> "ChannelRef":
        return cls(channel.id, channel.name, channel.latitude, channel.longitude, channel.radius)


@dataclass
class LocationUpdateResult:
    joined: List[ChannelRef] = field(default_factory=list)
    left: List[ChannelRef] = field(default_factory=list)


def _validate_coordinates(latitude, longitude):
    if latitude is None or longitude is None:
        raise InvalidCoordinatesError("Latitude and longitude are required")
    try:
        latitude, longitude = float(latitude), float(longitude)
    except (TypeError, ValueError):
        raise InvalidCoordinatesError("Invalid coordinates")
    if not coordinates_valid(latitude, longitude):
        raise InvalidCoordinatesError("Invalid coordinates")
    return latitude, longitude


class GeofenceChannelManager:
    """Channel membership driven by location."""

    def __init__(self, registry: "PresenceRegistry"):
        self.registry = registry

    async def update_location(
        self,
        db: AsyncSession,
        user: User,
        latitude: float,
        longitude: float
    ) -> LocationUpdateResult:
        """
        Persist the user's location and reconcile channel membership.

        Each join/leave is attempted independently; one failing channel is
        logged and does not stop the others. A failed store call rolls the
        session back and expires every loaded row, so only plain snapshots
        of the user and channels are read once the loop starts.

        Raises:
            InvalidCoordinatesError before anything is written
        """
        latitude, longitude = _validate_coordinates(latitude, longitude)
        user_id, username = user.id, user.username

        await UserRepository(db).update_user_location(user_id, latitude, longitude)

        channels = ChannelRepository(db)
        result = LocationUpdateResult()

        member_of = {
            channel.id: ChannelRef.of(channel) for channel, _ in await channels.get_user_channels(user_id)
        }
        candidates = [
            ChannelRef.of(channel)
            for channel, _distance in await channels.nearby_channels(latitude, longitude, DEFAULT_NEARBY_RADIUS_KM)
            if channel.id not in member_of
        ]

        for channel in candidates:
            try:
                await channels.join_channel(channel.id, user_id)
            except Exception as e:
                logger.error(f"[Geofence] Auto-join of {channel.id} for {user_id} failed: {e}")
                continue
            result.joined.append(channel)
            await self._announce(channel.id, user_id, username, "user-joined-channel")

        for channel in member_of.values():
            distance = haversine_km(latitude, longitude, channel.latitude, channel.longitude)
            if distance <= channel.radius:
                continue
            try:
                await channels.leave_channel(channel.id, user_id)
            except Exception as e:
                logger.error(f"[Geofence] Auto-leave of {channel.id} for {user_id} failed: {e}")
                continue
            result.left.append(channel)
            await self._announce(channel.id, user_id, username, "user-left-channel")

        logger.info(
            f"[Geofence] {username} at ({latitude:.5f}, {longitude:.5f}): "
            f"joined {len(result.joined)}, left {len(result.left)}"
        )
        return result

    async def nearby_channels(
        self,
        db: AsyncSession,
        latitude: float,
        longitude: float,
        radius_km: float = DEFAULT_NEARBY_RADIUS_KM
    ) -> List[Tuple[LocationChannel, float]]:
        """Channels within radius_km, nearest first, with their distance."""
        latitude, longitude = _validate_coordinates(latitude, longitude)
        if radius_km is None:
            radius_km = DEFAULT_NEARBY_RADIUS_KM
        if radius_km <= 0:
            raise InvalidRadiusError("Radius must be positive")
        return await ChannelRepository(db).nearby_channels(latitude, longitude, radius_km)

    async def create_channel(
        self,
        db: AsyncSession,
        user: User,
        name: str,
        latitude: float,
        longitude: float,
        radius_km: float
    ) -> LocationChannel:
        """
        Create a channel and auto-join its creator.

        Raises:
            InvalidArgumentError / InvalidCoordinatesError / InvalidRadiusError
        """
        if not name or not name.strip():
            raise InvalidArgumentError("Channel name is required")
        latitude, longitude = _validate_coordinates(latitude, longitude)
        if radius_km is None or not 0 < radius_km <= MAX_CHANNEL_RADIUS_KM:
            raise InvalidRadiusError(f"Radius must be between 0 and {MAX_CHANNEL_RADIUS_KM:g} km")

        channels = ChannelRepository(db)
        channel = await channels.create_location_channel(
            name.strip(), latitude, longitude, radius_km, created_by=user.id
        )
        await channels.join_channel(channel.id, user.id)
        logger.info(f"[Geofence] {user.username} created channel {channel.id} ({channel.name}, r={radius_km} km)")
        return channel

    async def join(self, db: AsyncSession, user: User, channel_id: str) -> LocationChannel:
        """Idempotent join; re-joining refreshes joined_at."""
        channels = ChannelRepository(db)
        channel = await channels.get_channel(channel_id)
        if not channel:
            raise ChannelNotFoundError("Channel not found")

        await channels.join_channel(channel_id, user.id)
        logger.info(f"[Geofence] {user.username} joined channel {channel_id}")
        await self._announce(channel_id, user.id, user.username, "user-joined-channel")
        return channel

    async def leave(self, db: AsyncSession, user: User, channel_id: str) -> LocationChannel:
        """Idempotent leave; leaving a channel you are not in is not an error."""
        channels = ChannelRepository(db)
        channel = await channels.get_channel(channel_id)
        if not channel:
            raise ChannelNotFoundError("Channel not found")

        await channels.leave_channel(channel_id, user.id)
        logger.info(f"[Geofence] {user.username} left channel {channel_id}")
        await self._announce(channel_id, user.id, user.username, "user-left-channel")
        return channel

    async def participants(self, db: AsyncSession, channel_id: str) -> List[Tuple[User, datetime]]:
        channels = ChannelRepository(db)
        if not await channels.get_channel(channel_id):
            raise ChannelNotFoundError("Channel not found")
        return await channels.get_channel_participants(channel_id)

    async def user_channels(self, db: AsyncSession, user: User) -> List[Tuple[LocationChannel, datetime]]:
        return await ChannelRepository(db).get_user_channels(user.id)

    async def _announce(self, channel_id: str, user_id: str, username: str, event: str):
        await self.registry.emit_to_channel(
            channel_id,
            event,
            {"userId": user_id, "username": username, "channelId": channel_id},
            exclude_user_id=user_id,
        )
