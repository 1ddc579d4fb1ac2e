"""
Repository Layer - Centralized database access.

Every durable read/write the relay core performs goes through these classes:
users, friendships, location channels, channel membership and active calls.
They hold no business rules beyond row shaping. Driver failures surface as
StoreUnavailableError so callers never see raw SQLAlchemy exceptions.

Usage:
    from walky.services.core.repositories import CallRepository

    call = await CallRepository(db).get_call(call_id)
"""

import functools
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import select, delete, update, and_, or_, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from walky.config.constants import USER_SEARCH_LIMIT
from walky.models.user import User
from walky.models.friendship import Friendship, FriendshipStatus
from walky.models.location_channel import LocationChannel
from walky.models.channel_participant import ChannelParticipant
from walky.models.call import Call, CallStatus
from walky.services.exceptions import (
    StoreUnavailableError,
    UsernameTakenError,
    RequestAlreadySentError,
)
from walky.services.location.geo import haversine_km, latitude_window

logger = logging.getLogger(__name__)


def store_operation(func):
    """Roll back and convert driver errors into StoreUnavailableError."""
    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except SQLAlchemyError as e:
            logger.error(f"[Store] {type(self).__name__}.{func.__name__} failed: {e}")
            await self.db.rollback()
            raise StoreUnavailableError("Database error") from e
    return wrapper


class _Repository:
    def __init__(self, db: AsyncSession):
        self.db = db


class UserRepository(_Repository):
    """Users and their last known location."""

    @store_operation
    async def create_user(self, username: str, device_id: str) -> User:
        user = User(username=username.lower(), device_id=device_id)
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise UsernameTakenError("Username already exists") from e
        await self.db.refresh(user)
        return user

    @store_operation
    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    @store_operation
    async def get_user_by_username(self, username: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.username == username.lower()))
        return result.scalar_one_or_none()

    @store_operation
    async def search_users_by_username_substring(
        self,
        query: str,
        exclude_user_id: Optional[str] = None,
        limit: int = USER_SEARCH_LIMIT
    ) -> List[User]:
        stmt = select(User).where(User.username.ilike(f"%{query.lower()}%"))
        if exclude_user_id:
            stmt = stmt.where(User.id != exclude_user_id)
        result = await self.db.execute(stmt.order_by(User.username).limit(limit))
        return list(result.scalars().all())

    @store_operation
    async def update_user_location(self, user_id: str, latitude: float, longitude: float) -> bool:
        result = await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(latitude=latitude, longitude=longitude, location_updated_at=datetime.utcnow())
        )
        await self.db.commit()
        return result.rowcount > 0

    @store_operation
    async def set_online(self, user_id: str, is_online: bool) -> bool:
        result = await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(is_online=is_online, last_seen=datetime.utcnow())
        )
        await self.db.commit()
        return result.rowcount > 0


class FriendshipRepository(_Repository):
    """Friend requests and accepted friendships (direction-agnostic reads)."""

    @staticmethod
    def _between(user_a: str, user_b: str):
        return or_(
            and_(Friendship.user_id == user_a, Friendship.friend_id == user_b),
            and_(Friendship.user_id == user_b, Friendship.friend_id == user_a),
        )

    @store_operation
    async def create_friend_request(self, user_id: str, friend_id: str) -> Friendship:
        friendship = Friendship(user_id=user_id, friend_id=friend_id, status=FriendshipStatus.PENDING)
        self.db.add(friendship)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise RequestAlreadySentError("Friend request already sent") from e
        await self.db.refresh(friendship)
        return friendship

    @store_operation
    async def get_friendship_between(self, user_a: str, user_b: str) -> Optional[Friendship]:
        result = await self.db.execute(select(Friendship).where(self._between(user_a, user_b)))
        return result.scalars().first()

    @store_operation
    async def get_friendship_by_id(self, friendship_id: str) -> Optional[Friendship]:
        result = await self.db.execute(select(Friendship).where(Friendship.id == friendship_id))
        return result.scalar_one_or_none()

    @store_operation
    async def get_friends_of(self, user_id: str) -> List[User]:
        """Accepted friends only, whichever side sent the request."""
        result = await self.db.execute(
            select(User)
            .join(
                Friendship,
                or_(
                    and_(Friendship.friend_id == User.id, Friendship.user_id == user_id),
                    and_(Friendship.user_id == User.id, Friendship.friend_id == user_id),
                ),
            )
            .where(
                User.id != user_id,
                Friendship.status == FriendshipStatus.ACCEPTED,
            )
            .order_by(User.username)
        )
        return list(result.scalars().all())

    @store_operation
    async def get_friend_requests_to(self, user_id: str) -> List[Tuple[Friendship, User]]:
        """Pending requests addressed to user_id, paired with the requester."""
        result = await self.db.execute(
            select(Friendship, User)
            .join(User, Friendship.user_id == User.id)
            .where(
                Friendship.friend_id == user_id,
                Friendship.status == FriendshipStatus.PENDING,
            )
            .order_by(Friendship.created_at)
        )
        return [(friendship, requester) for friendship, requester in result.all()]

    @store_operation
    async def accept_friend_request(self, friendship_id: str) -> bool:
        result = await self.db.execute(
            update(Friendship)
            .where(Friendship.id == friendship_id)
            .values(status=FriendshipStatus.ACCEPTED)
        )
        await self.db.commit()
        return result.rowcount > 0

    @store_operation
    async def reject_friend_request(self, friendship_id: str) -> bool:
        result = await self.db.execute(delete(Friendship).where(Friendship.id == friendship_id))
        await self.db.commit()
        return result.rowcount > 0

    @store_operation
    async def remove_friendship(self, user_a: str, user_b: str) -> bool:
        result = await self.db.execute(delete(Friendship).where(self._between(user_a, user_b)))
        await self.db.commit()
        return result.rowcount > 0


class ChannelRepository(_Repository):
    """Location channels and their membership."""

    @store_operation
    async def create_location_channel(
        self,
        name: str,
        latitude: float,
        longitude: float,
        radius: float,
        created_by: Optional[str] = None
    ) -> LocationChannel:
        channel = LocationChannel(
            name=name,
            latitude=latitude,
            longitude=longitude,
            radius=radius,
            created_by=created_by,
        )
        self.db.add(channel)
        await self.db.commit()
        await self.db.refresh(channel)
        return channel

    @store_operation
    async def get_channel(self, channel_id: str) -> Optional[LocationChannel]:
        result = await self.db.execute(select(LocationChannel).where(LocationChannel.id == channel_id))
        return result.scalar_one_or_none()

    @store_operation
    async def nearby_channels(
        self,
        latitude: float,
        longitude: float,
        radius_km: float
    ) -> List[Tuple[LocationChannel, float]]:
        """
        Channels whose centroid lies within radius_km, nearest first.

        The latitude band is only a prefilter; inclusion is decided by
        haversine distance <= radius_km.
        """
        lat_min, lat_max = latitude_window(latitude, radius_km)
        result = await self.db.execute(
            select(LocationChannel).where(
                LocationChannel.latitude >= lat_min,
                LocationChannel.latitude <= lat_max,
            )
        )
        nearby = []
        for channel in result.scalars().all():
            distance = haversine_km(latitude, longitude, channel.latitude, channel.longitude)
            if distance <= radius_km:
                nearby.append((channel, distance))
        nearby.sort(key=lambda item: item[1])
        return nearby

    @store_operation
    async def join_channel(self, channel_id: str, user_id: str) -> ChannelParticipant:
        """Upsert membership; re-joining refreshes joined_at."""
        now = datetime.utcnow()
        result = await self.db.execute(
            select(ChannelParticipant).where(
                ChannelParticipant.channel_id == channel_id,
                ChannelParticipant.user_id == user_id,
            )
        )
        participant = result.scalar_one_or_none()
        if participant:
            participant.joined_at = now
        else:
            participant = ChannelParticipant(channel_id=channel_id, user_id=user_id, joined_at=now)
            self.db.add(participant)
        try:
            await self.db.commit()
        except IntegrityError:
            # Concurrent insert for the same pair won; refresh its timestamp instead.
            await self.db.rollback()
            await self.db.execute(
                update(ChannelParticipant)
                .where(
                    ChannelParticipant.channel_id == channel_id,
                    ChannelParticipant.user_id == user_id,
                )
                .values(joined_at=now)
            )
            await self.db.commit()
            participant = ChannelParticipant(channel_id=channel_id, user_id=user_id, joined_at=now)
        return participant

    @store_operation
    async def leave_channel(self, channel_id: str, user_id: str) -> bool:
        result = await self.db.execute(
            delete(ChannelParticipant).where(
                ChannelParticipant.channel_id == channel_id,
                ChannelParticipant.user_id == user_id,
            )
        )
        await self.db.commit()
        return result.rowcount > 0

    @store_operation
    async def get_channel_participants(self, channel_id: str) -> List[Tuple[User, datetime]]:
        result = await self.db.execute(
            select(User, ChannelParticipant.joined_at)
            .join(ChannelParticipant, ChannelParticipant.user_id == User.id)
            .where(ChannelParticipant.channel_id == channel_id)
            .order_by(ChannelParticipant.joined_at)
        )
        return [(user, joined_at) for user, joined_at in result.all()]

    @store_operation
    async def get_channel_participant_ids(self, channel_id: str) -> List[str]:
        result = await self.db.execute(
            select(ChannelParticipant.user_id).where(ChannelParticipant.channel_id == channel_id)
        )
        return list(result.scalars().all())

    @store_operation
    async def is_participant(self, channel_id: str, user_id: str) -> bool:
        result = await self.db.execute(
            select(func.count())
            .select_from(ChannelParticipant)
            .where(
                ChannelParticipant.channel_id == channel_id,
                ChannelParticipant.user_id == user_id,
            )
        )
        return result.scalar_one() > 0

    @store_operation
    async def get_user_channels(self, user_id: str) -> List[Tuple[LocationChannel, datetime]]:
        result = await self.db.execute(
            select(LocationChannel, ChannelParticipant.joined_at)
            .join(ChannelParticipant, ChannelParticipant.channel_id == LocationChannel.id)
            .where(ChannelParticipant.user_id == user_id)
            .order_by(ChannelParticipant.joined_at)
        )
        return [(channel, joined_at) for channel, joined_at in result.all()]


class CallRepository(_Repository):
    """Active 1:1 and group call rows."""

    @store_operation
    async def create_call(self, caller_id: str, callee_id: str) -> Call:
        call = Call(caller_id=caller_id, callee_id=callee_id, status=CallStatus.PENDING)
        self.db.add(call)
        await self.db.commit()
        await self.db.refresh(call)
        return call

    @store_operation
    async def get_call(self, call_id: str) -> Optional[Call]:
        # populate_existing: another session may have changed the row since this one last saw it
        result = await self.db.execute(
            select(Call).where(Call.id == call_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @store_operation
    async def update_call_status(self, call_id: str, status: str) -> bool:
        result = await self.db.execute(update(Call).where(Call.id == call_id).values(status=status))
        await self.db.commit()
        return result.rowcount > 0

    @store_operation
    async def delete_call(self, call_id: str) -> bool:
        result = await self.db.execute(delete(Call).where(Call.id == call_id))
        await self.db.commit()
        return result.rowcount > 0

    @store_operation
    async def set_call_audio_active(self, call_id: str, active: bool) -> bool:
        result = await self.db.execute(
            update(Call).where(Call.id == call_id).values(audio_stream_active=active)
        )
        await self.db.commit()
        return result.rowcount > 0

    @store_operation
    async def create_group_call(self, call_id: str, channel_id: str, caller_id: str) -> Call:
        call = Call(
            id=call_id,
            caller_id=caller_id,
            channel_id=channel_id,
            is_group=True,
            status=CallStatus.ACTIVE,
        )
        self.db.add(call)
        await self.db.commit()
        await self.db.refresh(call)
        return call

    @store_operation
    async def get_active_group_call(self, channel_id: str) -> Optional[Call]:
        """Most recent live group call for the channel; concurrent starts can leave more than one row."""
        result = await self.db.execute(
            select(Call)
            .where(Call.channel_id == channel_id, Call.is_group == True)
            .order_by(Call.created_at.desc())
            .limit(1)
        )
        return result.scalars().first()
