"""
Location API - Geofence channels

Endpoints for:
- Reporting location (auto-join / auto-leave)
- Browsing nearby channels and the caller's own channels
- Creating, joining and leaving channels
- Channel participants and group calls
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from walky.api.deps import get_current_user, get_hub, http_error
from walky.models.database import get_db
from walky.models.user import User
from walky.schemas.call import StatusResponse
from walky.schemas.location import (
    ChannelInfo,
    ChannelParticipantItem,
    ChannelSummary,
    CreateChannelRequest,
    CreateChannelResponse,
    GroupCallStartResponse,
    LocationUpdateRequest,
    LocationUpdateResponse,
    MemberChannel,
    MemberChannelsResponse,
    NearbyChannel,
    NearbyChannelsResponse,
    ParticipantsResponse,
)
from walky.services.exceptions import WalkyError
from walky.services.hub import RelayHub

router = APIRouter(prefix="/location")


def _channel_info(channel) -> dict:
    return dict(
        id=channel.id,
        name=channel.name,
        latitude=channel.latitude,
        longitude=channel.longitude,
        radius=channel.radius,
    )


@router.post("/update", response_model=LocationUpdateResponse)
async def update_location(
    req: LocationUpdateRequest,
    db: AsyncSession = Depends(get_db),
    hub: RelayHub = Depends(get_hub),
    current_user: User = Depends(get_current_user)
):
    try:
        result = await hub.channels.update_location(db, current_user, req.latitude, req.longitude)
    except WalkyError as e:
        raise http_error(e)
    return LocationUpdateResponse(
        joined_channels=[ChannelSummary(id=c.id, name=c.name) for c in result.joined],
        left_channels=[ChannelSummary(id=c.id, name=c.name) for c in result.left],
    )


@router.get("/channels/nearby", response_model=NearbyChannelsResponse)
async def nearby_channels(
    latitude: float = Query(...),
    longitude: float = Query(...),
    radius: Optional[float] = Query(None),
    db: AsyncSession = Depends(get_db),
    hub: RelayHub = Depends(get_hub),
    current_user: User = Depends(get_current_user)
):
    """Channels around a point, nearest first (default radius 1 km)."""
    try:
        nearby = await hub.channels.nearby_channels(db, latitude, longitude, radius)
    except WalkyError as e:
        raise http_error(e)
    return NearbyChannelsResponse(channels=[
        NearbyChannel(**_channel_info(channel), distance=distance) for channel, distance in nearby
    ])


@router.post("/channels", response_model=CreateChannelResponse)
async def create_channel(
    req: CreateChannelRequest,
    db: AsyncSession = Depends(get_db),
    hub: RelayHub = Depends(get_hub),
    current_user: User = Depends(get_current_user)
):
    try:
        channel = await hub.channels.create_channel(
            db, current_user, req.name, req.latitude, req.longitude, req.radius
        )
    except WalkyError as e:
        raise http_error(e)
    return CreateChannelResponse(channel=ChannelInfo(**_channel_info(channel)))


@router.get("/channels", response_model=MemberChannelsResponse)
async def my_channels(
    db: AsyncSession = Depends(get_db),
    hub: RelayHub = Depends(get_hub),
    current_user: User = Depends(get_current_user)
):
    try:
        channels = await hub.channels.user_channels(db, current_user)
    except WalkyError as e:
        raise http_error(e)
    return MemberChannelsResponse(channels=[
        MemberChannel(**_channel_info(channel), joined_at=joined_at) for channel, joined_at in channels
    ])


@router.post("/channels/{channel_id}/join", response_model=StatusResponse)
async def join_channel(
    channel_id: str,
    db: AsyncSession = Depends(get_db),
    hub: RelayHub = Depends(get_hub),
    current_user: User = Depends(get_current_user)
):
    try:
        await hub.channels.join(db, current_user, channel_id)
    except WalkyError as e:
        raise http_error(e)
    return StatusResponse(status="channel-joined")


@router.post("/channels/{channel_id}/leave", response_model=StatusResponse)
async def leave_channel(
    channel_id: str,
    db: AsyncSession = Depends(get_db),
    hub: RelayHub = Depends(get_hub),
    current_user: User = Depends(get_current_user)
):
    try:
        await hub.channels.leave(db, current_user, channel_id)
    except WalkyError as e:
        raise http_error(e)
    return StatusResponse(status="channel-left")


@router.get("/channels/{channel_id}/participants", response_model=ParticipantsResponse)
async def channel_participants(
    channel_id: str,
    db: AsyncSession = Depends(get_db),
    hub: RelayHub = Depends(get_hub),
    current_user: User = Depends(get_current_user)
):
    try:
        participants = await hub.channels.participants(db, channel_id)
    except WalkyError as e:
        raise http_error(e)
    return ParticipantsResponse(participants=[
        ChannelParticipantItem(id=user.id, username=user.username, joined_at=joined_at)
        for user, joined_at in participants
    ])


@router.post("/channels/{channel_id}/group-call/start", response_model=GroupCallStartResponse)
async def start_group_call(
    channel_id: str,
    db: AsyncSession = Depends(get_db),
    hub: RelayHub = Depends(get_hub),
    current_user: User = Depends(get_current_user)
):
    """Start the channel's group call, or return the one already running."""
    try:
        call_id, status = await hub.calls.start_group_call(db, current_user, channel_id)
    except WalkyError as e:
        raise http_error(e)
    return GroupCallStartResponse(call_id=call_id, channel_id=channel_id, status=status)
