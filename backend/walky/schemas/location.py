from datetime import datetime
from typing import List, Optional

from .base import CamelModel


class LocationUpdateRequest(CamelModel):
    latitude: float
    longitude: float


class ChannelSummary(CamelModel):
    id: str
    name: str


class LocationUpdateResponse(CamelModel):
    status: str = "location-updated"
    joined_channels: List[ChannelSummary]
    left_channels: List[ChannelSummary]


class CreateChannelRequest(CamelModel):
    name: str
    latitude: float
    longitude: float
    radius: float


class ChannelInfo(CamelModel):
    id: str
    name: str
    latitude: float
    longitude: float
    radius: float


class NearbyChannel(ChannelInfo):
    distance: float


class NearbyChannelsResponse(CamelModel):
    channels: List[NearbyChannel]


class CreateChannelResponse(CamelModel):
    channel: ChannelInfo
    status: str = "channel-created"


class MemberChannel(ChannelInfo):
    joined_at: Optional[datetime] = None


class MemberChannelsResponse(CamelModel):
    channels: List[MemberChannel]


class ChannelParticipantItem(CamelModel):
    id: str
    username: str
    joined_at: Optional[datetime] = None


class ParticipantsResponse(CamelModel):
    participants: List[ChannelParticipantItem]


class GroupCallStartResponse(CamelModel):
    call_id: str
    channel_id: str
    status: str
