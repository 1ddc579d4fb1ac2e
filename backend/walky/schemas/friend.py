from typing import List

from .base import CamelModel


class AddFriendRequest(CamelModel):
    friend_username: str


class AddFriendResponse(CamelModel):
    success: bool = True
    friendship_id: str
    message: str


class FriendResponse(CamelModel):
    id: str
    username: str
    status: str
    is_online: bool


class FriendRequestItem(CamelModel):
    id: str
    username: str
    friendship_id: str


class FriendRequestsResponse(CamelModel):
    requests: List[FriendRequestItem]


class SuccessResponse(CamelModel):
    success: bool = True
    message: str
