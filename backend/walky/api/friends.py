"""
Friends API - Friend requests and friendships

Endpoints for:
- Sending, accepting and rejecting friend requests
- Listing friends and pending requests
- Unfriending
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from walky.api.deps import get_current_user, get_hub, http_error
from walky.models.database import get_db
from walky.models.friendship import FriendshipStatus
from walky.models.user import User
from walky.schemas.friend import (
    AddFriendRequest,
    AddFriendResponse,
    FriendRequestItem,
    FriendRequestsResponse,
    FriendResponse,
    SuccessResponse,
)
from walky.services.exceptions import WalkyError
from walky.services.hub import RelayHub

router = APIRouter()


@router.post("/friends", response_model=AddFriendResponse)
async def add_friend(
    req: AddFriendRequest,
    db: AsyncSession = Depends(get_db),
    hub: RelayHub = Depends(get_hub),
    current_user: User = Depends(get_current_user)
):
    try:
        friendship = await hub.friends.send_friend_request(db, current_user, req.friend_username)
    except WalkyError as e:
        raise http_error(e)
    return AddFriendResponse(friendship_id=friendship.id, message="Friend request sent")


@router.get("/friends", response_model=List[FriendResponse])
async def list_friends(
    db: AsyncSession = Depends(get_db),
    hub: RelayHub = Depends(get_hub),
    current_user: User = Depends(get_current_user)
):
    """Accepted friends, whichever side sent the request."""
    try:
        friends = await hub.friends.get_friends(db, current_user)
    except WalkyError as e:
        raise http_error(e)
    return [
        FriendResponse(
            id=friend.id,
            username=friend.username,
            status=FriendshipStatus.ACCEPTED,
            is_online=hub.registry.is_online(friend.id),
        )
        for friend in friends
    ]


@router.get("/friends/requests", response_model=FriendRequestsResponse)
async def list_friend_requests(
    db: AsyncSession = Depends(get_db),
    hub: RelayHub = Depends(get_hub),
    current_user: User = Depends(get_current_user)
):
    try:
        requests = await hub.friends.get_requests(db, current_user)
    except WalkyError as e:
        raise http_error(e)
    return FriendRequestsResponse(requests=[
        FriendRequestItem(id=requester.id, username=requester.username, friendship_id=friendship.id)
        for friendship, requester in requests
    ])


@router.post("/friends/{friendship_id}/accept", response_model=SuccessResponse)
async def accept_friend_request(
    friendship_id: str,
    db: AsyncSession = Depends(get_db),
    hub: RelayHub = Depends(get_hub),
    current_user: User = Depends(get_current_user)
):
    try:
        await hub.friends.accept_request(db, friendship_id, current_user)
    except WalkyError as e:
        raise http_error(e)
    return SuccessResponse(message="Friend request accepted")


@router.post("/friends/{friendship_id}/reject", response_model=SuccessResponse)
async def reject_friend_request(
    friendship_id: str,
    db: AsyncSession = Depends(get_db),
    hub: RelayHub = Depends(get_hub),
    current_user: User = Depends(get_current_user)
):
    try:
        await hub.friends.reject_request(db, friendship_id, current_user)
    except WalkyError as e:
        raise http_error(e)
    return SuccessResponse(message="Friend request rejected")


@router.delete("/friends/{friend_id}", response_model=SuccessResponse)
async def remove_friend(
    friend_id: str,
    db: AsyncSession = Depends(get_db),
    hub: RelayHub = Depends(get_hub),
    current_user: User = Depends(get_current_user)
):
    try:
        await hub.friends.remove_friend(db, current_user, friend_id)
    except WalkyError as e:
        raise http_error(e)
    return SuccessResponse(message="Friend removed")
