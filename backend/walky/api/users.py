"""
Users API - Registration and lookup

Endpoints for:
- Registering a user (no identity required)
- The caller's own profile
- Username search
- Online status of any user
"""
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from walky.api.deps import get_current_user, get_hub, http_error
from walky.models.database import get_db
from walky.models.user import User
from walky.schemas.user import (
    CreateUserRequest,
    UserResponse,
    UserSearchResponse,
    UserSearchResult,
    UserStatusResponse,
)
from walky.services.exceptions import WalkyError
from walky.services.hub import RelayHub
from walky.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/users", response_model=UserResponse)
async def create_user(req: CreateUserRequest, db: AsyncSession = Depends(get_db)):
    try:
        user = await user_service.register(db, req.username, req.device_id)
    except WalkyError as e:
        raise http_error(e)
    return UserResponse(id=user.id, username=user.username, device_id=user.device_id)


@router.get("/users/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return UserResponse(id=current_user.id, username=current_user.username, device_id=current_user.device_id)


@router.get("/users/search", response_model=UserSearchResponse)
async def search_users(
    username: str = Query(""),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Search users by username substring, excluding yourself."""
    try:
        users = await user_service.search(db, username, exclude_user_id=current_user.id)
    except WalkyError as e:
        raise http_error(e)
    return UserSearchResponse(users=[UserSearchResult(id=u.id, username=u.username) for u in users])


@router.get("/users/{user_id}/status", response_model=UserStatusResponse)
async def get_user_status(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    hub: RelayHub = Depends(get_hub),
    current_user: User = Depends(get_current_user)
):
    """
    Online status. The live registry answers for this process; the Redis
    mirror is consulted when the registry has no connection for the user.
    """
    try:
        await user_service.get_or_fail(db, user_id)
    except WalkyError as e:
        raise http_error(e)

    is_online = hub.registry.is_online(user_id)
    if not is_online and hub.status_service is not None and hub.status_service.enabled:
        try:
            is_online = await hub.status_service.is_user_online(user_id)
        except Exception as e:
            logger.error(f"[Users] Status mirror lookup failed for {user_id}: {e}")
            is_online = False
    return UserStatusResponse(user_id=user_id, is_online=is_online)
