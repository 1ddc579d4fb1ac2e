"""
API dependencies

- get_hub: the application's RelayHub
- get_current_user: caller identity from the trusted X-User-ID header
- http_error: domain error -> HTTPException with the mapped status
"""
from typing import Optional
import logging

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from walky.models.database import get_db
from walky.models.user import User
from walky.services.core.repositories import UserRepository
from walky.services.exceptions import WalkyError
from walky.services.hub import RelayHub

logger = logging.getLogger(__name__)


def get_hub(request: Request) -> RelayHub:
    return request.app.state.hub


async def get_current_user(
    x_user_id: Optional[str] = Header(None, alias="X-User-ID"),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Resolve the X-User-ID header; 401 when absent or unknown."""
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User ID required")
    try:
        user = await UserRepository(db).get_user_by_id(x_user_id)
    except WalkyError as e:
        raise http_error(e)
    if not user:
        logger.warning(f"[Auth] Unknown user id {x_user_id}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


def http_error(error: WalkyError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=str(error))
