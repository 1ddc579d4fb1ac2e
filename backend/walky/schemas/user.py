from typing import List

from .base import CamelModel


class CreateUserRequest(CamelModel):
    username: str
    device_id: str


class UserResponse(CamelModel):
    id: str
    username: str
    device_id: str


class UserSearchResult(CamelModel):
    id: str
    username: str


class UserSearchResponse(CamelModel):
    users: List[UserSearchResult]


class UserStatusResponse(CamelModel):
    user_id: str
    is_online: bool
