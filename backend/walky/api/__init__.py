from fastapi import APIRouter

from walky.api import users
from walky.api import friends
from walky.api import calls
from walky.api import location

router = APIRouter()

# Include users, friends, calls, location routers
router.include_router(users.router)
router.include_router(friends.router)
router.include_router(calls.router)
router.include_router(location.router)
