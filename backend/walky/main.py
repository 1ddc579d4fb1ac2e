"""
Walkie-Talkie Relay Backend - Main Application

This is the entry point for the FastAPI application.
It handles:
- REST API endpoints (users, friends, calls, location channels)
- WebSocket connections for presence, call signalling and audio relay
- Background tasks for presence mirror cleanup
"""
from contextlib import asynccontextmanager
import asyncio
import logging
from datetime import datetime, UTC

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from walky.api import router as api_router
from walky.api.websocket import router as ws_router
from walky.config.redis import close_redis, ping_redis
from walky.config.settings import settings
from walky.models.database import init_db
from walky.services.hub import RelayHub
from walky.services.metrics import start_metrics_server
from walky.services.status_service import StatusService

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events using the modern FastAPI pattern.
    """
    # === STARTUP ===
    logger.info("🚀 Starting Walkie-Talkie Relay Backend...")

    await init_db()
    logger.info("✅ Database tables created")

    hub: RelayHub = app.state.hub
    cleanup_task = None
    if hub.status_service is not None and hub.status_service.enabled:
        if await ping_redis():
            logger.info("✅ Redis connected")
        else:
            logger.warning("⚠️ Redis unreachable, presence mirror writes will fail until it is back")

        cleanup_task = asyncio.create_task(hub.status_service.cleanup_offline_users())
        logger.info("✅ Background cleanup task started")

    if settings.METRICS_ENABLED:
        start_metrics_server(settings.METRICS_PORT)

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("🛑 Shutting down...")
    if cleanup_task is not None:
        cleanup_task.cancel()
        try:
            await cleanup_task
        except asyncio.CancelledError:
            pass
    await hub.close()
    await close_redis()


app = FastAPI(
    title="Walkie-Talkie Relay Backend",
    description="Push-to-talk calls, location channels and server-mediated audio relay",
    version="1.0.0",
    lifespan=lifespan
)

# One registry for the whole process
app.state.hub = RelayHub(status_service=StatusService(enabled=settings.PRESENCE_MIRROR_ENABLED))

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=settings.CORS_ORIGIN_REGEX,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query"))
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


# Include REST API routes
app.include_router(api_router, prefix="/api")

# Include WebSocket routes
app.include_router(ws_router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    registry = app.state.hub.registry
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "onlineUsers": registry.get_online_user_count(),
        "liveConnections": registry.get_total_connections(),
    }
