"""
WebSocket Router - Live connection endpoint

This is the thin routing layer that delegates to SessionOrchestrator
for all WebSocket session management.
"""
from fastapi import APIRouter, WebSocket

from walky.services.session import SessionOrchestrator

router = APIRouter()


@router.websocket("/ws")
async def ws_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for presence, call signalling and audio relay.

    The first message is expected to be `{"type": "register", "userId": ...}`.
    Every message is a JSON object with a "type" field; see
    SessionOrchestrator for the handled types.
    """
    orchestrator = SessionOrchestrator(websocket=websocket, hub=websocket.app.state.hub)
    await orchestrator.run()
