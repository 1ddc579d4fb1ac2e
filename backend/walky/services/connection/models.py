"""
Connection Models

Wrapper around a single live WebSocket connection.
"""
from datetime import datetime
from typing import Dict, Any, Optional
import logging
import uuid

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class LiveConnection:
    """One device's WebSocket. A user may hold several at once."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self.connection_id = str(uuid.uuid4())
        self.user_id: Optional[str] = None
        self.connected_at = datetime.utcnow()

    @property
    def is_registered(self) -> bool:
        return self.user_id is not None

    async def send_json(self, data: Dict[str, Any]) -> bool:
        """Send JSON message to this connection."""
        try:
            await self.websocket.send_json(data)
            return True
        except Exception as e:
            logger.error(f"Error sending JSON to {self.user_id or self.connection_id}: {e}")
            return False

    def __repr__(self):
        return f"<LiveConnection {self.connection_id[:8]} user={self.user_id}>"
