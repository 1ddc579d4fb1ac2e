"""
Session Orchestrator

One instance per WebSocket connection:
- accept, then a receive loop that dispatches JSON messages by "type"
- each handler opens its own short-lived database session
- unregister from the presence registry on the way out, whatever happened

Nothing a client sends can end the loop except a disconnect. Validation
failures the user has to see become an `error` event; races (call already
ended, target offline) and store errors are logged and dropped.
"""
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, TYPE_CHECKING

from fastapi import WebSocket, WebSocketDisconnect

from walky.models.user import User
from walky.services.audio.frames import parse_frame
from walky.services.call.group import GROUP_CALL_ALREADY_ACTIVE
from walky.services.call.validators import server_mediated_descriptor
from walky.services.connection import LiveConnection
from walky.services.core.repositories import UserRepository
from walky.services.exceptions import (
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
    WalkyError,
)
from walky.services.metrics import audio_frames_dropped

if TYPE_CHECKING:
    from walky.services.hub import RelayHub

logger = logging.getLogger(__name__)

# Accepted before the connection has registered a user
UNREGISTERED_EVENTS = {"register", "ping"}


def _channel_summary(channel) -> Dict[str, str]:
    return {"id": channel.id, "name": channel.name}


class SessionOrchestrator:
    """
    Orchestrates the lifecycle of one WebSocket connection.
    Handles:
    - Registration of the connection's user
    - Message loop processing
    - Cleanup on disconnect
    """

    def __init__(self, websocket: WebSocket, hub: "RelayHub"):
        self.websocket = websocket
        self.hub = hub
        self.connection = LiveConnection(websocket)
        self.user: Optional[User] = None

        self._handlers: Dict[str, Callable[[Dict[str, Any]], Awaitable[None]]] = {
            "register": self._on_register,
            "update-location": self._on_update_location,
            "join-location-channel": self._on_join_channel,
            "leave-location-channel": self._on_leave_channel,
            "start-group-call": self._on_start_group_call,
            "join-group-call": self._on_join_group_call,
            "answer-call": self._on_answer_call,
            "audio-data": self._on_audio_data,
            "start-audio-stream": self._on_start_audio_stream,
            "stop-audio-stream": self._on_stop_audio_stream,
            "end-call": self._on_end_call,
            "heartbeat": self._on_heartbeat,
            "ping": self._on_ping,
        }

    @property
    def registry(self):
        return self.hub.registry

    async def run(self):
        """Main entry point for handling a WebSocket connection."""
        await self.websocket.accept()
        logger.info(f"[Orchestrator] Connection {self.connection.connection_id[:8]} accepted")
        try:
            await self._message_loop()
        finally:
            await self._cleanup()

    async def _message_loop(self):
        try:
            while True:
                message = await self.websocket.receive()

                if message.get("type") == "websocket.disconnect":
                    break
                if message.get("text") is not None:
                    await self._handle_text_message(message["text"])
                elif message.get("bytes") is not None:
                    logger.warning(f"[Orchestrator] Binary frame from {self._who()} ignored")
                else:
                    logger.warning(f"[Orchestrator] Unexpected message structure from {self._who()}")

        except WebSocketDisconnect:
            logger.info(f"[Orchestrator] {self._who()} disconnected")

        except Exception as e:
            logger.error(f"[Orchestrator] Error during message loop for {self._who()}: {e}")

    async def _handle_text_message(self, text_data: str):
        """Parse and dispatch one JSON control message."""
        try:
            data = json.loads(text_data)
        except json.JSONDecodeError:
            logger.warning(f"[Orchestrator] Invalid JSON received from {self._who()}")
            return
        if not isinstance(data, dict):
            logger.warning(f"[Orchestrator] Non-object message from {self._who()} ignored")
            return

        msg_type = data.get("type")
        handler = self._handlers.get(msg_type)
        if handler is None:
            logger.warning(f"[Orchestrator] Unknown message type: {msg_type}")
            return

        if self.user is None and msg_type not in UNREGISTERED_EVENTS:
            await self._send_error(msg_type, "Not registered")
            return

        try:
            await handler(data)
        except (InvalidArgumentError, ForbiddenError) as e:
            await self._send_error(msg_type, str(e))
        except NotFoundError as e:
            logger.info(f"[Orchestrator] {msg_type} from {self._who()} dropped: {e}")
        except WalkyError as e:
            logger.error(f"[Orchestrator] {msg_type} from {self._who()} failed: {e}")
        except Exception as e:
            logger.exception(f"[Orchestrator] Unexpected error handling {msg_type} from {self._who()}: {e}")

    # === Handlers ===

    async def _on_register(self, data: Dict[str, Any]):
        user_id = data.get("userId")
        if not user_id:
            raise InvalidArgumentError("userId required")

        async with self.hub.session_factory() as db:
            user = await UserRepository(db).get_user_by_id(user_id)
        if not user:
            raise InvalidArgumentError("Unknown user")

        self.user = user
        await self.registry.register(self.connection, user.id)
        await self.connection.send_json({"type": "registered", "userId": user.id})

    async def _on_update_location(self, data: Dict[str, Any]):
        latitude = data.get("lat", data.get("latitude"))
        longitude = data.get("lon", data.get("longitude"))
        async with self.hub.session_factory() as db:
            result = await self.hub.channels.update_location(db, self.user, latitude, longitude)
        await self.connection.send_json({
            "type": "location-updated",
            "joinedChannels": [_channel_summary(c) for c in result.joined],
            "leftChannels": [_channel_summary(c) for c in result.left],
        })

    async def _on_join_channel(self, data: Dict[str, Any]):
        channel_id = self._require(data, "channelId")
        async with self.hub.session_factory() as db:
            await self.hub.channels.join(db, self.user, channel_id)

    async def _on_leave_channel(self, data: Dict[str, Any]):
        channel_id = self._require(data, "channelId")
        async with self.hub.session_factory() as db:
            await self.hub.channels.leave(db, self.user, channel_id)

    async def _on_start_group_call(self, data: Dict[str, Any]):
        channel_id = self._require(data, "channelId")
        async with self.hub.session_factory() as db:
            call_id, status = await self.hub.calls.start_group_call(db, self.user, channel_id)
        if status == GROUP_CALL_ALREADY_ACTIVE:
            # Participants were told when it started; hand the requester the live call
            await self.connection.send_json({
                "type": "group-call-joined",
                "callId": call_id,
                "channelId": channel_id,
            })

    async def _on_join_group_call(self, data: Dict[str, Any]):
        call_id = self._require(data, "callId")
        async with self.hub.session_factory() as db:
            ack = await self.hub.calls.join_group_call(db, self.user, call_id)
        await self.connection.send_json({"type": "group-call-joined", **ack})

    async def _on_answer_call(self, data: Dict[str, Any]):
        call_id = self._require(data, "callId")
        answer = data.get("answer") or server_mediated_descriptor()
        async with self.hub.session_factory() as db:
            await self.hub.calls.answer(db, self.user, call_id, answer)

    async def _on_audio_data(self, data: Dict[str, Any]):
        call_id = data.get("callId")
        try:
            frame = parse_frame(data)
        except InvalidArgumentError:
            audio_frames_dropped.labels(reason="malformed").inc()
            logger.warning(f"[Orchestrator] audio-data without audio from {self._who()} dropped")
            return
        if not call_id:
            audio_frames_dropped.labels(reason="malformed").inc()
            return

        async with self.hub.session_factory() as db:
            await self.hub.audio.relay(db, call_id, self.user.id, frame, speaker_name=self.user.username)

    async def _on_start_audio_stream(self, data: Dict[str, Any]):
        call_id = self._require(data, "callId")
        async with self.hub.session_factory() as db:
            await self.hub.audio.start_stream(db, call_id, self.user.id)

    async def _on_stop_audio_stream(self, data: Dict[str, Any]):
        call_id = self._require(data, "callId")
        async with self.hub.session_factory() as db:
            await self.hub.audio.stop_stream(db, call_id, self.user.id)

    async def _on_end_call(self, data: Dict[str, Any]):
        call_id = self._require(data, "callId")
        async with self.hub.session_factory() as db:
            await self.hub.calls.end(db, self.user, call_id, strict=False)

    async def _on_heartbeat(self, data: Dict[str, Any]):
        if self.hub.status_service is not None:
            try:
                await self.hub.status_service.heartbeat(self.user.id)
            except Exception as e:
                logger.error(f"[Orchestrator] Heartbeat mirror failed for {self.user.id}: {e}")
        await self.connection.send_json({"type": "heartbeat-ack"})

    async def _on_ping(self, data: Dict[str, Any]):
        await self.connection.send_json({"type": "pong"})

    # === Helpers ===

    @staticmethod
    def _require(data: Dict[str, Any], field: str) -> Any:
        value = data.get(field)
        if not value:
            raise InvalidArgumentError(f"{field} required")
        return value

    async def _send_error(self, event: Optional[str], message: str):
        await self.connection.send_json({"type": "error", "event": event, "message": message})

    def _who(self) -> str:
        return self.user.username if self.user else self.connection.connection_id[:8]

    async def _cleanup(self):
        try:
            await self.registry.unregister(self.connection)
        except Exception as e:
            logger.error(f"[Orchestrator] Cleanup error for {self._who()}: {e}")
        logger.info(f"[Orchestrator] Session for {self._who()} closed")
