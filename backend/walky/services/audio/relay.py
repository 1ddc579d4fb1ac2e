"""
Audio Relay

Forwards push-to-talk frames from the transmitting participant to the other
side of the call:
- 1:1 call -> the other party
- Group call -> every other current member of the call's channel

Frames are passed through untouched. A frame for a call that no longer
exists is expected (end-call racing in-flight audio) and is dropped quietly.
Nothing on this path raises to the sender.
"""
from typing import Optional, TYPE_CHECKING
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from walky.services.call.addressing import recipients_for
from walky.services.core.repositories import CallRepository, ChannelRepository, UserRepository
from walky.services.exceptions import CallNotFoundError, StoreUnavailableError
from walky.services.metrics import audio_frames_dropped, audio_frames_relayed

from .frames import AudioFrame

if TYPE_CHECKING:
    from walky.models.call import Call
    from walky.services.connection import PresenceRegistry

logger = logging.getLogger(__name__)


class AudioRelay:
    """Frame fan-out and the audio-stream UI flag."""

    def __init__(self, registry: "PresenceRegistry"):
        self.registry = registry

    async def relay(
        self,
        db: AsyncSession,
        call_id: str,
        from_user_id: str,
        frame: AudioFrame,
        speaker_name: Optional[str] = None
    ) -> int:
        """
        Relay one frame.

        Returns:
            Number of recipients that had at least one live connection
        """
        try:
            call = await CallRepository(db).get_call(call_id)
            if not call:
                audio_frames_dropped.labels(reason="call_missing").inc()
                logger.debug(f"[Relay] Frame for unknown call {call_id} from {from_user_id} dropped")
                return 0

            if not await self._is_member(db, call, from_user_id):
                audio_frames_dropped.labels(reason="not_participant").inc()
                logger.warning(f"[Relay] {from_user_id} is not in call {call_id}, frame dropped")
                return 0

            recipients = await recipients_for(db, call, from_user_id)
            if speaker_name is None:
                speaker = await UserRepository(db).get_user_by_id(from_user_id)
                speaker_name = speaker.username if speaker else from_user_id
        except StoreUnavailableError as e:
            audio_frames_dropped.labels(reason="store_error").inc()
            logger.error(f"[Relay] Store error relaying frame for call {call_id}: {e}")
            return 0

        reached = [uid for uid in recipients if self.registry.route(uid)]
        await self.registry.emit_to_users(recipients, "audio-data", {
            "callId": call_id,
            "fromUserId": from_user_id,
            "speakerName": speaker_name,
            **frame.to_payload(),
        })
        audio_frames_relayed.labels(frame_format=frame.format).inc()

        logger.debug(
            f"[Relay] {frame.format} frame {from_user_id} -> {len(reached)}/{len(recipients)} recipients (call {call_id})"
        )
        return len(reached)

    async def start_stream(self, db: AsyncSession, call_id: str, user_id: str, strict: bool = False) -> bool:
        return await self._toggle_stream(db, call_id, user_id, True, strict)

    async def stop_stream(self, db: AsyncSession, call_id: str, user_id: str, strict: bool = False) -> bool:
        return await self._toggle_stream(db, call_id, user_id, False, strict)

    async def _toggle_stream(
        self,
        db: AsyncSession,
        call_id: str,
        user_id: str,
        active: bool,
        strict: bool
    ) -> bool:
        """
        Flip the audio-active flag and tell the other side.

        The flag is a UI hint only. With strict=False (socket path) a missing
        call is logged and ignored; with strict=True it raises CallNotFoundError.
        """
        calls = CallRepository(db)
        call = await calls.get_call(call_id)
        if not call or not await self._is_member(db, call, user_id):
            if strict:
                raise CallNotFoundError("Call not found")
            logger.info(f"[Relay] Audio stream toggle for unknown call {call_id} from {user_id} ignored")
            return False

        recipients = await recipients_for(db, call, user_id)
        if not await calls.set_call_audio_active(call_id, active):
            if strict:
                raise CallNotFoundError("Call not found")
            return False

        event = "audio-stream-started" if active else "audio-stream-stopped"
        logger.info(f"[Relay] {event} for call {call_id} by {user_id}")
        await self.registry.emit_to_users(recipients, event, {"callId": call_id, "fromUserId": user_id})
        return True

    @staticmethod
    async def _is_member(db: AsyncSession, call: "Call", user_id: str) -> bool:
        if call.is_group:
            return await ChannelRepository(db).is_participant(call.channel_id, user_id)
        return call.is_participant(user_id)
