"""
Call Coordinator - 1:1 and group call lifecycle

1:1 state machine: pending -> connected -> ended (row deleted).

Every operation re-reads the call row after its store awaits instead of
trusting an earlier read; a concurrent end or disconnect may have happened
in between. Notifications are sent only after the mutation is committed
and are never rolled back if delivery fails.
"""
from typing import Any, Dict, Optional, Tuple, TYPE_CHECKING
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from walky.models.call import CallStatus
from walky.models.user import User
from walky.services.core.repositories import CallRepository, UserRepository
from walky.services.exceptions import (
    CallNotFoundError,
    InvalidArgumentError,
    UserNotFoundError,
)

from .addressing import can_act_on, other_party, recipients_for
from .group import start_group_call, join_group_call
from .validators import validate_descriptor

if TYPE_CHECKING:
    from walky.services.connection import PresenceRegistry

logger = logging.getLogger(__name__)


class CallCoordinator:
    """Initiate / retry / answer / end calls and signal the other side."""

    def __init__(self, registry: "PresenceRegistry"):
        self.registry = registry

    async def initiate(
        self,
        db: AsyncSession,
        caller: User,
        target_username: str,
        offer: Optional[Dict[str, Any]]
    ) -> Tuple[str, str]:
        """
        Create a pending call and ring the target.

        Returns:
            (call_id, target_id)

        Raises:
            InvalidDescriptorError, UserNotFoundError, InvalidArgumentError
        """
        offer = validate_descriptor(offer, "offer")
        if not target_username:
            raise InvalidArgumentError("Missing targetUsername")

        target = await UserRepository(db).get_user_by_username(target_username)
        if not target:
            raise UserNotFoundError("User not found")
        if target.id == caller.id:
            raise InvalidArgumentError("Cannot call yourself")

        call = await CallRepository(db).create_call(caller.id, target.id)
        logger.info(f"[Calls] {caller.username} -> {target.username}: call {call.id} pending")

        await self.registry.emit(target.id, "incoming-call", {
            "callId": call.id,
            "caller": caller.id,
            "callerUsername": caller.username,
            "offer": offer,
        })
        return call.id, target.id

    async def retry(
        self,
        db: AsyncSession,
        actor: User,
        call_id: str,
        offer: Optional[Dict[str, Any]]
    ) -> Tuple[str, str]:
        """
        Re-ring the other participant with a fresh offer. Status is unchanged.

        Returns:
            (call_id, target_id)
        """
        offer = validate_descriptor(offer, "offer")

        call = await CallRepository(db).get_call(call_id)
        if not call or call.is_group:
            raise CallNotFoundError("Call not found")
        target_id = other_party(call, actor.id)
        if not target_id:
            raise CallNotFoundError("Call not found")

        logger.info(f"[Calls] {actor.username} retrying call {call_id}")
        await self.registry.emit(target_id, "call-retry", {
            "callId": call.id,
            "caller": actor.id,
            "callerUsername": actor.username,
            "offer": offer,
        })
        return call.id, target_id

    async def answer(
        self,
        db: AsyncSession,
        actor: User,
        call_id: str,
        answer: Optional[Dict[str, Any]]
    ) -> str:
        """
        Callee accepts: pending -> connected.

        Returns:
            caller_id

        Raises:
            CallNotFoundError if missing or actor is not the recorded callee
        """
        answer = validate_descriptor(answer, "answer")

        calls = CallRepository(db)
        call = await calls.get_call(call_id)
        if not call or call.is_group or call.callee_id != actor.id:
            raise CallNotFoundError("Call not found")

        caller_id = call.caller_id
        if not await calls.update_call_status(call_id, CallStatus.CONNECTED):
            # Ended while we were reading it
            raise CallNotFoundError("Call not found")

        logger.info(f"[Calls] {actor.username} answered call {call_id}")
        await self.registry.emit(caller_id, "call-answered", {
            "callId": call_id,
            "answerer": actor.id,
            "answererUsername": actor.username,
            "answer": answer,
        })
        return caller_id

    async def end(self, db: AsyncSession, actor: User, call_id: str, strict: bool = True) -> bool:
        """
        End a call and tell the other side.

        Args:
            strict: Raise CallNotFoundError for a missing/foreign call
                (request path). When False the call is logged and ignored
                (socket path).

        Returns:
            True if a row was deleted
        """
        calls = CallRepository(db)
        call = await calls.get_call(call_id)

        if not call or not await can_act_on(db, call, actor.id):
            if strict:
                raise CallNotFoundError("Call not found")
            logger.info(f"[Calls] end-call for unknown call {call_id} from {actor.id} ignored")
            return False

        recipients = await recipients_for(db, call, actor.id)

        if not await calls.delete_call(call_id):
            if strict:
                raise CallNotFoundError("Call not found")
            logger.info(f"[Calls] Call {call_id} already ended")
            return False

        logger.info(f"[Calls] {actor.username} ended call {call_id}")
        await self.registry.emit_to_users(recipients, "call-ended", {
            "callId": call_id,
            "endedBy": actor.id,
            "endedByUsername": actor.username,
        })
        return True

    # === Group calls (delegates to group module) ===

    async def start_group_call(self, db: AsyncSession, user: User, channel_id: str) -> Tuple[str, str]:
        return await start_group_call(db, self.registry, user, channel_id)

    async def join_group_call(self, db: AsyncSession, user: User, call_id: str) -> Dict[str, str]:
        return await join_group_call(db, user, call_id)
