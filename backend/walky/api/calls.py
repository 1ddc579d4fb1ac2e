"""
Calls API - 1:1 call signalling

Implements:
- Initiate / retry / answer / end
- Audio stream start/stop flags

Media is relayed over the WebSocket; these endpoints only move call state
and notify the other party.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from walky.api.deps import get_current_user, get_hub, http_error
from walky.models.database import get_db
from walky.models.user import User
from walky.schemas.call import (
    AnswerCallRequest,
    AnswerCallResponse,
    CallIdRequest,
    EndCallResponse,
    InitiateCallRequest,
    InitiateCallResponse,
    RetryCallRequest,
    RetryCallResponse,
    StatusResponse,
)
from walky.services.exceptions import WalkyError
from walky.services.hub import RelayHub

router = APIRouter()


@router.post("/calls/initiate", response_model=InitiateCallResponse)
async def initiate_call(
    req: InitiateCallRequest,
    db: AsyncSession = Depends(get_db),
    hub: RelayHub = Depends(get_hub),
    current_user: User = Depends(get_current_user)
):
    """Create a pending call and ring the target's live connections."""
    try:
        call_id, target_id = await hub.calls.initiate(db, current_user, req.target_username, req.offer)
    except WalkyError as e:
        raise http_error(e)
    return InitiateCallResponse(call_id=call_id, target_id=target_id)


@router.post("/calls/retry", response_model=RetryCallResponse)
async def retry_call(
    req: RetryCallRequest,
    db: AsyncSession = Depends(get_db),
    hub: RelayHub = Depends(get_hub),
    current_user: User = Depends(get_current_user)
):
    try:
        call_id, target_id = await hub.calls.retry(db, current_user, req.call_id, req.offer)
    except WalkyError as e:
        raise http_error(e)
    return RetryCallResponse(call_id=call_id, target_id=target_id)


@router.post("/calls/answer", response_model=AnswerCallResponse)
async def answer_call(
    req: AnswerCallRequest,
    db: AsyncSession = Depends(get_db),
    hub: RelayHub = Depends(get_hub),
    current_user: User = Depends(get_current_user)
):
    """Only the recorded callee can answer; anyone else gets 404."""
    try:
        caller_id = await hub.calls.answer(db, current_user, req.call_id, req.answer)
    except WalkyError as e:
        raise http_error(e)
    return AnswerCallResponse(call_id=req.call_id, caller_id=caller_id)


@router.post("/calls/end", response_model=EndCallResponse)
async def end_call(
    req: CallIdRequest,
    db: AsyncSession = Depends(get_db),
    hub: RelayHub = Depends(get_hub),
    current_user: User = Depends(get_current_user)
):
    try:
        await hub.calls.end(db, current_user, req.call_id, strict=True)
    except WalkyError as e:
        raise http_error(e)
    return EndCallResponse(call_id=req.call_id)


@router.post("/calls/start-audio", response_model=StatusResponse)
async def start_audio(
    req: CallIdRequest,
    db: AsyncSession = Depends(get_db),
    hub: RelayHub = Depends(get_hub),
    current_user: User = Depends(get_current_user)
):
    try:
        await hub.audio.start_stream(db, req.call_id, current_user.id, strict=True)
    except WalkyError as e:
        raise http_error(e)
    return StatusResponse(status="audio-stream-started")


@router.post("/calls/stop-audio", response_model=StatusResponse)
async def stop_audio(
    req: CallIdRequest,
    db: AsyncSession = Depends(get_db),
    hub: RelayHub = Depends(get_hub),
    current_user: User = Depends(get_current_user)
):
    try:
        await hub.audio.stop_stream(db, req.call_id, current_user.id, strict=True)
    except WalkyError as e:
        raise http_error(e)
    return StatusResponse(status="audio-stream-stopped")
