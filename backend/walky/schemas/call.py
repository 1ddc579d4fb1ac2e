from typing import Any, Dict, Optional

from .base import CamelModel


class InitiateCallRequest(CamelModel):
    target_username: str
    offer: Optional[Dict[str, Any]] = None


class InitiateCallResponse(CamelModel):
    call_id: str
    target_id: str
    status: str = "initiated"


class RetryCallRequest(CamelModel):
    call_id: str
    offer: Optional[Dict[str, Any]] = None


class RetryCallResponse(CamelModel):
    call_id: str
    target_id: str
    status: str = "retry-sent"


class AnswerCallRequest(CamelModel):
    call_id: str
    answer: Optional[Dict[str, Any]] = None


class AnswerCallResponse(CamelModel):
    call_id: str
    caller_id: str
    status: str = "answered"


class CallIdRequest(CamelModel):
    call_id: str


class EndCallResponse(CamelModel):
    call_id: str
    status: str = "ended"


class StatusResponse(CamelModel):
    status: str
