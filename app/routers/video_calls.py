"""Video call signaling endpoints.

GET   /api/v1/videocall  -- current (ringing or ongoing) call, or null
POST  /api/v1/videocall  -- start a call; answers a ringing one (201 when created)
PATCH /api/v1/videocall  -- answer (``active``) or end (``ended``) a call
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Response

from app.models.video_call import CallResponse, CallStatusUpdate, StartCallRequest
from app.services.video_calls import get_current_call, set_call_status, start_call

router = APIRouter()


@router.get("", response_model=CallResponse)
def get_call(
    application_id: str | None = Query(default=None, alias="applicationId"),
) -> CallResponse:
    """Return the conversation's non-terminal call, polled by both sides."""
    return CallResponse(call=get_current_call(application_id))


@router.post("", response_model=CallResponse)
def post_call(body: StartCallRequest, response: Response) -> CallResponse:
    """Start a new call, or join / answer the existing one."""
    call, created = start_call(
        application_id=body.application_id,
        initiator_email=body.initiator_email,
        initiator_role=body.initiator_role,
    )
    response.status_code = 201 if created else 200
    return CallResponse(call=call)


@router.patch("", response_model=CallResponse)
def patch_call(body: CallStatusUpdate) -> CallResponse:
    """Set a call's status to ``active`` or ``ended``."""
    return CallResponse(call=set_call_status(body.call_id, body.status))
