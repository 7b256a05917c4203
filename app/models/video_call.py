"""Pydantic models for video calls (``videoCalls`` collection)."""

from datetime import datetime

from app.models.base import CamelModel
from app.models.enums import CallStatus, ParticipantRole


class VideoCall(CamelModel):
    """Signaling record for one call attempt within a conversation."""
    id: str
    application_id: str
    initiator_email: str
    initiator_role: ParticipantRole
    status: CallStatus = CallStatus.calling
    started_at: datetime
    ended_at: datetime | None = None
    room_url: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status == CallStatus.ended


# --- Request / response contracts ---

class StartCallRequest(CamelModel):
    """Body of POST /api/v1/videocall."""
    application_id: str | None = None
    initiator_email: str | None = None
    initiator_role: str | None = None


class CallStatusUpdate(CamelModel):
    """Body of PATCH /api/v1/videocall."""
    call_id: str | None = None
    status: str | None = None


class CallResponse(CamelModel):
    """Response wrapper for every /api/v1/videocall endpoint."""
    call: VideoCall | None = None
