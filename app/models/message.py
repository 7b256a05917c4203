"""Pydantic models for chat messages (``messages`` collection)."""

from datetime import datetime

from app.models.base import CamelModel
from app.models.enums import ParticipantRole


class Message(CamelModel):
    """A single chat message. Immutable after creation except ``read``."""
    id: str
    application_id: str
    sender: ParticipantRole
    sender_email: str
    text: str
    timestamp: datetime
    read: bool = False


# --- Request / response contracts ---

class SendMessageRequest(CamelModel):
    """Body of POST /api/v1/chat. Fields are validated by the service."""
    application_id: str | None = None
    sender: str | None = None
    sender_email: str | None = None
    text: str | None = None


class MarkReadRequest(CamelModel):
    """Body of PATCH /api/v1/chat."""
    application_id: str | None = None
    user_email: str | None = None


class MessagesResponse(CamelModel):
    """Response for GET /api/v1/chat."""
    messages: list[Message] = []


class MessageResponse(CamelModel):
    """Response for POST /api/v1/chat."""
    message: Message


class MarkReadResponse(CamelModel):
    """Response for PATCH /api/v1/chat."""
    success: bool = True
    updated: int = 0


class UnreadCountResponse(CamelModel):
    """Response for GET /api/v1/chat/unread."""
    unread: int = 0
