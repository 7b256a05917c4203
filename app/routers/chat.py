"""Chat endpoints.

GET   /api/v1/chat         -- conversation messages in append order
POST  /api/v1/chat         -- send a message
PATCH /api/v1/chat         -- mark the other party's messages as read
GET   /api/v1/chat/unread  -- unread counter for a participant

Handlers are plain ``def`` so FastAPI runs them in its threadpool; the
document lock in ``app.db.lock`` serializes their writes.
"""

from __future__ import annotations

from fastapi import APIRouter, Query

from app.models.message import (
    MarkReadRequest,
    MarkReadResponse,
    MessageResponse,
    MessagesResponse,
    SendMessageRequest,
    UnreadCountResponse,
)
from app.services.messaging import count_unread, list_messages, mark_read, send_message

router = APIRouter()


@router.get("", response_model=MessagesResponse)
def get_messages(
    application_id: str | None = Query(default=None, alias="applicationId"),
) -> MessagesResponse:
    """Return all messages of one conversation."""
    return MessagesResponse(messages=list_messages(application_id))


@router.post("", response_model=MessageResponse, status_code=201)
def post_message(body: SendMessageRequest) -> MessageResponse:
    """Append a message to the conversation and return it."""
    message = send_message(
        application_id=body.application_id,
        sender=body.sender,
        sender_email=body.sender_email,
        text=body.text,
    )
    return MessageResponse(message=message)


@router.patch("", response_model=MarkReadResponse)
def patch_messages_read(body: MarkReadRequest) -> MarkReadResponse:
    """Mark messages not written by ``userEmail`` as read."""
    updated = mark_read(body.application_id, body.user_email)
    return MarkReadResponse(success=True, updated=updated)


@router.get("/unread", response_model=UnreadCountResponse)
def get_unread_count(
    application_id: str | None = Query(default=None, alias="applicationId"),
    user_email: str | None = Query(default=None, alias="userEmail"),
) -> UnreadCountResponse:
    """Return how many received messages ``userEmail`` has not read yet."""
    return UnreadCountResponse(unread=count_unread(application_id, user_email))
