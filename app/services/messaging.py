"""Chat messaging service.

Messages are appended to the shared document's ``messages`` collection and
scoped to a conversation by ``application_id``.  A conversation is read
back in append order; the timestamp is informational only.

Read receipts: ``mark_read`` flags every message the *other* side wrote.
A participant's own messages are never marked read by their own call.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import uuid4

from app.core.constants import MESSAGE_ID_PREFIX, PARTICIPANT_ROLES
from app.core.errors import InvalidSenderError, ValidationError
from app.db.store import get_store, transaction
from app.models.enums import ParticipantRole
from app.models.message import Message

logger = logging.getLogger(__name__)


def _require(**fields: str | None) -> None:
    """Raise ``ValidationError`` naming every missing or blank field."""
    missing = [name for name, value in fields.items() if not value or not value.strip()]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def list_messages(application_id: str | None) -> list[Message]:
    """Return every message of the conversation in append order."""
    _require(application_id=application_id)
    db = get_store().read()
    return [m for m in db.messages if m.application_id == application_id]


def send_message(
    application_id: str | None,
    sender: str | None,
    sender_email: str | None,
    text: str | None,
) -> Message:
    """Validate and append a new unread message, returning it.

    Raises ``ValidationError`` if any field is missing or ``text`` is blank
    after trimming, and ``InvalidSenderError`` if *sender* is not a
    participant role.  Nothing is written when validation fails.
    """
    _require(
        application_id=application_id,
        sender=sender,
        sender_email=sender_email,
        text=text,
    )
    if sender not in PARTICIPANT_ROLES:
        raise InvalidSenderError("Sender must be 'employer' or 'candidate'")

    message = Message(
        id=f"{MESSAGE_ID_PREFIX}-{uuid4()}",
        application_id=application_id,
        sender=ParticipantRole(sender),
        sender_email=sender_email,
        text=text.strip(),
        timestamp=datetime.now(timezone.utc),
        read=False,
    )

    with transaction() as db:
        db.messages.append(message)

    logger.info(
        "message_sent",
        extra={
            "message_id": message.id,
            "application_id": application_id,
            "sender": sender,
        },
    )
    return message


def mark_read(application_id: str | None, user_email: str | None) -> int:
    """Mark the other party's messages in the conversation as read.

    Idempotent.  Returns the number of messages that flipped to read;
    when that is zero the document is left untouched.
    """
    _require(application_id=application_id, user_email=user_email)

    updated = 0
    with transaction() as db:
        for message in db.messages:
            if (
                message.application_id == application_id
                and message.sender_email != user_email
                and not message.read
            ):
                message.read = True
                updated += 1

    if updated:
        logger.info(
            "messages_marked_read",
            extra={
                "application_id": application_id,
                "reader": user_email,
                "count": updated,
            },
        )
    return updated


def count_unread(application_id: str | None, user_email: str | None) -> int:
    """Number of unread messages *user_email* has received in the conversation."""
    _require(application_id=application_id, user_email=user_email)
    db = get_store().read()
    return sum(
        1
        for m in db.messages
        if m.application_id == application_id
        and m.sender_email != user_email
        and not m.read
    )
