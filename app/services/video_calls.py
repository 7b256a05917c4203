"""Video call signaling service.

Negotiates call *state* only; no media flows through here.  Each
conversation (``application_id``) has at most one non-terminal call
(``calling`` or ``active``) at any time:

    (none) --start_call--> calling --start_call / set active--> active
    calling | active --set ended--> ended   (terminal, never revived)

Glare: when both participants start a call in the same poll window, the
second ``start_call`` finds the first one ringing and answers it instead
of creating a second record.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import uuid4

from app.core.config import settings
from app.core.constants import (
    CALL_ID_PREFIX,
    NON_TERMINAL_CALL_STATUSES,
    PARTICIPANT_ROLES,
    SETTABLE_CALL_STATUSES,
)
from app.core.errors import NotFoundError, ValidationError
from app.db.store import get_store, transaction
from app.models.database import Database
from app.models.enums import CallStatus, ParticipantRole
from app.models.video_call import VideoCall

logger = logging.getLogger(__name__)


def _find_current(db: Database, application_id: str) -> VideoCall | None:
    """Most recent non-terminal call of the conversation, if any."""
    for call in reversed(db.video_calls):
        if (
            call.application_id == application_id
            and call.status.value in NON_TERMINAL_CALL_STATUSES
        ):
            return call
    return None


def _room_url(call_id: str) -> str | None:
    base = settings.VIDEO_ROOM_BASE_URL.strip()
    if not base:
        return None
    return f"{base.rstrip('/')}/{call_id}"


def get_current_call(application_id: str | None) -> VideoCall | None:
    """Return the ringing or ongoing call of the conversation, or ``None``."""
    if not application_id or not application_id.strip():
        raise ValidationError("Application ID is required")
    return _find_current(get_store().read(), application_id)


def start_call(
    application_id: str | None,
    initiator_email: str | None,
    initiator_role: str | None,
) -> tuple[VideoCall, bool]:
    """Start, answer or rejoin the conversation's call.

    Returns ``(call, created)``:

    * an ``active`` call is returned unchanged (rejoin);
    * a ``calling`` call is promoted to ``active`` (the second caller
      answers the first);
    * otherwise a new ``calling`` call is created and ``created`` is True.
    """
    missing = [
        name
        for name, value in (
            ("applicationId", application_id),
            ("initiatorEmail", initiator_email),
            ("initiatorRole", initiator_role),
        )
        if not value or not value.strip()
    ]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    if initiator_role not in PARTICIPANT_ROLES:
        raise ValidationError("initiatorRole must be 'employer' or 'candidate'")

    with transaction() as db:
        existing = _find_current(db, application_id)

        if existing is not None and existing.status == CallStatus.active:
            logger.info(
                "call_rejoined",
                extra={"call_id": existing.id, "application_id": application_id},
            )
            return existing, False

        if existing is not None:
            existing.status = CallStatus.active
            logger.info(
                "call_status_changed",
                extra={
                    "call_id": existing.id,
                    "application_id": application_id,
                    "from_status": CallStatus.calling.value,
                    "to_status": CallStatus.active.value,
                    "answered_by": initiator_email,
                },
            )
            return existing, False

        call_id = f"{CALL_ID_PREFIX}-{uuid4()}"
        call = VideoCall(
            id=call_id,
            application_id=application_id,
            initiator_email=initiator_email,
            initiator_role=ParticipantRole(initiator_role),
            status=CallStatus.calling,
            started_at=datetime.now(timezone.utc),
            room_url=_room_url(call_id),
        )
        db.video_calls.append(call)

    logger.info(
        "call_created",
        extra={
            "call_id": call.id,
            "application_id": application_id,
            "initiator_email": initiator_email,
            "initiator_role": initiator_role,
        },
    )
    return call, True


def set_call_status(call_id: str | None, status: str | None) -> VideoCall:
    """Answer (``active``) or terminate (``ended``) a call.

    ``calling`` cannot be set here; it is only reachable through
    ``start_call``.  An already ended call is returned unchanged.
    """
    if not call_id or not status:
        raise ValidationError("Missing required fields: callId, status")
    if status not in SETTABLE_CALL_STATUSES:
        raise ValidationError("Status must be 'active' or 'ended'")

    with transaction() as db:
        call = next((c for c in db.video_calls if c.id == call_id), None)
        if call is None:
            raise NotFoundError("Call not found")

        if call.is_terminal:
            logger.info("call_already_ended", extra={"call_id": call_id})
            return call

        previous = call.status
        call.status = CallStatus(status)
        if call.status == CallStatus.ended:
            call.ended_at = datetime.now(timezone.utc)

    if previous != call.status:
        logger.info(
            "call_status_changed",
            extra={
                "call_id": call_id,
                "application_id": call.application_id,
                "from_status": previous.value,
                "to_status": call.status.value,
            },
        )
    return call


def end_call(call_id: str | None) -> VideoCall:
    """Hang up or cancel a call."""
    return set_call_status(call_id, CallStatus.ended.value)
