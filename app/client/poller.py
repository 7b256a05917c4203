"""Client-side conversation poller.

One ``ConversationPoller`` per open conversation view.  On ``open()`` it
loads messages, checks for a call and marks received messages read, then
re-polls messages and call state every ``POLL_INTERVAL_SECONDS`` on the
shared APScheduler until ``close()``.

Call state observed on each tick drives the local side of the handshake:

* ``calling`` started by someone else  -> ``incoming_call`` is surfaced
* ``active`` without local media       -> join (acquire media)
* ``ended`` or no call at all          -> release media, clear references

Poll failures are logged and swallowed; the view keeps its last known
state and the next tick retries.  The server is the source of truth: a
refresh replaces any optimistically appended messages.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

import httpx

from app.client.api import PortalApiClient
from app.client.media import MediaError, MediaSession, SignalingOnlyMedia, describe_media_error
from app.core.config import settings
from app.core.constants import POLL_JOB_PREFIX
from app.models.enums import CallStatus, ParticipantRole
from app.models.message import Message
from app.models.video_call import VideoCall
from app.scheduler.jobs import cancel_poll, schedule_poll

logger = logging.getLogger(__name__)

# Portal accounts call candidates "jobseeker"; the chat uses "candidate".
_ROLE_ALIASES: dict[str, ParticipantRole] = {
    "employer": ParticipantRole.employer,
    "candidate": ParticipantRole.candidate,
    "jobseeker": ParticipantRole.candidate,
}


class ConversationPoller:
    """Polling client for one participant in one conversation."""

    def __init__(
        self,
        api: PortalApiClient,
        application_id: str,
        user_email: str,
        role: str,
        media: MediaSession | None = None,
        interval_seconds: float | None = None,
        on_alert: Callable[[str], None] | None = None,
    ) -> None:
        if role not in _ROLE_ALIASES:
            raise ValueError(f"Unknown participant role: {role!r}")
        self.api = api
        self.application_id = application_id
        self.user_email = user_email
        self.role = _ROLE_ALIASES[role]
        self.media: MediaSession = media or SignalingOnlyMedia()
        self.interval_seconds = interval_seconds or settings.POLL_INTERVAL_SECONDS
        self.on_alert = on_alert

        self.messages: list[Message] = []
        self.current_call: VideoCall | None = None
        self.incoming_call: VideoCall | None = None
        self.is_open = False

        self._lock = threading.RLock()

    @property
    def job_id(self) -> str:
        return f"{POLL_JOB_PREFIX}:{self.application_id}:{self.user_email}"

    @property
    def in_call(self) -> bool:
        """True once the local side has joined an active call."""
        return (
            self.media.active
            and self.current_call is not None
            and self.current_call.status == CallStatus.active
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> None:
        """Load the conversation once, mark it read and start polling."""
        with self._lock:
            self.is_open = True
            self.refresh_messages()
            self.check_for_calls()
            self.mark_read()
        schedule_poll(self.job_id, self.poll_once, self.interval_seconds)

    def close(self) -> None:
        """Stop polling and release local resources. No server-side effect."""
        cancel_poll(self.job_id)
        with self._lock:
            self.is_open = False
            self._release_call()

    def poll_once(self) -> None:
        """One poll tick: messages, then call state."""
        with self._lock:
            self.refresh_messages()
            self.check_for_calls()

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def refresh_messages(self) -> bool:
        """Replace the local message list with the server's. False on failure."""
        try:
            messages = self.api.list_messages(self.application_id)
        except httpx.HTTPError as exc:
            self._log_poll_failure("list_messages", exc)
            return False
        with self._lock:
            self.messages = messages
        return True

    def mark_read(self) -> None:
        try:
            self.api.mark_read(self.application_id, self.user_email)
        except httpx.HTTPError as exc:
            self._log_poll_failure("mark_read", exc)

    def send_message(self, text: str) -> Message | None:
        """Send *text*; blank input is ignored.

        The created message is appended locally right away and the list is
        then re-synced with the server.  Send failures propagate so the
        view can show an inline error; nothing is resent automatically.
        """
        text = (text or "").strip()
        if not text:
            return None
        message = self.api.send_message(
            self.application_id,
            self.role.value,
            self.user_email,
            text,
        )
        with self._lock:
            self.messages.append(message)
        self.refresh_messages()
        return message

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    def check_for_calls(self) -> None:
        """Fetch the current call and react to its state."""
        try:
            call = self.api.get_current_call(self.application_id)
        except httpx.HTTPError as exc:
            self._log_poll_failure("get_current_call", exc)
            return
        with self._lock:
            self._apply_call(call)

    def _apply_call(self, call: VideoCall | None) -> None:
        if call is None:
            if self.current_call is not None:
                logger.info(
                    "call_gone",
                    extra={
                        "application_id": self.application_id,
                        "call_id": self.current_call.id,
                    },
                )
            self._release_call()
            return

        if self.current_call is not None and self.current_call.id != call.id:
            # Tracked call was replaced between ticks
            self._release_call()
        self.current_call = call

        if call.status == CallStatus.calling:
            self.incoming_call = call if call.initiator_email != self.user_email else None
        elif call.status == CallStatus.active:
            self.incoming_call = None
            if not self.media.active:
                self._join(call)
        else:
            self._release_call()

    def _join(self, call: VideoCall) -> None:
        try:
            self.media.acquire()
        except MediaError as exc:
            logger.warning(
                "call_join_failed",
                extra={"call_id": call.id, "error_message": str(exc)},
            )
            self._alert(describe_media_error(exc))
            return
        logger.info(
            "call_joined",
            extra={"call_id": call.id, "user_email": self.user_email},
        )

    def start_call(self) -> VideoCall:
        """Acquire media, then start (or answer, on glare) the call.

        ``MediaError`` and ``httpx.HTTPError`` propagate; media is released
        again when the server request fails.
        """
        with self._lock:
            self.media.acquire()
            try:
                call = self.api.start_call(
                    self.application_id,
                    self.user_email,
                    self.role.value,
                )
            except httpx.HTTPError:
                self.media.release()
                raise
            self.current_call = call
            self.incoming_call = None
            return call

    def answer_call(self) -> VideoCall | None:
        """Accept the surfaced incoming call. ``None`` if nothing is ringing."""
        with self._lock:
            if self.incoming_call is None:
                return None
            self.media.acquire()
            try:
                call = self.api.set_call_status(self.incoming_call.id, CallStatus.active.value)
            except httpx.HTTPError:
                self.media.release()
                raise
            self.current_call = call
            self.incoming_call = None
            return call

    def end_call(self) -> None:
        """Hang up: best-effort ``ended`` update, then local release."""
        with self._lock:
            if self.current_call is not None:
                try:
                    self.api.set_call_status(self.current_call.id, CallStatus.ended.value)
                except httpx.HTTPError as exc:
                    logger.warning(
                        "call_end_failed",
                        extra={
                            "call_id": self.current_call.id,
                            "error_message": str(exc),
                        },
                    )
            self._release_call()

    def _release_call(self) -> None:
        self.media.release()
        self.current_call = None
        self.incoming_call = None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _alert(self, text: str) -> None:
        if self.on_alert is not None:
            self.on_alert(text)

    def _log_poll_failure(self, operation: str, exc: Exception) -> None:
        logger.warning(
            "poll_failed",
            extra={
                "application_id": self.application_id,
                "operation": operation,
                "error_message": str(exc),
            },
        )
