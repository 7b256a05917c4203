"""HTTP client for the chat and video call endpoints.

A thin synchronous ``httpx`` wrapper that speaks the camelCase wire format
and returns the same pydantic models the server uses.  Transport and HTTP
status failures surface as ``httpx.HTTPError`` (``HTTPStatusError`` for
4xx/5xx); pollers treat them as transient.
"""

from __future__ import annotations

import logging

import httpx

from app.core.constants import API_TIMEOUT_SECONDS
from app.models.message import Message
from app.models.video_call import VideoCall

logger = logging.getLogger(__name__)

CHAT_PATH = "/api/v1/chat"
VIDEO_CALL_PATH = "/api/v1/videocall"


class PortalApiClient:
    """Client for one portal server.

    Pass *client* to reuse an existing ``httpx.Client`` (e.g. a FastAPI
    ``TestClient``); otherwise one is created for *base_url*.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        client: httpx.Client | None = None,
        timeout: float = API_TIMEOUT_SECONDS,
    ) -> None:
        self._http = client or httpx.Client(base_url=base_url, timeout=timeout)

    def close(self) -> None:
        self._http.close()

    # -- chat ---------------------------------------------------------------

    def list_messages(self, application_id: str) -> list[Message]:
        response = self._http.get(CHAT_PATH, params={"applicationId": application_id})
        response.raise_for_status()
        return [Message.model_validate(m) for m in response.json().get("messages", [])]

    def send_message(
        self,
        application_id: str,
        sender: str,
        sender_email: str,
        text: str,
    ) -> Message:
        response = self._http.post(
            CHAT_PATH,
            json={
                "applicationId": application_id,
                "sender": sender,
                "senderEmail": sender_email,
                "text": text,
            },
        )
        response.raise_for_status()
        return Message.model_validate(response.json()["message"])

    def mark_read(self, application_id: str, user_email: str) -> int:
        response = self._http.patch(
            CHAT_PATH,
            json={"applicationId": application_id, "userEmail": user_email},
        )
        response.raise_for_status()
        return int(response.json().get("updated", 0))

    def count_unread(self, application_id: str, user_email: str) -> int:
        response = self._http.get(
            f"{CHAT_PATH}/unread",
            params={"applicationId": application_id, "userEmail": user_email},
        )
        response.raise_for_status()
        return int(response.json().get("unread", 0))

    # -- video calls --------------------------------------------------------

    def get_current_call(self, application_id: str) -> VideoCall | None:
        response = self._http.get(VIDEO_CALL_PATH, params={"applicationId": application_id})
        response.raise_for_status()
        raw = response.json().get("call")
        return VideoCall.model_validate(raw) if raw else None

    def start_call(self, application_id: str, initiator_email: str, initiator_role: str) -> VideoCall:
        response = self._http.post(
            VIDEO_CALL_PATH,
            json={
                "applicationId": application_id,
                "initiatorEmail": initiator_email,
                "initiatorRole": initiator_role,
            },
        )
        response.raise_for_status()
        return VideoCall.model_validate(response.json()["call"])

    def set_call_status(self, call_id: str, status: str) -> VideoCall:
        response = self._http.patch(
            VIDEO_CALL_PATH,
            json={"callId": call_id, "status": status},
        )
        response.raise_for_status()
        return VideoCall.model_validate(response.json()["call"])
