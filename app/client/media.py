"""Local media session contract.

Signaling never carries media; a client only needs to know whether it
holds a local camera/microphone session, and how to acquire or release it.
Acquisition failures map to the alert shown to the user.
"""

from __future__ import annotations

import logging
from typing import Protocol

from app.core.constants import (
    MEDIA_DEVICE_BUSY_TEXT,
    MEDIA_DEVICE_NOT_FOUND_TEXT,
    MEDIA_GENERIC_FAILURE_TEXT,
    MEDIA_PERMISSION_DENIED_TEXT,
)

logger = logging.getLogger(__name__)


class MediaError(Exception):
    """Local media could not be acquired."""


class MediaPermissionError(MediaError):
    """The user or the platform denied camera/microphone access."""


class MediaDeviceNotFoundError(MediaError):
    """No camera or microphone is connected."""


class MediaDeviceBusyError(MediaError):
    """Another application holds the device."""


_MEDIA_ERROR_TEXTS: dict[type[MediaError], str] = {
    MediaPermissionError: MEDIA_PERMISSION_DENIED_TEXT,
    MediaDeviceNotFoundError: MEDIA_DEVICE_NOT_FOUND_TEXT,
    MediaDeviceBusyError: MEDIA_DEVICE_BUSY_TEXT,
}


def describe_media_error(exc: Exception) -> str:
    """Return the user-facing alert for a failed media acquisition."""
    for error_type, text in _MEDIA_ERROR_TEXTS.items():
        if isinstance(exc, error_type):
            return text
    return MEDIA_GENERIC_FAILURE_TEXT


class MediaSession(Protocol):
    """What the poller needs from a local media implementation."""

    @property
    def active(self) -> bool: ...

    def acquire(self) -> None: ...

    def release(self) -> None: ...


class SignalingOnlyMedia:
    """Media session that only tracks whether it is held.

    Used by headless clients and tests; real clients plug in a session
    backed by their camera/microphone stack.
    """

    def __init__(self) -> None:
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def acquire(self) -> None:
        self._active = True
        logger.debug("media_acquired")

    def release(self) -> None:
        if self._active:
            self._active = False
            logger.debug("media_released")
