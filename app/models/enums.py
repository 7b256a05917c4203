"""Enum types for the messaging and call-signaling document."""

from enum import Enum


class ParticipantRole(str, Enum):
    """Logical role of a conversation participant."""
    employer = "employer"
    candidate = "candidate"


class CallStatus(str, Enum):
    """Lifecycle status of a video call."""
    calling = "calling"
    active = "active"
    ended = "ended"
