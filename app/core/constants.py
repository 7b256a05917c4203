"""Application constants.

Contains role and status vocabularies, identifier prefixes, KV key names
and the user-facing texts shown when local media cannot be acquired.
"""

# ---------------------------------------------------------------------------
# Roles / statuses
# ---------------------------------------------------------------------------
PARTICIPANT_ROLES: frozenset[str] = frozenset({"employer", "candidate"})
NON_TERMINAL_CALL_STATUSES: frozenset[str] = frozenset({"calling", "active"})
SETTABLE_CALL_STATUSES: frozenset[str] = frozenset({"active", "ended"})

# ---------------------------------------------------------------------------
# Identifier prefixes
# ---------------------------------------------------------------------------
MESSAGE_ID_PREFIX: str = "msg"
CALL_ID_PREFIX: str = "call"

# ---------------------------------------------------------------------------
# Key-value store layout (one key per collection)
# ---------------------------------------------------------------------------
KV_KEY_PREFIX: str = "myhire"
KV_COLLECTION_KEYS: dict[str, str] = {
    "jobs": f"{KV_KEY_PREFIX}:jobs",
    "applications": f"{KV_KEY_PREFIX}:applications",
    "profiles": f"{KV_KEY_PREFIX}:profiles",
    "messages": f"{KV_KEY_PREFIX}:messages",
    "videoCalls": f"{KV_KEY_PREFIX}:videoCalls",
}
KV_INIT_MARKER_KEY: str = f"{KV_KEY_PREFIX}:db"

# Single-row layout for the Supabase backend
SUPABASE_DOCUMENT_ID: str = "portal"

# ---------------------------------------------------------------------------
# Client poller
# ---------------------------------------------------------------------------
POLL_JOB_PREFIX: str = "conversation_poll"
API_TIMEOUT_SECONDS: float = 10.0

# ---------------------------------------------------------------------------
# Media acquisition alerts
# ---------------------------------------------------------------------------
MEDIA_PERMISSION_DENIED_TEXT: str = (
    "Camera/microphone access denied. Please allow access in your browser "
    "settings and try again."
)
MEDIA_DEVICE_NOT_FOUND_TEXT: str = (
    "No camera or microphone found. Please connect a device and try again."
)
MEDIA_DEVICE_BUSY_TEXT: str = (
    "Camera/microphone is already in use by another application. Please close "
    "other apps (Zoom, Teams, etc.) and try again."
)
MEDIA_GENERIC_FAILURE_TEXT: str = (
    "Failed to access camera/microphone. Please check your browser "
    "permissions and try again."
)
