"""The shared document every store backend reads and writes.

Job, profile and application records belong to other parts of the portal;
they are carried through as opaque JSON objects so a read-modify-write from
this service never drops them.
"""

from typing import Any

from pydantic import Field

from app.models.base import CamelModel
from app.models.message import Message
from app.models.video_call import VideoCall


class Database(CamelModel):
    """Whole-portal document: ``messages`` and ``videoCalls`` plus the rest."""
    jobs: list[dict[str, Any]] = Field(default_factory=list)
    profiles: list[dict[str, Any]] = Field(default_factory=list)
    applications: list[dict[str, Any]] = Field(default_factory=list)
    messages: list[Message] = Field(default_factory=list)
    video_calls: list[VideoCall] = Field(default_factory=list)

    def to_json(self) -> dict[str, Any]:
        """Dump with camelCase keys and JSON-safe values."""
        return self.model_dump(mode="json", by_alias=True)
