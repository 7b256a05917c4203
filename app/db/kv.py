"""Vercel KV / Upstash REST backend.

Each collection lives under its own key (``myhire:messages`` ...) as a JSON
string.  Reads go through ``/pipeline``; writes go through ``/multi-exec``
so all collections are replaced in one MULTI/EXEC transaction.  On first
use an empty KV is seeded from another store (normally the JSON file).
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

import httpx
from pydantic import ValidationError as SchemaError

from app.core.constants import API_TIMEOUT_SECONDS, KV_COLLECTION_KEYS, KV_INIT_MARKER_KEY
from app.core.errors import StorageError
from app.db.store import Store
from app.models.database import Database

logger = logging.getLogger(__name__)


class KVStore(Store):
    """Shared document stored in a Redis-compatible REST key-value service."""

    name = "kv"

    def __init__(
        self,
        url: str,
        token: str,
        seed: Store | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        if not url or not token:
            raise ValueError("KV_REST_API_URL and KV_REST_API_TOKEN are required for the kv backend")
        self._url = url.rstrip("/")
        self._seed = seed
        self._initialized = False
        self._client = client or httpx.Client(
            base_url=self._url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=API_TIMEOUT_SECONDS,
        )

    @property
    def lock_key(self) -> str:
        return f"kv:{self._url}"

    def _execute(self, endpoint: str, commands: list[list[str]]) -> list[Any]:
        """POST a batch of commands and return their results in order."""
        try:
            response = self._client.post(endpoint, json=commands)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise StorageError(f"KV request to {endpoint} failed: {exc}") from exc

        results: list[Any] = []
        for entry in payload:
            if "error" in entry:
                raise StorageError(f"KV command failed: {entry['error']}")
            results.append(entry.get("result"))
        return results

    def _put(self, db: Database, mark_initialized: bool = False) -> None:
        data = db.to_json()
        commands = [
            ["SET", key, json.dumps(data[field])]
            for field, key in KV_COLLECTION_KEYS.items()
        ]
        if mark_initialized:
            marker = {
                "initialized": True,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
            commands.append(["SET", KV_INIT_MARKER_KEY, json.dumps(marker)])
        self._execute("/multi-exec", commands)

    def _is_prepared(self) -> bool:
        return self._initialized

    def _initialize(self) -> None:
        (exists,) = self._execute("/pipeline", [["EXISTS", KV_INIT_MARKER_KEY]])
        if not exists:
            seed_db = self._seed.read() if self._seed is not None else Database()
            self._put(seed_db, mark_initialized=True)
            logger.info(
                "kv_store_seeded",
                extra={
                    "messages": len(seed_db.messages),
                    "video_calls": len(seed_db.video_calls),
                },
            )
        self._initialized = True

    def read(self) -> Database:
        self.prepare()
        fields = list(KV_COLLECTION_KEYS.items())
        values = self._execute("/pipeline", [["GET", key] for _, key in fields])

        try:
            raw = {
                field: json.loads(value) if value else []
                for (field, _), value in zip(fields, values)
            }
            return Database.model_validate(raw)
        except (json.JSONDecodeError, TypeError, SchemaError) as exc:
            raise StorageError(f"KV document is malformed: {exc}") from exc

    def write(self, db: Database) -> None:
        self.prepare()
        self._put(db)
