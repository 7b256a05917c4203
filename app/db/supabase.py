"""Supabase client singleton and the Supabase document backend.

Provides ``get_supabase()`` which returns a lazily-initialized, process-wide
Supabase client using credentials from ``settings``, and ``SupabaseStore``
which keeps the whole shared document in a single jsonb row.
"""

from __future__ import annotations

from supabase import Client, create_client

from app.core.config import settings
from app.core.constants import SUPABASE_DOCUMENT_ID
from app.core.errors import StorageError
from app.db.store import Store
from app.models.database import Database

_client: Client | None = None


def get_supabase() -> Client:
    """Return the singleton Supabase client, creating it on first call."""
    global _client
    if _client is None:
        _client = create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
    return _client


class SupabaseStore(Store):
    """Document stored as ``{id, data}`` in *table* (``data`` is jsonb)."""

    name = "supabase"

    def __init__(self, client: Client, table: str) -> None:
        self._client = client
        self._table = table

    @property
    def lock_key(self) -> str:
        return f"supabase:{self._table}:{SUPABASE_DOCUMENT_ID}"

    def read(self) -> Database:
        try:
            result = (
                self._client.table(self._table)
                .select("data")
                .eq("id", SUPABASE_DOCUMENT_ID)
                .limit(1)
                .execute()
            )
            rows = result.data or []
            if not rows:
                return Database()
            return Database.model_validate(rows[0].get("data") or {})
        except Exception as exc:
            raise StorageError(f"Supabase read from {self._table} failed: {exc}") from exc

    def write(self, db: Database) -> None:
        try:
            self._client.table(self._table).upsert(
                {"id": SUPABASE_DOCUMENT_ID, "data": db.to_json()},
                on_conflict="id",
            ).execute()
        except Exception as exc:
            raise StorageError(f"Supabase write to {self._table} failed: {exc}") from exc
