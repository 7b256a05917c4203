"""Document store abstraction and the local backends.

A ``Store`` persists the single shared ``Database`` document.  It offers
no transactions of its own; ``transaction()`` wraps read-modify-write in
the document's lock so mutating service operations never interleave.

``get_store()`` returns the lazily-built, process-wide store selected by
``settings.STORE_BACKEND``.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from pydantic import ValidationError as SchemaError

from app.core.config import settings
from app.core.errors import StorageError
from app.db.lock import document_lock
from app.models.database import Database

logger = logging.getLogger(__name__)


class Store(ABC):
    """Persistence for the shared document."""

    name: str = "store"

    @property
    def lock_key(self) -> str:
        """Identity of the underlying document, used to pick its write lock."""
        return f"{self.name}:{id(self)}"

    def prepare(self) -> None:
        """Create or seed the document if it does not exist yet.

        Runs under the document lock with a re-check once the lock is held,
        so first-access creation never races a committed write.  Call it
        before taking the lock yourself; ``transaction()`` does.
        """
        if self._is_prepared():
            return
        with document_lock(self.lock_key):
            if not self._is_prepared():
                self._initialize()

    def _is_prepared(self) -> bool:
        return True

    def _initialize(self) -> None:
        """Backend hook: bring an absent document into existence."""

    @abstractmethod
    def read(self) -> Database:
        """Load the whole document. Raises ``StorageError`` on failure."""

    @abstractmethod
    def write(self, db: Database) -> None:
        """Replace the whole document. Raises ``StorageError`` on failure."""


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------

class MemoryStore(Store):
    """Process-local document; lost on restart."""

    name = "memory"

    def __init__(self, seed: Database | None = None) -> None:
        self._seed: dict[str, Any] = (seed or Database()).to_json()
        self._data: dict[str, Any] = copy.deepcopy(self._seed)

    def read(self) -> Database:
        return Database.model_validate(copy.deepcopy(self._data))

    def write(self, db: Database) -> None:
        self._data = db.to_json()

    def reset(self) -> None:
        """Restore the seed document."""
        self._data = copy.deepcopy(self._seed)


# ---------------------------------------------------------------------------
# JSON file backend
# ---------------------------------------------------------------------------

class FileStore(Store):
    """Document kept as pretty-printed JSON in a single file.

    The file (and its parent directories) are created with an empty
    document on first access.  Writes go to a sibling temp file that is
    then moved over the original, so readers never see a half-written file.
    """

    name = "file"

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    @property
    def lock_key(self) -> str:
        return f"file:{self.path.resolve()}"

    def _is_prepared(self) -> bool:
        return self.path.exists()

    def _initialize(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._dump(Database())
        logger.info("file_store_created", extra={"path": str(self.path)})

    def _dump(self, db: Database) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(json.dumps(db.to_json(), indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)

    def read(self) -> Database:
        try:
            self.prepare()
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return Database.model_validate(raw)
        except (OSError, json.JSONDecodeError, SchemaError) as exc:
            raise StorageError(f"Failed to read {self.path}: {exc}") from exc

    def write(self, db: Database) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._dump(db)
        except OSError as exc:
            raise StorageError(f"Failed to write {self.path}: {exc}") from exc


# ---------------------------------------------------------------------------
# Singleton + transactions
# ---------------------------------------------------------------------------

_store: Store | None = None


def build_store(backend: str) -> Store:
    """Construct the store for a ``STORE_BACKEND`` value."""
    backend = backend.strip().lower()
    if backend == "memory":
        return MemoryStore()
    if backend == "file":
        return FileStore(settings.DATA_FILE)
    if backend == "kv":
        from app.db.kv import KVStore

        return KVStore(
            settings.KV_REST_API_URL,
            settings.KV_REST_API_TOKEN,
            seed=FileStore(settings.DATA_FILE),
        )
    if backend == "supabase":
        from app.db.supabase import SupabaseStore, get_supabase

        return SupabaseStore(get_supabase(), settings.SUPABASE_TABLE)
    raise ValueError(f"Unknown STORE_BACKEND: {backend!r}")


def get_store() -> Store:
    """Return the singleton store, creating it on first call."""
    global _store
    if _store is None:
        _store = build_store(settings.STORE_BACKEND)
        logger.info("store_initialized", extra={"backend": _store.name})
    return _store


@contextmanager
def transaction(store: Store | None = None) -> Iterator[Database]:
    """Atomic read-modify-write of the shared document.

    Yields the freshly read document; mutate it in place.  On normal exit
    the document is written back, unless nothing changed.  If the block
    raises, nothing is written.
    """
    target = store or get_store()
    target.prepare()
    with document_lock(target.lock_key):
        db = target.read()
        before = db.to_json()
        yield db
        if db.to_json() != before:
            target.write(db)
