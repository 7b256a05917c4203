"""Per-document write locks.

Every read-modify-write against a document runs while holding that
document's lock, so concurrent requests in this process apply their writes
one at a time.  Locks are keyed by a backend-specific document key, which
means two store objects pointing at the same file share one lock.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from app.core.errors import StorageError

LOCK_TIMEOUT_SECONDS: float = 10.0

_registry_lock = threading.Lock()
_document_locks: dict[str, threading.Lock] = {}


def get_document_lock(key: str) -> threading.Lock:
    """Return the lock for *key*, creating it on first use."""
    with _registry_lock:
        lock = _document_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _document_locks[key] = lock
        return lock


def is_document_locked(key: str) -> bool:
    """Check if a writer currently holds the lock for *key*."""
    lock = _document_locks.get(key)
    return lock is not None and lock.locked()


@contextmanager
def document_lock(key: str, timeout: float = LOCK_TIMEOUT_SECONDS) -> Iterator[None]:
    """Hold the write lock for *key* for the duration of the block.

    Raises ``StorageError`` if the lock cannot be acquired within *timeout*
    seconds (a stuck writer must not hang every other request forever).
    """
    lock = get_document_lock(key)
    if not lock.acquire(timeout=timeout):
        raise StorageError(f"Timed out waiting for document lock: {key}")
    try:
        yield
    finally:
        lock.release()
