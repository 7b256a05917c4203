"""Shared test fixtures.

Provides an in-memory document store installed as the process-wide store,
a FastAPI ``test_client`` on top of it, and a ``PortalApiClient`` that
talks to the app through that test client.
"""

from collections.abc import Generator
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from app.db.store import MemoryStore


@pytest.fixture()
def memory_store() -> Generator[MemoryStore, None, None]:
    """Install a fresh ``MemoryStore`` as the singleton returned by ``get_store``."""
    import app.db.store as store_mod

    store = MemoryStore()
    store_mod._store = store
    yield store
    store_mod._store = None


@pytest.fixture()
def failing_store() -> Generator[MagicMock, None, None]:
    """Install a store whose reads and writes raise ``StorageError``."""
    import app.db.store as store_mod
    from app.core.errors import StorageError

    store = MagicMock()
    store.name = "broken"
    store.lock_key = "broken:test"
    store.read.side_effect = StorageError("disk on fire")
    store.write.side_effect = StorageError("disk on fire")
    store_mod._store = store
    yield store
    store_mod._store = None


@pytest.fixture()
def test_client(memory_store) -> Generator[TestClient, None, None]:
    """Provide a FastAPI TestClient backed by the in-memory store."""
    from app.main import app

    with TestClient(app) as client:
        yield client


@pytest.fixture()
def api_client(test_client: TestClient):
    """``PortalApiClient`` routed through the FastAPI test client."""
    from app.client.api import PortalApiClient

    return PortalApiClient(client=test_client)


@pytest.fixture()
def mock_scheduler() -> Generator[MagicMock, None, None]:
    """Patch the poll scheduler so no background threads are started."""
    with patch("app.scheduler.jobs.scheduler") as mocked:
        mocked.running = True
        mocked.get_job.return_value = MagicMock()
        yield mocked
