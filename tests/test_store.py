"""Unit tests for the document store backends, locking and transactions."""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import httpx
import pytest

from app.core.errors import StorageError
from app.db.lock import document_lock, get_document_lock, is_document_locked
from app.db.store import FileStore, MemoryStore, build_store, transaction
from app.models.database import Database
from app.models.message import Message


def _message(application_id: str = "app-1", text: str = "hi") -> Message:
    return Message(
        id=f"msg-{text}",
        application_id=application_id,
        sender="employer",
        sender_email="hr@acme.com",
        text=text,
        timestamp=datetime(2026, 1, 1, tzinfo=timezone.utc),
    )


def _chainable_table_mock() -> MagicMock:
    """Return a mock that supports fluent chaining."""
    m = MagicMock()
    for method in ("select", "upsert", "eq", "limit"):
        getattr(m, method).return_value = m
    return m


# ---------------------------------------------------------------------------
# MemoryStore
# ---------------------------------------------------------------------------


class TestMemoryStore:
    """Process-local backend."""

    def test_starts_empty(self) -> None:
        db = MemoryStore().read()

        assert db.messages == []
        assert db.video_calls == []

    def test_read_returns_copy(self) -> None:
        """Mutating a read document does not leak into the store."""
        store = MemoryStore()
        db = store.read()
        db.messages.append(_message())

        assert store.read().messages == []

    def test_reset_restores_seed(self) -> None:
        seed = Database(jobs=[{"id": "job-1"}])
        store = MemoryStore(seed=seed)
        db = store.read()
        db.messages.append(_message())
        store.write(db)

        store.reset()

        assert store.read().messages == []
        assert store.read().jobs == [{"id": "job-1"}]


# ---------------------------------------------------------------------------
# FileStore
# ---------------------------------------------------------------------------


class TestFileStore:
    """JSON file backend."""

    def test_creates_file_on_first_read(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "db.json"

        db = FileStore(path).read()

        assert path.exists()
        assert db.messages == []
        assert json.loads(path.read_text())["videoCalls"] == []

    def test_write_then_read(self, tmp_path: Path) -> None:
        store = FileStore(tmp_path / "db.json")
        db = store.read()
        db.messages.append(_message())
        store.write(db)

        assert [m.text for m in FileStore(tmp_path / "db.json").read().messages] == ["hi"]

    def test_preserves_unrelated_collections(self, tmp_path: Path) -> None:
        """Job/profile/application records survive a read-modify-write."""
        path = tmp_path / "db.json"
        path.write_text(
            json.dumps(
                {
                    "jobs": [{"id": "job-1", "title": "Engineer"}],
                    "profiles": [],
                    "applications": [{"id": "app-1", "chatEnabled": True}],
                    "messages": [],
                    "videoCalls": [],
                }
            )
        )
        store = FileStore(path)

        with transaction(store) as db:
            db.messages.append(_message())

        raw = json.loads(path.read_text())
        assert raw["jobs"] == [{"id": "job-1", "title": "Engineer"}]
        assert raw["applications"] == [{"id": "app-1", "chatEnabled": True}]
        assert len(raw["messages"]) == 1

    def test_no_temp_file_left_behind(self, tmp_path: Path) -> None:
        store = FileStore(tmp_path / "db.json")
        store.write(Database())

        assert sorted(p.name for p in tmp_path.iterdir()) == ["db.json"]

    def test_corrupt_file_raises_storage_error(self, tmp_path: Path) -> None:
        path = tmp_path / "db.json"
        path.write_text("{not json")

        with pytest.raises(StorageError):
            FileStore(path).read()

    def test_first_read_defers_to_locked_writer(self, tmp_path: Path) -> None:
        """A reader finding no file waits for the lock and keeps the committed write."""
        path = tmp_path / "db.json"
        store = FileStore(path)
        seen: list[Database] = []

        with document_lock(store.lock_key):
            reader = threading.Thread(target=lambda: seen.append(store.read()))
            reader.start()
            reader.join(timeout=0.2)
            assert reader.is_alive()
            assert not path.exists()
            store.write(Database(messages=[_message()]))

        reader.join(timeout=5)

        assert [m.text for m in seen[0].messages] == ["hi"]
        assert len(json.loads(path.read_text())["messages"]) == 1

    def test_concurrent_first_reads_create_file_once(self, tmp_path: Path) -> None:
        path = tmp_path / "db.json"
        workers = 10
        barrier = threading.Barrier(workers)
        errors: list[Exception] = []

        def first_read() -> None:
            barrier.wait()
            try:
                FileStore(path).read()
            except StorageError as exc:
                errors.append(exc)

        with patch.object(
            FileStore, "_initialize", autospec=True, side_effect=FileStore._initialize
        ) as mock_init:
            threads = [threading.Thread(target=first_read) for _ in range(workers)]
            for t in threads:
                t.start()
            for t in threads:
                t.join(timeout=10)

        assert errors == []
        assert mock_init.call_count == 1
        assert sorted(p.name for p in tmp_path.iterdir()) == ["db.json"]

    def test_same_path_shares_lock_key(self, tmp_path: Path) -> None:
        assert FileStore(tmp_path / "db.json").lock_key == FileStore(tmp_path / "db.json").lock_key


# ---------------------------------------------------------------------------
# Locking / transactions
# ---------------------------------------------------------------------------


class TestTransaction:
    """Atomic read-modify-write."""

    def test_writes_changes(self) -> None:
        store = MemoryStore()

        with transaction(store) as db:
            db.messages.append(_message())

        assert len(store.read().messages) == 1

    def test_no_write_when_unchanged(self) -> None:
        store = MemoryStore()

        with patch.object(store, "write") as mock_write:
            with transaction(store):
                pass

        mock_write.assert_not_called()

    def test_no_write_when_block_raises(self) -> None:
        store = MemoryStore()

        with pytest.raises(RuntimeError):
            with transaction(store) as db:
                db.messages.append(_message())
                raise RuntimeError("boom")

        assert store.read().messages == []
        assert not is_document_locked(store.lock_key)

    def test_concurrent_appends_are_not_lost(self) -> None:
        """Writers serialize, so every append survives."""
        store = MemoryStore()

        def append(i: int) -> None:
            with transaction(store) as db:
                db.messages.append(_message(text=f"m{i}"))

        threads = [threading.Thread(target=append, args=(i,)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(store.read().messages) == 20

    def test_lock_timeout_raises_storage_error(self) -> None:
        lock = get_document_lock("test:held")
        lock.acquire()
        try:
            with pytest.raises(StorageError):
                with document_lock("test:held", timeout=0.01):
                    pass
        finally:
            lock.release()

    def test_is_document_locked(self) -> None:
        with document_lock("test:probe"):
            assert is_document_locked("test:probe") is True
        assert is_document_locked("test:probe") is False


# ---------------------------------------------------------------------------
# build_store
# ---------------------------------------------------------------------------


class TestBuildStore:
    """Backend selection from settings."""

    def test_memory(self) -> None:
        assert isinstance(build_store("memory"), MemoryStore)

    def test_file_uses_data_file(self, tmp_path: Path) -> None:
        with patch("app.db.store.settings") as mock_settings:
            mock_settings.DATA_FILE = str(tmp_path / "db.json")
            store = build_store("FILE")

        assert isinstance(store, FileStore)
        assert store.path == tmp_path / "db.json"

    def test_supabase(self) -> None:
        from app.db.supabase import SupabaseStore

        with patch("app.db.supabase.get_supabase", return_value=MagicMock()):
            store = build_store("supabase")

        assert isinstance(store, SupabaseStore)

    def test_kv_requires_credentials(self) -> None:
        with patch("app.db.store.settings") as mock_settings:
            mock_settings.KV_REST_API_URL = ""
            mock_settings.KV_REST_API_TOKEN = ""
            mock_settings.DATA_FILE = "unused.json"
            with pytest.raises(ValueError):
                build_store("kv")

    def test_unknown_backend(self) -> None:
        with pytest.raises(ValueError):
            build_store("mongo")


# ---------------------------------------------------------------------------
# SupabaseStore
# ---------------------------------------------------------------------------


class TestSupabaseStore:
    """Single-row jsonb backend."""

    def test_read_missing_row_returns_empty(self) -> None:
        from app.db.supabase import SupabaseStore

        client = MagicMock()
        table = _chainable_table_mock()
        table.execute.return_value = MagicMock(data=[])
        client.table.return_value = table

        db = SupabaseStore(client, "portal_documents").read()

        assert db.messages == []
        client.table.assert_called_with("portal_documents")
        table.eq.assert_called_with("id", "portal")

    def test_read_row(self) -> None:
        from app.db.supabase import SupabaseStore

        client = MagicMock()
        table = _chainable_table_mock()
        table.execute.return_value = MagicMock(
            data=[{"data": Database(messages=[_message()]).to_json()}]
        )
        client.table.return_value = table

        db = SupabaseStore(client, "portal_documents").read()

        assert [m.text for m in db.messages] == ["hi"]

    def test_write_upserts_document(self) -> None:
        from app.db.supabase import SupabaseStore

        client = MagicMock()
        table = _chainable_table_mock()
        client.table.return_value = table

        SupabaseStore(client, "portal_documents").write(Database(messages=[_message()]))

        payload = table.upsert.call_args.args[0]
        assert payload["id"] == "portal"
        assert payload["data"]["messages"][0]["senderEmail"] == "hr@acme.com"
        assert table.upsert.call_args.kwargs["on_conflict"] == "id"

    def test_failure_wrapped(self) -> None:
        from app.db.supabase import SupabaseStore

        client = MagicMock()
        client.table.side_effect = Exception("Connection refused")

        with pytest.raises(StorageError):
            SupabaseStore(client, "portal_documents").read()

    def test_get_supabase_is_singleton(self) -> None:
        mock_client = MagicMock()
        with patch("app.db.supabase.create_client", return_value=mock_client) as mock_create:
            import app.db.supabase as supa_mod

            supa_mod._client = None
            first = supa_mod.get_supabase()
            second = supa_mod.get_supabase()
            assert first is second
            mock_create.assert_called_once()
            supa_mod._client = None


# ---------------------------------------------------------------------------
# KVStore
# ---------------------------------------------------------------------------


class _FakeKV:
    """In-memory stand-in for the Upstash REST API."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.requests: list[tuple[str, list[list[str]]]] = []
        self.fail = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.fail:
            return httpx.Response(503, json={"error": "unavailable"})
        commands = json.loads(request.content)
        self.requests.append((request.url.path, commands))
        results: list[dict[str, Any]] = []
        for command in commands:
            op, key = command[0], command[1]
            if op == "GET":
                results.append({"result": self.data.get(key)})
            elif op == "SET":
                self.data[key] = command[2]
                results.append({"result": "OK"})
            elif op == "EXISTS":
                results.append({"result": int(key in self.data)})
            else:
                results.append({"error": f"ERR unknown command {op}"})
        return httpx.Response(200, json=results)

    def store(self, seed=None):
        from app.db.kv import KVStore

        client = httpx.Client(
            base_url="https://kv.example.com",
            transport=httpx.MockTransport(self.handler),
        )
        return KVStore("https://kv.example.com", "token", seed=seed, client=client)


class TestKVStore:
    """Vercel KV / Upstash REST backend."""

    def test_seeds_from_seed_store_once(self) -> None:
        fake = _FakeKV()
        seed = MemoryStore(seed=Database(messages=[_message()]))
        store = fake.store(seed=seed)

        first = store.read()
        store.read()

        assert [m.text for m in first.messages] == ["hi"]
        assert "myhire:db" in fake.data
        seed_writes = [cmds for path, cmds in fake.requests if path == "/multi-exec"]
        assert len(seed_writes) == 1

    def test_concurrent_first_reads_seed_once(self) -> None:
        """Stores on the same KV URL share a lock, so only one seeds."""
        fake = _FakeKV()
        seed = MemoryStore(seed=Database(messages=[_message()]))
        stores = [fake.store(seed=seed) for _ in range(6)]
        barrier = threading.Barrier(len(stores))
        seen: list[Database] = []

        def first_read(store) -> None:
            barrier.wait()
            seen.append(store.read())

        threads = [threading.Thread(target=first_read, args=(s,)) for s in stores]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        seed_writes = [cmds for path, cmds in fake.requests if path == "/multi-exec"]
        assert len(seed_writes) == 1
        assert [[m.text for m in db.messages] for db in seen] == [["hi"]] * len(stores)

    def test_transaction_seeds_before_locking(self) -> None:
        fake = _FakeKV()
        store = fake.store(seed=MemoryStore(seed=Database(messages=[_message()])))

        with transaction(store) as db:
            db.messages.append(_message(text="second"))

        texts = [m["text"] for m in json.loads(fake.data["myhire:messages"])]
        assert texts == ["hi", "second"]

    def test_existing_kv_not_reseeded(self) -> None:
        fake = _FakeKV()
        fake.data["myhire:db"] = json.dumps({"initialized": True})
        fake.data["myhire:messages"] = json.dumps([])
        store = fake.store(seed=MemoryStore(seed=Database(messages=[_message()])))

        assert store.read().messages == []

    def test_write_sets_every_collection_in_one_transaction(self) -> None:
        fake = _FakeKV()
        store = fake.store()
        store.read()
        fake.requests.clear()

        store.write(Database(messages=[_message()]))

        assert len(fake.requests) == 1
        path, commands = fake.requests[0]
        assert path == "/multi-exec"
        keys = {c[1] for c in commands}
        assert keys == {
            "myhire:jobs",
            "myhire:applications",
            "myhire:profiles",
            "myhire:messages",
            "myhire:videoCalls",
        }
        assert json.loads(fake.data["myhire:messages"])[0]["text"] == "hi"

    def test_http_failure_wrapped(self) -> None:
        fake = _FakeKV()
        fake.fail = True

        with pytest.raises(StorageError):
            fake.store().read()

    def test_command_error_wrapped(self) -> None:
        from app.db.kv import KVStore

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"error": "WRONGPASS"}])

        client = httpx.Client(base_url="https://kv.example.com", transport=httpx.MockTransport(handler))
        store = KVStore("https://kv.example.com", "token", client=client)

        with pytest.raises(StorageError):
            store.read()
