"""
Pytest configuration for JournalQ tests

Provides an isolated SQLite database per test, a fake domain store, and
helpers for building httpx.MockTransport upstreams.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any

import pytest

# journalq.api.app initializes the schema at import time; keep that out of the package dir
os.environ.setdefault(
    "JOURNALQ_DB_PATH", str(Path(tempfile.mkdtemp(prefix="journalq-")) / "journalq.db")
)

from journalq.api.middleware.user_auth import clear_token_cache  # noqa: E402
from journalq.contracts.identity import Credential  # noqa: E402
from journalq.observability.telemetry import reset_telemetry  # noqa: E402

TEST_TOKEN = "test-token"
TEST_USER_ID = "user_123"


@pytest.fixture(autouse=True)
def isolated_db(tmp_path, monkeypatch):
    """Point the preference database at a fresh file for every test."""
    db_path = tmp_path / "journalq.db"
    monkeypatch.setenv("JOURNALQ_DB_PATH", str(db_path))
    return db_path


@pytest.fixture(autouse=True)
def clean_state():
    reset_telemetry()
    clear_token_cache()
    yield
    clear_token_cache()


@pytest.fixture
def credential() -> Credential:
    return Credential(user_id=TEST_USER_ID, token=TEST_TOKEN, email="writer@example.com")


class FakeDomainStore:
    """In-memory DomainStore.

    ``failures`` maps a method name (or a collection for create_record) to the
    exception that call should raise.
    """

    def __init__(self, data: dict[str, list[dict[str, Any]]] | None = None):
        self.data = data or {}
        self.failures: dict[str, Exception] = {}
        self.created: list[tuple[str, dict[str, Any]]] = []
        self.calls: list[tuple[str, Any]] = []
        self._next_id = 1

    def _read(self, name: str, key: str, limit: int | None = None) -> list[dict[str, Any]]:
        self.calls.append((name, limit))
        if name in self.failures:
            raise self.failures[name]
        records = self.data.get(key, [])
        return records[:limit] if limit is not None else list(records)

    async def list_upcoming_todos(self, credential, limit):
        return self._read("list_upcoming_todos", "todos", limit)

    async def list_recent_moods(self, credential, limit, days):
        return self._read("list_recent_moods", "moods", limit)

    async def list_active_habits(self, credential, limit):
        return self._read("list_active_habits", "habits", limit)

    async def list_recent_media(self, credential, limit):
        return self._read("list_recent_media", "media", limit)

    async def list_journal_entries(self, credential, params=None):
        limit = (params or {}).get("limit")
        return self._read("list_journal_entries", "journal", limit)

    async def create_record(self, credential, collection, payload):
        self.calls.append(("create_record", collection))
        if collection in self.failures:
            raise self.failures[collection]
        record = {"_id": f"{collection}-{self._next_id}", **payload}
        self._next_id += 1
        self.created.append((collection, payload))
        return record

    def fail_all_reads(self, exc: Exception) -> None:
        for name in (
            "list_upcoming_todos",
            "list_recent_moods",
            "list_active_habits",
            "list_recent_media",
            "list_journal_entries",
        ):
            self.failures[name] = exc


SAMPLE_CONTEXT = {
    "todos": [
        {"_id": "t1", "title": "Call doctor", "dueDate": "2026-10-21", "priority": "high"},
        {"_id": "t2", "title": "Buy groceries", "dueDate": None, "priority": "medium"},
    ],
    "moods": [{"_id": "m1", "mood": "Calm", "date": "2026-10-18", "energy": "Medium"}],
    "habits": [{"_id": "h1", "name": "Morning run", "streak": 4, "frequency": "daily"}],
    "media": [{"_id": "x1", "title": "The Bear", "type": "tv", "status": "in_progress"}],
    "journal": [
        {"_id": "j1", "content": "Long day at work.", "date": "2026-10-18", "mood": "Tired"},
    ],
}


@pytest.fixture
def fake_store() -> FakeDomainStore:
    return FakeDomainStore({k: [dict(r) for r in v] for k, v in SAMPLE_CONTEXT.items()})


@pytest.fixture
def empty_store() -> FakeDomainStore:
    return FakeDomainStore()
