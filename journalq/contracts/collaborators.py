"""
Domain store protocol.

The todo, mood, habit, media and journal stores are external CRUD services.
Reads return lists of raw records in the store's own order; writes return
the created record. Implementations raise UpstreamUnavailable on failure.
"""

from __future__ import annotations

from typing import Any, Protocol

from journalq.contracts.identity import Credential


class DomainStore(Protocol):
    """Protocol for the cross-domain CRUD collaborators."""

    async def list_upcoming_todos(self, credential: Credential, limit: int) -> list[dict[str, Any]]:
        ...

    async def list_recent_moods(
        self, credential: Credential, limit: int, days: int
    ) -> list[dict[str, Any]]:
        ...

    async def list_active_habits(self, credential: Credential, limit: int) -> list[dict[str, Any]]:
        ...

    async def list_recent_media(self, credential: Credential, limit: int) -> list[dict[str, Any]]:
        ...

    async def list_journal_entries(
        self, credential: Credential, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        ...

    async def create_record(
        self, credential: Credential, collection: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        ...
