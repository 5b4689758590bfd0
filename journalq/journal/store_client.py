"""
Domain Store Client - HTTP access to the todo, mood, habit, media and journal stores.

All calls forward the caller's bearer token and run under the shared upstream
timeout. Failures are never swallowed here: transport errors, non-2xx
statuses and malformed bodies raise UpstreamUnavailable and the caller decides
whether to degrade.
"""

from __future__ import annotations

from typing import Any

import httpx

from journalq.config import DOMAIN_STORE_URL, UPSTREAM_TIMEOUT_SECONDS
from journalq.contracts.identity import Credential
from journalq.errors import UpstreamUnavailable
from journalq.observability.logging import get_logger
from journalq.observability.telemetry import counter, time_block

logger = get_logger(__name__)

WRITABLE_COLLECTIONS = frozenset({"todos", "moods", "habits", "media", "journal"})


def record_id(record: dict[str, Any]) -> str | None:
    """Store records carry their id as ``id`` or ``_id``."""
    value = record.get("id", record.get("_id"))
    return str(value) if value is not None else None


class StoreTransportError(UpstreamUnavailable):
    """The store could not be reached at all (connect error, timeout)."""


class DomainStoreClient:
    """Implements the DomainStore protocol over HTTP."""

    def __init__(
        self,
        base_url: str = DOMAIN_STORE_URL,
        timeout: float = UPSTREAM_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def _request(
        self,
        credential: Credential,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        try:
            with time_block("store.latency"):
                async with httpx.AsyncClient(
                    timeout=self.timeout, transport=self._transport
                ) as client:
                    response = await client.request(
                        method,
                        url,
                        params=params,
                        json=json,
                        headers=credential.authorization_header,
                    )
        except httpx.HTTPError as e:
            counter("store.transport_error")
            logger.error("Domain store unreachable: %s %s (%s)", method, path, type(e).__name__)
            raise StoreTransportError(f"Domain store unreachable: {path}", upstream=path) from e

        if not response.is_success:
            counter("store.rejected")
            logger.error("Domain store rejected %s %s: HTTP %d", method, path, response.status_code)
            raise UpstreamUnavailable(
                f"Domain store returned {response.status_code} for {path}", upstream=path
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamUnavailable(f"Domain store sent invalid JSON for {path}", upstream=path) from e

    async def _list(
        self, credential: Credential, path: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        data = await self._request(credential, "GET", path, params=params)
        if not isinstance(data, list):
            raise UpstreamUnavailable(f"Domain store sent a non-list body for {path}", upstream=path)
        return [item for item in data if isinstance(item, dict)]

    async def list_upcoming_todos(self, credential: Credential, limit: int) -> list[dict[str, Any]]:
        return await self._list(
            credential, "/todos", {"completed": "false", "upcoming": "true", "limit": limit}
        )

    async def list_recent_moods(
        self, credential: Credential, limit: int, days: int
    ) -> list[dict[str, Any]]:
        return await self._list(credential, "/moods", {"days": days, "limit": limit})

    async def list_active_habits(self, credential: Credential, limit: int) -> list[dict[str, Any]]:
        return await self._list(credential, "/habits", {"sort": "-streak", "limit": limit})

    async def list_recent_media(self, credential: Credential, limit: int) -> list[dict[str, Any]]:
        return await self._list(credential, "/media", {"sort": "-updatedAt", "limit": limit})

    async def list_journal_entries(
        self, credential: Credential, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        return await self._list(credential, "/journal", params)

    async def create_record(
        self, credential: Credential, collection: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        """
        Create one record in a store.

        Raises:
            ValueError: For a collection this service never writes to
            UpstreamUnavailable: If the store fails or rejects the write
        """
        if collection not in WRITABLE_COLLECTIONS:
            raise ValueError(f"Unknown collection: {collection}")

        data = await self._request(credential, "POST", f"/{collection}", json=payload)
        if not isinstance(data, dict):
            raise UpstreamUnavailable(
                f"Domain store sent a non-object body for /{collection}", upstream=collection
            )
        return data
