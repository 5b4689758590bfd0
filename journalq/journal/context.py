"""
Context Aggregator - builds the per-request cross-domain snapshot.

The five reads are independent and run concurrently. A field whose read
fails (or whose records do not parse) comes back empty while the others are
kept; only when the store is unreachable for every read does aggregation
fail as a whole. Lists keep the order the stores returned.
"""

from __future__ import annotations

import asyncio
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from journalq.config import (
    CONTEXT_HABIT_LIMIT,
    CONTEXT_JOURNAL_LIMIT,
    CONTEXT_MEDIA_LIMIT,
    CONTEXT_MOOD_DAYS,
    CONTEXT_MOOD_LIMIT,
    CONTEXT_TODO_LIMIT,
)
from journalq.contracts.collaborators import DomainStore
from journalq.contracts.identity import Credential
from journalq.errors import UpstreamUnavailable
from journalq.journal.models import ContextSnapshot, Habit, JournalEntry, Media, Mood, Todo
from journalq.journal.store_client import StoreTransportError
from journalq.observability.logging import get_logger
from journalq.observability.telemetry import counter, log_event, time_block

logger = get_logger(__name__)


class ContextAggregator:
    """Fan-out/fan-in over the domain stores."""

    def __init__(self, store: DomainStore):
        self.store = store

    async def aggregate(self, credential: Credential) -> ContextSnapshot:
        """
        Fetch recent todos, moods, habits, media and journal entries.

        Raises:
            UpstreamUnavailable: If every read failed because the store was unreachable

        Side Effects:
            - Five concurrent GETs against the domain stores
            - Increments context.field_degraded for each emptied field
        """
        fields: dict[str, tuple[type[BaseModel], Any]] = {
            "upcoming_todos": (Todo, self.store.list_upcoming_todos(credential, CONTEXT_TODO_LIMIT)),
            "recent_moods": (
                Mood,
                self.store.list_recent_moods(credential, CONTEXT_MOOD_LIMIT, CONTEXT_MOOD_DAYS),
            ),
            "active_habits": (Habit, self.store.list_active_habits(credential, CONTEXT_HABIT_LIMIT)),
            "recent_media": (Media, self.store.list_recent_media(credential, CONTEXT_MEDIA_LIMIT)),
            "recent_journals": (
                JournalEntry,
                self.store.list_journal_entries(credential, {"limit": CONTEXT_JOURNAL_LIMIT}),
            ),
        }

        with time_block("context.aggregate"):
            results = await asyncio.gather(
                *(call for _, call in fields.values()), return_exceptions=True
            )

        if all(isinstance(r, StoreTransportError) for r in results):
            log_event("context.unavailable", user_id=credential.user_id)
            raise UpstreamUnavailable("Failed to fetch journal context", upstream="domain_stores")

        snapshot: dict[str, list[Any]] = {}
        for (name, (model, _)), result in zip(fields.items(), results):
            snapshot[name] = self._parse_field(name, model, result, credential)

        return ContextSnapshot(**snapshot)

    def _parse_field(
        self, name: str, model: type[BaseModel], result: Any, credential: Credential
    ) -> list[Any]:
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            logger.warning("Context field %s degraded for %s: %s", name, credential, result)
            counter("context.field_degraded")
            return []

        try:
            return [model.model_validate(record) for record in result]
        except SchemaError as e:
            logger.warning(
                "Context field %s degraded for %s: %d malformed records",
                name,
                credential,
                e.error_count(),
            )
            counter("context.field_degraded")
            return []
