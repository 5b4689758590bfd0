"""
Action Persister - writes user-confirmed candidates to their domain stores.

Each confirmed candidate becomes one create call against its store, with the
payload mapped to that store's vocabulary. Writes run sequentially in the
order given; the first failure stops the batch and surfaces as
UpstreamUnavailable. Records already written before the failure are not
rolled back (the stores have no transactional API).
"""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from typing import Any

from journalq.analysis.models import CandidateKind
from journalq.contracts.collaborators import DomainStore
from journalq.contracts.identity import Credential
from journalq.errors import UpstreamUnavailable
from journalq.journal.models import ActionCandidate, PersistResult
from journalq.journal.store_client import record_id
from journalq.observability.logging import get_logger
from journalq.observability.telemetry import counter, log_event
from journalq.preferences.store import PreferenceStore

logger = get_logger(__name__)

COLLECTIONS: dict[CandidateKind, str] = {
    CandidateKind.TODO: "todos",
    CandidateKind.MOOD: "moods",
    CandidateKind.HABIT: "habits",
    CandidateKind.MEDIA: "media",
}

MEDIA_TYPES = {
    "movie": "movie",
    "show": "tv",
    "book": "book",
    "game": "game",
    "podcast": "podcast",
    "music": "music",
}

MEDIA_STATUSES = {
    "watched": "completed",
    "watching": "in_progress",
    "planned": "planned",
    "playing": "in_progress",
    "completed": "completed",
    "reading": "in_progress",
    "read": "completed",
}

JOURNAL_NOTE = "Extracted from journal entry"


def map_media_type(value: Any) -> str:
    return MEDIA_TYPES.get(str(value or "").strip().lower(), "other")


def map_media_status(value: Any) -> str:
    return MEDIA_STATUSES.get(str(value or "").strip().lower(), "other")


def build_store_payload(kind: CandidateKind, payload: dict[str, Any]) -> dict[str, Any]:
    """Translate an extracted payload into the record its store expects."""
    if kind is CandidateKind.TODO:
        return {
            "title": payload.get("title"),
            "completed": payload.get("time") == "past",
            "dueDate": payload.get("dueDate"),
            "priority": payload.get("priority") or "medium",
            "category": "Journal",
            "notes": JOURNAL_NOTE,
        }
    if kind is CandidateKind.MOOD:
        return {
            "mood": payload.get("value") or payload.get("mood"),
            "energy": payload.get("energy") or "Medium",
            "date": payload.get("date") or datetime.now(UTC).isoformat(),
            "note": JOURNAL_NOTE,
            "source": "journal",
        }
    if kind is CandidateKind.HABIT:
        # The habit store upserts by name and bumps the streak for status "done"
        return {
            "name": payload.get("name"),
            "frequency": payload.get("frequency") or "daily",
            "status": payload.get("status"),
            "category": "Journal",
        }
    return {
        "title": payload.get("title"),
        "type": map_media_type(payload.get("type")),
        "status": map_media_status(payload.get("status")),
        "genre": "",
        "source": "journal",
        "notes": JOURNAL_NOTE,
    }


class ActionPersister:
    """Forward confirmed candidates and feed the decisions back into preferences."""

    def __init__(self, store: DomainStore, preferences: PreferenceStore | None = None):
        self.store = store
        self.preferences = preferences

    async def persist(
        self, credential: Credential, candidates: list[ActionCandidate]
    ) -> PersistResult:
        """
        Write every confirmed candidate to its store.

        Raises:
            UpstreamUnavailable: If any store rejects a write or cannot be reached

        Side Effects:
            - One POST per confirmed candidate
            - Records accepted/rejected interactions once every write succeeded
        """
        result = PersistResult()

        for candidate in candidates:
            if not candidate.confirmed:
                continue
            collection = COLLECTIONS[candidate.kind]
            record = await self.store.create_record(
                credential, collection, build_store_payload(candidate.kind, candidate.payload)
            )
            saved_id = record_id(record)
            if saved_id is None:
                raise UpstreamUnavailable(
                    f"Domain store returned no id for /{collection}", upstream=collection
                )
            getattr(result.saved_ids, candidate.kind.value).append(saved_id)
            counter(f"actions.saved.{candidate.kind.value}")

        log_event(
            "actions.persisted",
            user_id=credential.user_id,
            saved=sum(1 for c in candidates if c.confirmed),
            rejected=sum(1 for c in candidates if not c.confirmed),
        )
        self._record_interactions(credential, candidates)
        return result

    def _record_interactions(
        self, credential: Credential, candidates: list[ActionCandidate]
    ) -> None:
        if self.preferences is None:
            return
        for candidate in candidates:
            action = "accepted" if candidate.confirmed else "rejected"
            try:
                self.preferences.record_interaction(
                    credential.user_id, candidate.kind.value, action, candidate.confidence
                )
            except sqlite3.Error as e:
                # Learning is best effort; the writes already succeeded
                logger.warning("Failed to record %s interaction for %s: %s", action, credential, e)
                counter("actions.interaction_record_failed")
