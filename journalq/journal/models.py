"""
Domain record shapes as seen through the context snapshot.

Records come from stores this service does not own, so every model keeps
unknown fields (extra="allow") and only pins down what the prompt projection
and persistence mapping read.
"""

from __future__ import annotations

from typing import Any

from pydantic import ConfigDict, Field, field_validator

from journalq.analysis.models import CandidateKind
from journalq.api.models import validate_dict_structure
from journalq.contracts.base import CamelModel


class _StoreRecord(CamelModel):
    model_config = ConfigDict(extra="allow")


class Todo(_StoreRecord):
    title: str
    due_date: str | None = None
    priority: str | None = None


class Mood(_StoreRecord):
    mood: str
    date: str | None = None
    energy: str | None = None


class Habit(_StoreRecord):
    name: str
    streak: int = 0
    frequency: str | None = None


class Media(_StoreRecord):
    title: str
    type: str = "other"
    status: str = "other"


class JournalEntry(_StoreRecord):
    content: str
    date: str | None = None
    mood: str | None = None
    energy: str | None = None
    activities: list[str] = Field(default_factory=list)


class ContextSnapshot(CamelModel):
    """Recent cross-domain state. Each list keeps the store's order."""

    upcoming_todos: list[Todo] = Field(default_factory=list)
    recent_moods: list[Mood] = Field(default_factory=list)
    active_habits: list[Habit] = Field(default_factory=list)
    recent_media: list[Media] = Field(default_factory=list)
    recent_journals: list[JournalEntry] = Field(default_factory=list)


class ActionCandidate(CamelModel):
    """A candidate echoed back by the client with the user's decision."""

    kind: CandidateKind
    payload: dict[str, Any]
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    confirmed: bool = True

    @field_validator("payload")
    @classmethod
    def payload_is_bounded(cls, v: dict[str, Any]) -> dict[str, Any]:
        validate_dict_structure(v)
        return v


class ActionsRequest(CamelModel):
    journal_id: str | None = None
    candidates: list[ActionCandidate] = Field(default_factory=list, max_length=100)


class SavedIds(CamelModel):
    todo: list[str] = Field(default_factory=list)
    mood: list[str] = Field(default_factory=list)
    habit: list[str] = Field(default_factory=list)
    media: list[str] = Field(default_factory=list)


class PersistResult(CamelModel):
    saved_ids: SavedIds = Field(default_factory=SavedIds)


class JournalEntryCreate(CamelModel):
    content: str | None = None
    mood: str | None = None
    energy: str | None = None
    activities: list[str] = Field(default_factory=list)
