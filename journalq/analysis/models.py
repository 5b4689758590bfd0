"""
Analysis contracts.

AnalysisResult mirrors what the analysis engine returns for one entry. The
degraded result is a first-class, well-formed value: downstream stages treat
it exactly like a genuine result that happens to contain nothing.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CandidateKind(str, Enum):
    TODO = "todo"
    MOOD = "mood"
    HABIT = "habit"
    MEDIA = "media"


class ExtractedData(BaseModel):
    """Raw extraction block. Items stay loosely typed until extraction."""

    model_config = ConfigDict(extra="allow")

    mood: str | dict[str, Any] = ""
    todos: list[Any] = Field(default_factory=list)
    media: list[Any] = Field(default_factory=list)
    habits: list[Any] = Field(default_factory=list)

    @field_validator("mood", mode="before")
    @classmethod
    def none_mood_is_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class AnalysisResult(BaseModel):
    """Engine analysis of one journal entry. Unknown engine fields pass through."""

    model_config = ConfigDict(extra="allow")

    summary: str
    sentiment: str
    keywords: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    insights: str = ""
    extracted: ExtractedData = Field(default_factory=ExtractedData)


def degraded_analysis() -> AnalysisResult:
    """Canonical result returned whenever the engine cannot be used."""
    return AnalysisResult(
        summary="Could not analyze entry.",
        sentiment="Neutral",
        keywords=[],
        suggestions=[],
        insights="No insights available.",
        extracted=ExtractedData(mood="", todos=[], media=[], habits=[]),
    )


class ExtractedCandidate(BaseModel):
    """One proposed todo/mood/habit/media item with its confidence score."""

    model_config = ConfigDict(frozen=True)

    kind: CandidateKind
    payload: dict[str, Any]
    confidence: float = Field(ge=0.0, le=1.0)
